"""Pydantic schemas for Elections API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from campushub.domain.elections.models import (
    Candidate,
    Election,
    ElectionResults,
    ElectionStats,
    ElectionStatus,
)


class CandidateInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    department: str = Field(..., min_length=1, max_length=120)
    year: str = Field(..., min_length=1, max_length=20)
    platform: List[str] = Field(default_factory=list)
    image: Optional[str] = None


class ElectionCreateRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    start_date: datetime
    end_date: datetime
    # Count enforcement happens in the service so the caller gets the domain message.
    candidates: List[CandidateInput]
    eligible_voters: int = Field(default=0, ge=0)


class ElectionUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    eligible_voters: Optional[int] = Field(default=None, ge=0)


class ElectionStatusRequest(BaseModel):
    status: ElectionStatus


class VoteRequest(BaseModel):
    model_config = {"populate_by_name": True}

    candidate_id: UUID = Field(..., alias="candidateId")


class CandidateSchema(BaseModel):
    id: UUID
    name: str
    department: str
    year: str
    platform: List[str]
    image: Optional[str]
    votes: int

    @classmethod
    def from_domain(cls, candidate: Candidate) -> "CandidateSchema":
        return cls(
            id=candidate.id,
            name=candidate.name,
            department=candidate.department,
            year=candidate.year,
            platform=list(candidate.platform),
            image=candidate.image,
            votes=candidate.votes,
        )


class ElectionResponse(BaseModel):
    id: UUID
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    status: ElectionStatus
    candidates: List[CandidateSchema]
    total_votes: int
    eligible_voters: int
    results_announced_at: Optional[datetime]
    version: int
    created_at: datetime
    updated_at: datetime
    has_voted: Optional[bool] = None

    @classmethod
    def from_domain(cls, election: Election, *, has_voted: Optional[bool] = None) -> "ElectionResponse":
        return cls(
            id=election.id,
            title=election.title,
            description=election.description,
            start_date=election.start_date,
            end_date=election.end_date,
            status=election.status,
            candidates=[CandidateSchema.from_domain(c) for c in election.candidates],
            total_votes=election.total_votes,
            eligible_voters=election.eligible_voters,
            results_announced_at=election.results_announced_at,
            version=election.version,
            created_at=election.created_at,
            updated_at=election.updated_at,
            has_voted=has_voted,
        )


class VoteResponse(BaseModel):
    success: bool = True
    message: str = "Vote cast successfully"
    election: ElectionResponse


class RankedCandidateSchema(BaseModel):
    rank: int
    candidate: CandidateSchema
    percentage: float


class ElectionResultsResponse(BaseModel):
    election_id: UUID
    title: str
    status: ElectionStatus
    total_votes: int
    ranking: List[RankedCandidateSchema]
    winners: List[CandidateSchema]
    results_announced_at: Optional[datetime]

    @classmethod
    def from_domain(cls, results: ElectionResults) -> "ElectionResultsResponse":
        return cls(
            election_id=results.election_id,
            title=results.title,
            status=results.status,
            total_votes=results.total_votes,
            ranking=[
                RankedCandidateSchema(
                    rank=item.rank,
                    candidate=CandidateSchema.from_domain(item.candidate),
                    percentage=item.percentage,
                )
                for item in results.ranking
            ],
            winners=[CandidateSchema.from_domain(c) for c in results.winners],
            results_announced_at=results.results_announced_at,
        )


class ElectionStatsResponse(BaseModel):
    total_elections: int
    pending_elections: int
    ongoing_elections: int
    completed_elections: int
    total_votes: int
    eligible_voters: int
    participation_rate: float

    @classmethod
    def from_domain(cls, stats: ElectionStats) -> "ElectionStatsResponse":
        return cls(
            total_elections=stats.total_elections,
            pending_elections=stats.pending_elections,
            ongoing_elections=stats.ongoing_elections,
            completed_elections=stats.completed_elections,
            total_votes=stats.total_votes,
            eligible_voters=stats.eligible_voters,
            participation_rate=stats.participation_rate,
        )
