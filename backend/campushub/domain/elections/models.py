"""Domain models for Elections."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID


class ElectionStatus(str, Enum):
    PENDING = "Pending"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"


# Forward-only lifecycle; announcing results jumps straight to COMPLETED.
STATUS_ORDER = {
    ElectionStatus.PENDING: 0,
    ElectionStatus.ONGOING: 1,
    ElectionStatus.COMPLETED: 2,
}


@dataclass
class Candidate:
    id: UUID
    name: str
    department: str
    year: str
    platform: List[str] = field(default_factory=list)
    image: Optional[str] = None
    votes: int = 0


@dataclass
class Election:
    id: UUID
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    created_at: datetime
    updated_at: datetime
    status: ElectionStatus = ElectionStatus.PENDING
    candidates: List[Candidate] = field(default_factory=list)
    total_votes: int = 0
    eligible_voters: int = 0
    results_announced_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    version: int = 1

    def find_candidate(self, candidate_id: UUID) -> Optional[Candidate]:
        for candidate in self.candidates:
            if candidate.id == candidate_id:
                return candidate
        return None

    @property
    def accepts_votes(self) -> bool:
        return self.status != ElectionStatus.COMPLETED

    @property
    def results_announced(self) -> bool:
        return self.results_announced_at is not None


@dataclass
class RankedCandidate:
    rank: int
    candidate: Candidate
    percentage: float


@dataclass
class ElectionResults:
    election_id: UUID
    title: str
    status: ElectionStatus
    total_votes: int
    ranking: List[RankedCandidate]
    winners: List[Candidate]
    results_announced_at: Optional[datetime] = None


@dataclass
class ElectionStats:
    total_elections: int = 0
    pending_elections: int = 0
    ongoing_elections: int = 0
    completed_elections: int = 0
    total_votes: int = 0
    eligible_voters: int = 0

    @property
    def participation_rate(self) -> float:
        if self.eligible_voters <= 0:
            return 0.0
        return round(self.total_votes / self.eligible_voters * 100, 1)
