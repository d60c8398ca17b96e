"""Pydantic schemas for Clubs API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from campushub.domain.clubs.models import Club, ClubPage, ClubStats, ClubStatus, Leadership, Membership, MembershipStatus


class LeadershipSchema(BaseModel):
    president: Optional[UUID] = None
    vice_president: Optional[UUID] = None
    secretary: Optional[UUID] = None
    treasurer: Optional[UUID] = None

    def to_domain(self) -> Leadership:
        return Leadership(**self.model_dump())


class ClubCreateRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(..., min_length=1, max_length=60)
    image: Optional[str] = None
    founded: Optional[str] = Field(default=None, max_length=20)
    contact_email: Optional[EmailStr] = None
    meeting_schedule: Optional[str] = Field(default=None, max_length=200)
    requirements: Optional[str] = Field(default=None, max_length=1000)
    leadership: Optional[LeadershipSchema] = None


class ClubUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    category: Optional[str] = Field(default=None, min_length=1, max_length=60)
    status: Optional[ClubStatus] = None
    image: Optional[str] = None
    founded: Optional[str] = Field(default=None, max_length=20)
    contact_email: Optional[EmailStr] = None
    meeting_schedule: Optional[str] = Field(default=None, max_length=200)
    requirements: Optional[str] = Field(default=None, max_length=1000)
    leadership: Optional[LeadershipSchema] = None


class JoinClubRequest(BaseModel):
    """Application form snapshot; accepts the camelCase keys the web client posts."""

    model_config = {"populate_by_name": True}

    full_name: str = Field(..., min_length=1, max_length=120, alias="fullName")
    department: str = Field(..., min_length=1, max_length=120)
    year: str = Field(..., min_length=1, max_length=20)
    background: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("full_name", "department", "year", mode="before")
    @classmethod
    def _strip(cls, value):
        # Trimmed before the length limits run.
        return value.strip() if isinstance(value, str) else value


class MembershipSchema(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    department: str
    year: str
    background: Optional[str]
    role: str
    status: MembershipStatus
    requested_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, membership: Membership) -> "MembershipSchema":
        return cls(
            id=membership.id,
            user_id=membership.user_id,
            full_name=membership.full_name,
            department=membership.department,
            year=membership.year,
            background=membership.background,
            role=membership.role,
            status=membership.status,
            requested_at=membership.requested_at,
            updated_at=membership.updated_at,
        )


class ClubResponse(BaseModel):
    id: UUID
    name: str
    description: str
    category: str
    status: ClubStatus
    image: Optional[str]
    founded: Optional[str]
    contact_email: Optional[str]
    meeting_schedule: Optional[str]
    requirements: Optional[str]
    leadership: LeadershipSchema
    member_count: int
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, club: Club) -> "ClubResponse":
        return cls(
            id=club.id,
            name=club.name,
            description=club.description,
            category=club.category,
            status=club.status,
            image=club.image,
            founded=club.founded,
            contact_email=club.contact_email,
            meeting_schedule=club.meeting_schedule,
            requirements=club.requirements,
            leadership=LeadershipSchema(
                president=club.leadership.president,
                vice_president=club.leadership.vice_president,
                secretary=club.leadership.secretary,
                treasurer=club.leadership.treasurer,
            ),
            member_count=club.member_count,
            version=club.version,
            created_at=club.created_at,
            updated_at=club.updated_at,
        )


class ClubDetailResponse(ClubResponse):
    # Only populated for administrators.
    members: List[MembershipSchema] = Field(default_factory=list)

    @classmethod
    def from_club(cls, club: Club, *, include_members: bool) -> "ClubDetailResponse":
        base = ClubResponse.from_domain(club).model_dump()
        members = [MembershipSchema.from_domain(m) for m in club.members] if include_members else []
        return cls(**base, members=members)


class ClubListResponse(BaseModel):
    clubs: List[ClubResponse]
    total: int
    page: int
    pages: int

    @classmethod
    def from_page(cls, page: ClubPage) -> "ClubListResponse":
        return cls(
            clubs=[ClubResponse.from_domain(club) for club in page.clubs],
            total=page.total,
            page=page.page,
            pages=page.pages,
        )


class MembershipActionResponse(BaseModel):
    success: bool = True
    message: str
    membership: Optional[MembershipSchema] = None


class CategoryCountSchema(BaseModel):
    category: str
    count: int


class PopularClubSchema(BaseModel):
    id: UUID
    name: str
    member_count: int


class ClubStatsResponse(BaseModel):
    total_clubs: int
    active_clubs: int
    pending_clubs: int
    inactive_clubs: int
    total_members: int
    avg_members: int
    clubs_by_category: List[CategoryCountSchema]
    popular_clubs: List[PopularClubSchema]

    @classmethod
    def from_domain(cls, stats: ClubStats) -> "ClubStatsResponse":
        return cls(
            total_clubs=stats.total_clubs,
            active_clubs=stats.active_clubs,
            pending_clubs=stats.pending_clubs,
            inactive_clubs=stats.inactive_clubs,
            total_members=stats.total_members,
            avg_members=stats.avg_members,
            clubs_by_category=[CategoryCountSchema(category=c.category, count=c.count) for c in stats.clubs_by_category],
            popular_clubs=[
                PopularClubSchema(id=p.id, name=p.name, member_count=p.member_count) for p in stats.popular_clubs
            ],
        )
