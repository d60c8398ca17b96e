"""Domain models for Clubs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID


class ClubStatus(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    INACTIVE = "inactive"


class MembershipStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class Leadership:
    president: Optional[UUID] = None
    vice_president: Optional[UUID] = None
    secretary: Optional[UUID] = None
    treasurer: Optional[UUID] = None


@dataclass
class Membership:
    """One user's join record inside a club.

    full_name/department/year/background are a snapshot taken when the request
    was filed; later profile edits do not rewrite them.
    """

    id: UUID
    club_id: UUID
    user_id: UUID
    full_name: str
    department: str
    year: str
    background: Optional[str]
    requested_at: datetime
    updated_at: datetime
    role: str = "member"
    status: MembershipStatus = MembershipStatus.PENDING

    @property
    def is_active(self) -> bool:
        return self.status != MembershipStatus.REJECTED


@dataclass
class Club:
    id: UUID
    name: str
    description: str
    category: str
    status: ClubStatus
    created_at: datetime
    updated_at: datetime
    image: Optional[str] = None
    founded: Optional[str] = None
    contact_email: Optional[str] = None
    meeting_schedule: Optional[str] = None
    requirements: Optional[str] = None
    leadership: Leadership = field(default_factory=Leadership)
    members: List[Membership] = field(default_factory=list)
    version: int = 1

    @property
    def member_count(self) -> int:
        return sum(1 for m in self.members if m.status == MembershipStatus.APPROVED)

    def find_member(self, membership_id: UUID) -> Optional[Membership]:
        for member in self.members:
            if member.id == membership_id:
                return member
        return None

    def active_membership_for(self, user_id: UUID) -> Optional[Membership]:
        for member in self.members:
            if member.user_id == user_id and member.is_active:
                return member
        return None

    def membership_to_remove(self, user_id: UUID) -> Optional[Membership]:
        """Entry a leaving user gives up: the active one, else the oldest rejected one."""
        active = self.active_membership_for(user_id)
        if active is not None:
            return active
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def pending_requests(self) -> List[Membership]:
        return [m for m in self.members if m.status == MembershipStatus.PENDING]


@dataclass
class ClubQuery:
    category: Optional[str] = None
    status: Optional[ClubStatus] = None
    search: Optional[str] = None
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


@dataclass
class ClubPage:
    clubs: List[Club]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass
class CategoryCount:
    category: str
    count: int


@dataclass
class PopularClub:
    id: UUID
    name: str
    member_count: int


@dataclass
class ClubStats:
    total_clubs: int = 0
    active_clubs: int = 0
    pending_clubs: int = 0
    inactive_clubs: int = 0
    total_members: int = 0
    avg_members: int = 0
    clubs_by_category: List[CategoryCount] = field(default_factory=list)
    popular_clubs: List[PopularClub] = field(default_factory=list)
