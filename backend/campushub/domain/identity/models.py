"""Domain models for student accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID


class UserRole(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"
    FACULTY = "faculty"


ACADEMIC_YEARS = ("1st Year", "2nd Year", "3rd Year", "4th Year", "5th Year")


@dataclass
class User:
    id: UUID
    name: str
    username: str
    password_hash: str
    department: str
    year: str
    created_at: datetime
    updated_at: datetime
    email: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None
    role: UserRole = UserRole.STUDENT
    is_active: bool = True
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def roles(self) -> Tuple[str, ...]:
        return (self.role.value,)

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now
