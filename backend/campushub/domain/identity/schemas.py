"""Pydantic schemas for the auth API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from campushub.domain.identity.models import User, UserRole


class RegisterRequest(BaseModel):
    model_config = {"populate_by_name": True}

    name: str = Field(..., min_length=1, max_length=50)
    username: str = Field(..., min_length=1, max_length=40)
    password: str = Field(..., min_length=1, max_length=256)
    department: str = Field(..., min_length=1, max_length=120)
    year: str
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, max_length=32, alias="phoneNumber")


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=40)
    password: str = Field(..., min_length=1, max_length=256)


class ProfileUpdateRequest(BaseModel):
    model_config = {"populate_by_name": True}

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    department: Optional[str] = Field(default=None, min_length=1, max_length=120)
    year: Optional[str] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(default=None, max_length=32, alias="phoneNumber")
    address: Optional[str] = Field(default=None, max_length=200)
    profile_image: Optional[str] = Field(default=None, alias="profileImage")


class ChangePasswordRequest(BaseModel):
    model_config = {"populate_by_name": True}

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=1, alias="newPassword")


class UserOut(BaseModel):
    id: UUID
    name: str
    username: str
    email: Optional[str]
    department: str
    year: str
    phone_number: Optional[str]
    address: Optional[str]
    profile_image: Optional[str]
    role: UserRole
    is_admin: bool
    last_login: Optional[datetime]

    @classmethod
    def from_domain(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            name=user.name,
            username=user.username,
            email=user.email,
            department=user.department,
            year=user.year,
            phone_number=user.phone_number,
            address=user.address,
            profile_image=user.profile_image,
            role=user.role,
            is_admin=user.is_admin,
            last_login=user.last_login,
        )


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserOut


class JoinedClubOut(BaseModel):
    id: UUID
    name: str
    category: str


class ProfileResponse(BaseModel):
    success: bool = True
    user: UserOut
    joined_clubs: List[JoinedClubOut]
    voted_elections: List[UUID]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
