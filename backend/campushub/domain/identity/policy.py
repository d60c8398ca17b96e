"""Validation guards for account flows."""

from __future__ import annotations

import re

from campushub.domain.exceptions import ValidationError
from campushub.domain.identity.models import ACADEMIC_YEARS

USERNAME_REGEX = re.compile(r"^dbu\d{8}$", re.IGNORECASE)
PASSWORD_MIN_LEN = 8
NAME_MAX_LEN = 50


def normalise_username(username: str) -> str:
	return username.strip().lower()


def normalise_email(email: str) -> str:
	return email.strip().lower()


def guard_username(username: str) -> None:
	if not USERNAME_REGEX.match(username):
		raise ValidationError("Username must start with dbu followed by 8 digits")


def guard_password(password: str, *, message: str = "Password must be at least 8 characters") -> None:
	if len(password) < PASSWORD_MIN_LEN:
		raise ValidationError(message)


def guard_year(year: str) -> None:
	if year not in ACADEMIC_YEARS:
		raise ValidationError(f"Year must be one of: {', '.join(ACADEMIC_YEARS)}")


def guard_name(name: str) -> None:
	if not name.strip():
		raise ValidationError("Please provide your name")
	if len(name.strip()) > NAME_MAX_LEN:
		raise ValidationError("Name cannot be more than 50 characters")
