"""Domain error taxonomy shared by the clubs, elections and identity services."""

from __future__ import annotations

from fastapi import status


class DomainError(Exception):
	"""Base class for domain errors; carries the HTTP status the API maps it to."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "domain_error"

	def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail
		if status_code is not None:
			self.status_code = status_code


class NotFoundError(DomainError):
	"""Missing club, election, membership, candidate or user."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class InvalidStateError(DomainError):
	"""Operation not allowed in the resource's current status."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "invalid_state"


class ConflictError(DomainError):
	"""Duplicate join request, duplicate name, double vote or stale version."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "conflict"


class ValidationError(DomainError):
	"""Malformed input not covered by request schema validation."""

	status_code = status.HTTP_400_BAD_REQUEST
	detail = "validation_error"


class UnauthorizedError(DomainError):
	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "unauthorized"


class ForbiddenError(DomainError):
	"""Non-admin invoking an admin-only operation."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class LockedError(DomainError):
	status_code = status.HTTP_423_LOCKED
	detail = "Account temporarily locked due to too many failed login attempts"


class InternalError(DomainError):
	"""Storage or other unexpected failure; the caller only sees a generic message."""

	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "Internal server error"


def version_mismatch() -> ConflictError:
	return ConflictError("version_mismatch", status_code=status.HTTP_409_CONFLICT)
