"""Shared request helpers for the clubs, elections and auth routers."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status

from campushub.infra.auth import AuthenticatedUser


def user_uuid(user: AuthenticatedUser) -> UUID:
	try:
		return UUID(user.id)
	except ValueError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def expected_version(if_match: Optional[str] = Header(default=None, alias="If-Match")) -> Optional[int]:
	"""Parse an `If-Match` version precondition; accepts `3`, `"3"` and `W/"3"`."""
	if if_match is None:
		return None
	raw = if_match.strip()
	if raw.startswith("W/"):
		raw = raw[2:]
	raw = raw.strip('"')
	try:
		return int(raw)
	except ValueError:
		raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_if_match")
