"""Authentication helpers for FastAPI endpoints.

- Bearer JWT verification (HS256) using settings.secret_key.
- Dev-only header identity (X-User-Id / X-User-Roles) for local tools and tests.
- Admin guard used by the club and election administration routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from campushub.infra import jwt as jwt_helper
from campushub.settings import settings

ADMIN_ROLE = "admin"


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	handle: Optional[str] = None
	display_name: Optional[str] = None
	roles: Tuple[str, ...] = ()
	session_id: Optional[str] = None

	def has_role(self, role: str) -> bool:
		return role in self.roles

	@property
	def is_admin(self) -> bool:
		return self.has_role(ADMIN_ROLE)


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser.

	Roles can be list[str] or a comma-separated string.
	"""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	handle = payload.get("handle")
	display_name = payload.get("name")
	roles_claim = payload.get("roles") or payload.get("role")
	roles: Tuple[str, ...]
	if isinstance(roles_claim, (list, tuple)):
		roles = tuple(str(r).strip() for r in roles_claim if str(r).strip())
	elif isinstance(roles_claim, str):
		roles = tuple(part.strip() for part in roles_claim.split(",") if part.strip())
	else:
		roles = ()

	session_id = payload.get("sid")
	return AuthenticatedUser(
		id=sub,
		handle=str(handle) if handle is not None else None,
		display_name=str(display_name) if display_name is not None else None,
		roles=roles,
		session_id=str(session_id).strip() if session_id is not None else None,
	)


def _dev_header_user(x_user_id: Optional[str], x_user_roles: Optional[str]) -> Optional[AuthenticatedUser]:
	if not settings.is_dev() or not x_user_id:
		return None
	roles = tuple(part.strip() for part in (x_user_roles or "").split(",") if part.strip())
	return AuthenticatedUser(id=x_user_id, roles=roles)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	user = _dev_header_user(x_user_id, x_user_roles)
	if user is not None:
		return user
	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Like get_current_user but returns None for anonymous callers.

	A malformed bearer token is still rejected rather than silently downgraded.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	return _dev_header_user(x_user_id, x_user_roles)


async def get_admin_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
	if user.is_admin:
		return user
	raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="insufficient_role")
