"""Account registration, login with lockout, and profile management."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

from campushub.domain import container
from campushub.domain.clubs.service import ClubService
from campushub.domain.exceptions import ConflictError, LockedError, NotFoundError, UnauthorizedError, ValidationError
from campushub.domain.identity import policy
from campushub.domain.identity.models import User, UserRole
from campushub.domain.identity.repo import USER_EXISTS, UserRepository
from campushub.domain.identity import schemas
from campushub.infra import jwt as jwt_helper
from campushub.infra.password import check_needs_rehash, hash_password, verify_password
from campushub.obs import audit
from campushub.obs import metrics as obs_metrics
from campushub.obs.logging import get_logger
from campushub.settings import settings

logger = get_logger("campushub.identity")

INVALID_CREDENTIALS = "Invalid credentials"


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _repo() -> UserRepository:
	return container.users()


def issue_token(user: User) -> str:
	return jwt_helper.encode_access(
		{
			"sub": str(user.id),
			"handle": user.username,
			"name": user.name,
			"roles": list(user.roles),
		}
	)


async def register(payload: schemas.RegisterRequest) -> schemas.AuthResponse:
	username = policy.normalise_username(payload.username)
	policy.guard_name(payload.name)
	policy.guard_username(username)
	policy.guard_password(payload.password)
	policy.guard_year(payload.year)
	email = policy.normalise_email(str(payload.email)) if payload.email else None

	# The repository raises the same conflict on a race past this check.
	if await _repo().find_by_username_or_email(username, email) is not None:
		raise ConflictError(USER_EXISTS)

	now = _now()
	user = User(
		id=uuid4(),
		name=payload.name.strip(),
		username=username,
		password_hash=hash_password(payload.password),
		department=payload.department.strip(),
		year=payload.year,
		created_at=now,
		updated_at=now,
		email=email,
		phone_number=payload.phone_number.strip() if payload.phone_number else None,
		role=UserRole.STUDENT,
	)
	created = await _repo().create_user(user)
	logger.info("user_registered", extra={"user_id": str(created.id)})
	await audit.log_event("identity.registered", user_id=str(created.id))
	return schemas.AuthResponse(
		message="User registered successfully",
		token=issue_token(created),
		user=schemas.UserOut.from_domain(created),
	)


async def login(payload: schemas.LoginRequest) -> schemas.AuthResponse:
	username = policy.normalise_username(payload.username)
	user = await _repo().find_by_username(username)
	if user is None:
		obs_metrics.inc_login("unknown_user")
		raise UnauthorizedError(INVALID_CREDENTIALS)
	now = _now()
	if user.is_locked(now):
		obs_metrics.inc_login("locked")
		raise LockedError()
	if not user.is_active:
		obs_metrics.inc_login("inactive")
		raise UnauthorizedError("Account has been deactivated")
	if not verify_password(user.password_hash, payload.password):
		updated = await _repo().record_failed_login(
			user.id,
			max_attempts=settings.login_max_attempts,
			lock_for=timedelta(minutes=settings.login_lock_minutes),
		)
		obs_metrics.inc_login("bad_password")
		if updated.is_locked(_now()):
			logger.warning("account_locked", extra={"user_id": str(user.id), "attempts": updated.login_attempts})
			await audit.log_event("identity.locked", user_id=str(user.id))
		raise UnauthorizedError(INVALID_CREDENTIALS)

	if check_needs_rehash(user.password_hash):
		await _repo().set_password_hash(user.id, hash_password(payload.password))
	user = await _repo().record_successful_login(user.id, now)
	obs_metrics.inc_login("ok")
	await audit.log_event("identity.login", user_id=str(user.id))
	return schemas.AuthResponse(
		message="Login successful",
		token=issue_token(user),
		user=schemas.UserOut.from_domain(user),
	)


async def _require_user(user_id: UUID) -> User:
	user = await _repo().get_user(user_id)
	if user is None:
		raise NotFoundError("User not found")
	return user


async def get_profile(user_id: UUID) -> schemas.ProfileResponse:
	user = await _require_user(user_id)
	clubs = await ClubService().user_clubs(user_id)
	voted = await container.elections().voted_election_ids(user_id)
	return schemas.ProfileResponse(
		user=schemas.UserOut.from_domain(user),
		joined_clubs=[schemas.JoinedClubOut(id=club.id, name=club.name, category=club.category) for club in clubs],
		voted_elections=voted,
	)


async def update_profile(user_id: UUID, payload: schemas.ProfileUpdateRequest) -> schemas.UserOut:
	await _require_user(user_id)
	changes: Dict[str, Any] = payload.model_dump(exclude_unset=True, exclude_none=True)
	if "name" in changes:
		policy.guard_name(changes["name"])
		changes["name"] = changes["name"].strip()
	if "year" in changes:
		policy.guard_year(changes["year"])
	if "email" in changes:
		changes["email"] = policy.normalise_email(str(changes["email"]))
	if not changes:
		return schemas.UserOut.from_domain(await _require_user(user_id))
	updated = await _repo().update_profile(user_id, changes)
	await audit.log_event("identity.profile_updated", user_id=str(user_id), meta={"fields": ",".join(sorted(changes))})
	return schemas.UserOut.from_domain(updated)


async def change_password(user_id: UUID, payload: schemas.ChangePasswordRequest) -> None:
	policy.guard_password(payload.new_password, message="New password must be at least 8 characters")
	user = await _require_user(user_id)
	if not verify_password(user.password_hash, payload.current_password):
		raise ValidationError("Current password is incorrect")
	await _repo().set_password_hash(user_id, hash_password(payload.new_password))
	logger.info("password_changed", extra={"user_id": str(user_id)})
	await audit.log_event("identity.password_changed", user_id=str(user_id))
