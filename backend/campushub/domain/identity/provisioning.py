"""Idempotent bootstrap of the default administrator account."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from campushub.domain import container
from campushub.domain.exceptions import ConflictError
from campushub.domain.identity.models import User, UserRole
from campushub.infra.password import hash_password
from campushub.obs.logging import get_logger
from campushub.settings import settings

logger = get_logger("campushub.identity.provisioning")

ADMIN_NAME = "System Administrator"
ADMIN_DEPARTMENT = "Administration"
ADMIN_YEAR = "1st Year"


async def ensure_default_admin(
	*,
	username: Optional[str] = None,
	email: Optional[str] = None,
	password: Optional[str] = None,
) -> Optional[User]:
	"""Create the bootstrap administrator unless an account already holds its username or email.

	Returns the created user, or None when nothing was created. Skipped when the
	bootstrap settings are incomplete.
	"""
	username = (username or settings.bootstrap_admin_username or "").strip().lower()
	email = (email or settings.bootstrap_admin_email or "").strip().lower() or None
	password = password or settings.bootstrap_admin_password
	if not username or not password:
		logger.info("admin_bootstrap_skipped", extra={"reason": "not_configured"})
		return None

	repo = container.users()
	existing = await repo.find_by_username_or_email(username, email)
	if existing is not None:
		logger.info("admin_bootstrap_exists", extra={"user_id": str(existing.id)})
		return None

	now = datetime.now(timezone.utc)
	admin = User(
		id=uuid4(),
		name=ADMIN_NAME,
		username=username,
		password_hash=hash_password(password),
		department=ADMIN_DEPARTMENT,
		year=ADMIN_YEAR,
		created_at=now,
		updated_at=now,
		email=email,
		role=UserRole.ADMIN,
	)
	try:
		created = await repo.create_user(admin)
	except ConflictError:
		# Another worker provisioned it first.
		logger.info("admin_bootstrap_exists", extra={"username": username})
		return None
	logger.info("admin_bootstrap_created", extra={"user_id": str(created.id)})
	return created
