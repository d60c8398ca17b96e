"""Storage contracts and the in-memory store for user accounts."""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Protocol
from uuid import UUID

from campushub.domain.exceptions import ConflictError, NotFoundError
from campushub.domain.identity.models import User

USER_EXISTS = "User already exists with this username or email"
PROFILE_FIELDS = frozenset({"name", "department", "year", "phone_number", "address", "email", "profile_image"})


class UserRepository(Protocol):
	async def create_user(self, user: User) -> User:
		...

	async def get_user(self, user_id: UUID) -> User | None:
		...

	async def find_by_username(self, username: str) -> User | None:
		...

	async def find_by_username_or_email(self, username: str, email: str | None) -> User | None:
		...

	async def update_profile(self, user_id: UUID, changes: Mapping[str, Any]) -> User:
		...

	async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
		...

	async def record_failed_login(self, user_id: UUID, *, max_attempts: int, lock_for: timedelta) -> User:
		"""Count one failed attempt; reaching `max_attempts` locks the account for `lock_for`.

		An expired lock restarts the count at one.
		"""
		...

	async def record_successful_login(self, user_id: UUID, at: datetime) -> User:
		...


def _now() -> datetime:
	return datetime.now(timezone.utc)


class InMemoryUserRepository(UserRepository):
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._users: Dict[UUID, User] = {}

	def _require(self, user_id: UUID) -> User:
		user = self._users.get(user_id)
		if user is None:
			raise NotFoundError("User not found")
		return user

	def _clash(self, username: str | None, email: str | None, exclude: UUID | None = None) -> User | None:
		for user in self._users.values():
			if user.id == exclude:
				continue
			if username and user.username.lower() == username.lower():
				return user
			if email and user.email and user.email.lower() == email.lower():
				return user
		return None

	async def create_user(self, user: User) -> User:
		async with self._lock:
			if self._clash(user.username, user.email) is not None:
				raise ConflictError(USER_EXISTS)
			self._users[user.id] = copy.deepcopy(user)
			return copy.deepcopy(user)

	async def get_user(self, user_id: UUID) -> User | None:
		async with self._lock:
			user = self._users.get(user_id)
			return copy.deepcopy(user) if user else None

	async def find_by_username(self, username: str) -> User | None:
		async with self._lock:
			user = self._clash(username, None)
			return copy.deepcopy(user) if user else None

	async def find_by_username_or_email(self, username: str, email: str | None) -> User | None:
		async with self._lock:
			user = self._clash(username, email)
			return copy.deepcopy(user) if user else None

	async def update_profile(self, user_id: UUID, changes: Mapping[str, Any]) -> User:
		unknown = set(changes) - PROFILE_FIELDS
		if unknown:
			raise ValueError(f"unsupported profile fields: {sorted(unknown)}")
		async with self._lock:
			user = self._require(user_id)
			if changes.get("email") and self._clash(None, changes["email"], exclude=user_id) is not None:
				raise ConflictError(USER_EXISTS)
			for key, value in changes.items():
				setattr(user, key, value)
			user.updated_at = _now()
			return copy.deepcopy(user)

	async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
		async with self._lock:
			user = self._require(user_id)
			user.password_hash = password_hash
			user.updated_at = _now()

	async def record_failed_login(self, user_id: UUID, *, max_attempts: int, lock_for: timedelta) -> User:
		async with self._lock:
			user = self._require(user_id)
			now = _now()
			if user.lock_until is not None and user.lock_until < now:
				user.lock_until = None
				user.login_attempts = 1
			else:
				user.login_attempts += 1
				if user.login_attempts >= max_attempts and not user.is_locked(now):
					user.lock_until = now + lock_for
			return copy.deepcopy(user)

	async def record_successful_login(self, user_id: UUID, at: datetime) -> User:
		async with self._lock:
			user = self._require(user_id)
			user.last_login = at
			user.login_attempts = 0
			user.lock_until = None
			return copy.deepcopy(user)
