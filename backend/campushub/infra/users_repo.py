"""PostgreSQL persistence for user accounts."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Mapping
from uuid import UUID

import asyncpg

from campushub.domain.exceptions import ConflictError, NotFoundError
from campushub.domain.identity.models import User, UserRole
from campushub.domain.identity.repo import PROFILE_FIELDS, USER_EXISTS, UserRepository

_USER_COLUMNS = """
	id, name, username, email, password_hash, department, year, phone_number, address,
	profile_image, role, is_active, login_attempts, lock_until, last_login, created_at, updated_at
"""


def _row_to_user(row: asyncpg.Record) -> User:
	return User(
		id=row["id"],
		name=row["name"],
		username=row["username"],
		password_hash=row["password_hash"],
		department=row["department"],
		year=row["year"],
		created_at=row["created_at"],
		updated_at=row["updated_at"],
		email=row["email"],
		phone_number=row["phone_number"],
		address=row["address"],
		profile_image=row["profile_image"],
		role=UserRole(row["role"]),
		is_active=bool(row["is_active"]),
		login_attempts=int(row["login_attempts"]),
		lock_until=row["lock_until"],
		last_login=row["last_login"],
	)


class PostgresUserRepository(UserRepository):
	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def create_user(self, user: User) -> User:
		try:
			row = await self._pool.fetchrow(
				f"""
				INSERT INTO users (id, name, username, email, password_hash, department, year, phone_number,
					address, profile_image, role, is_active, created_at, updated_at)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
				RETURNING {_USER_COLUMNS}
				""",
				user.id,
				user.name,
				user.username,
				user.email,
				user.password_hash,
				user.department,
				user.year,
				user.phone_number,
				user.address,
				user.profile_image,
				user.role.value,
				user.is_active,
				user.created_at,
				user.updated_at,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise ConflictError(USER_EXISTS) from exc
		return _row_to_user(row)

	async def get_user(self, user_id: UUID) -> User | None:
		row = await self._pool.fetchrow(f"SELECT {_USER_COLUMNS} FROM users WHERE id = $1", user_id)
		return _row_to_user(row) if row else None

	async def find_by_username(self, username: str) -> User | None:
		row = await self._pool.fetchrow(
			f"SELECT {_USER_COLUMNS} FROM users WHERE lower(username) = lower($1)",
			username,
		)
		return _row_to_user(row) if row else None

	async def find_by_username_or_email(self, username: str, email: str | None) -> User | None:
		row = await self._pool.fetchrow(
			f"""
			SELECT {_USER_COLUMNS} FROM users
			WHERE lower(username) = lower($1) OR ($2::text IS NOT NULL AND lower(email) = lower($2))
			LIMIT 1
			""",
			username,
			email,
		)
		return _row_to_user(row) if row else None

	async def update_profile(self, user_id: UUID, changes: Mapping[str, Any]) -> User:
		unknown = set(changes) - PROFILE_FIELDS
		if unknown:
			raise ValueError(f"unsupported profile fields: {sorted(unknown)}")
		fields: list[str] = []
		values: list[object] = []
		for key, value in changes.items():
			fields.append("%s=$%d" % (key, len(values) + 2))
			values.append(value)
		fields.append("updated_at = now()")
		try:
			row = await self._pool.fetchrow(
				f"UPDATE users SET {', '.join(fields)} WHERE id = $1 RETURNING {_USER_COLUMNS}",
				user_id,
				*values,
			)
		except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
			raise ConflictError(USER_EXISTS) from exc
		if row is None:
			raise NotFoundError("User not found")
		return _row_to_user(row)

	async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
		result = await self._pool.execute(
			"UPDATE users SET password_hash = $2, updated_at = now() WHERE id = $1",
			user_id,
			password_hash,
		)
		if result.endswith(" 0"):
			raise NotFoundError("User not found")

	async def record_failed_login(self, user_id: UUID, *, max_attempts: int, lock_for: timedelta) -> User:
		# Right-hand sides see the pre-update row, so both columns branch on the same state.
		row = await self._pool.fetchrow(
			f"""
			UPDATE users SET
				login_attempts = CASE
					WHEN lock_until IS NOT NULL AND lock_until < now() THEN 1
					ELSE login_attempts + 1
				END,
				lock_until = CASE
					WHEN lock_until IS NOT NULL AND lock_until < now() THEN NULL
					WHEN login_attempts + 1 >= $2 AND (lock_until IS NULL OR lock_until <= now()) THEN now() + $3
					ELSE lock_until
				END
			WHERE id = $1
			RETURNING {_USER_COLUMNS}
			""",
			user_id,
			max_attempts,
			lock_for,
		)
		if row is None:
			raise NotFoundError("User not found")
		return _row_to_user(row)

	async def record_successful_login(self, user_id: UUID, at: datetime) -> User:
		row = await self._pool.fetchrow(
			f"""
			UPDATE users SET last_login = $2, login_attempts = 0, lock_until = NULL
			WHERE id = $1
			RETURNING {_USER_COLUMNS}
			""",
			user_id,
			at,
		)
		if row is None:
			raise NotFoundError("User not found")
		return _row_to_user(row)
