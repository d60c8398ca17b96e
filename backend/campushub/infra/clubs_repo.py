"""PostgreSQL persistence for clubs, club_members and user_joined_clubs."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple
from uuid import UUID

import asyncpg

from campushub.domain.clubs.models import (
	CategoryCount,
	Club,
	ClubPage,
	ClubQuery,
	ClubStats,
	ClubStatus,
	Leadership,
	Membership,
	MembershipStatus,
	PopularClub,
)
from campushub.domain.clubs.repo import POPULAR_LIMIT, UPDATABLE_FIELDS, ClubRepository
from campushub.domain.exceptions import ConflictError, InvalidStateError, NotFoundError, version_mismatch

_CLUB_COLUMNS = """
	id, name, description, category, status, image, founded, contact_email, meeting_schedule,
	requirements, president_id, vice_president_id, secretary_id, treasurer_id, version,
	created_at, updated_at
"""

_MEMBER_COLUMNS = """
	id, club_id, user_id, full_name, department, year, background, role, status,
	requested_at, updated_at
"""

_LEADERSHIP_COLUMNS = {
	"president": "president_id",
	"vice_president": "vice_president_id",
	"secretary": "secretary_id",
	"treasurer": "treasurer_id",
}


def _row_to_membership(row: asyncpg.Record) -> Membership:
	return Membership(
		id=row["id"],
		club_id=row["club_id"],
		user_id=row["user_id"],
		full_name=row["full_name"],
		department=row["department"],
		year=row["year"],
		background=row["background"],
		requested_at=row["requested_at"],
		updated_at=row["updated_at"],
		role=row["role"],
		status=MembershipStatus(row["status"]),
	)


def _row_to_club(row: asyncpg.Record, members: Iterable[Membership] = ()) -> Club:
	return Club(
		id=row["id"],
		name=row["name"],
		description=row["description"],
		category=row["category"],
		status=ClubStatus(row["status"]),
		created_at=row["created_at"],
		updated_at=row["updated_at"],
		image=row["image"],
		founded=row["founded"],
		contact_email=row["contact_email"],
		meeting_schedule=row["meeting_schedule"],
		requirements=row["requirements"],
		leadership=Leadership(
			president=row["president_id"],
			vice_president=row["vice_president_id"],
			secretary=row["secretary_id"],
			treasurer=row["treasurer_id"],
		),
		members=list(members),
		version=int(row["version"]),
	)


async def _hydrate(conn: asyncpg.Connection, rows: Sequence[asyncpg.Record]) -> List[Club]:
	if not rows:
		return []
	ids = [row["id"] for row in rows]
	member_rows = await conn.fetch(
		f"SELECT {_MEMBER_COLUMNS} FROM club_members WHERE club_id = ANY($1::uuid[]) ORDER BY seq",
		ids,
	)
	grouped: Dict[UUID, List[Membership]] = {cid: [] for cid in ids}
	for member_row in member_rows:
		grouped[member_row["club_id"]].append(_row_to_membership(member_row))
	return [_row_to_club(row, grouped[row["id"]]) for row in rows]


def _like_pattern(text: str) -> str:
	escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
	return f"%{escaped}%"


async def _bump_locked(conn: asyncpg.Connection, club_id: UUID, current: Any, expected_version: int | None) -> int:
	if current is None:
		raise NotFoundError("Club not found")
	if expected_version is not None and int(current) != expected_version:
		raise version_mismatch()
	return await conn.fetchval(
		"UPDATE clubs SET version = version + 1, updated_at = now() WHERE id = $1 RETURNING version",
		club_id,
	)


async def _lock_and_bump(conn: asyncpg.Connection, club_id: UUID, expected_version: int | None) -> int:
	"""Lock the club row for the rest of the transaction and bump its version."""
	current = await conn.fetchval("SELECT version FROM clubs WHERE id = $1 FOR UPDATE", club_id)
	return await _bump_locked(conn, club_id, current, expected_version)


async def _lock_open_club_and_bump(conn: asyncpg.Connection, club_id: UUID, expected_version: int | None) -> int:
	"""Same as _lock_and_bump, but the locked row must still be an active club."""
	row = await conn.fetchrow("SELECT status, version FROM clubs WHERE id = $1 FOR UPDATE", club_id)
	if row is None:
		raise NotFoundError("Club not found")
	if row["status"] != ClubStatus.ACTIVE.value:
		raise InvalidStateError("Cannot join inactive club")
	return await _bump_locked(conn, club_id, row["version"], expected_version)


class PostgresClubRepository(ClubRepository):
	"""Clubs own their membership rows; users' joined clubs live in user_joined_clubs."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def create_club(self, club: Club) -> Club:
		async with self._pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					f"""
					INSERT INTO clubs (id, name, description, category, status, image, founded, contact_email,
						meeting_schedule, requirements, president_id, vice_president_id, secretary_id,
						treasurer_id, version, created_at, updated_at)
					VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
					RETURNING {_CLUB_COLUMNS}
					""",
					club.id,
					club.name,
					club.description,
					club.category,
					club.status.value,
					club.image,
					club.founded,
					club.contact_email,
					club.meeting_schedule,
					club.requirements,
					club.leadership.president,
					club.leadership.vice_president,
					club.leadership.secretary,
					club.leadership.treasurer,
					club.version,
					club.created_at,
					club.updated_at,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError("Club with this name already exists") from exc
		return _row_to_club(row)

	async def get_club(self, club_id: UUID) -> Club | None:
		async with self._pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_CLUB_COLUMNS} FROM clubs WHERE id = $1", club_id)
			if row is None:
				return None
			clubs = await _hydrate(conn, [row])
		return clubs[0]

	async def find_by_name(self, name: str, *, exclude_id: UUID | None = None) -> Club | None:
		async with self._pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				SELECT {_CLUB_COLUMNS} FROM clubs
				WHERE lower(name) = lower($1) AND ($2::uuid IS NULL OR id <> $2)
				""",
				name,
				exclude_id,
			)
			if row is None:
				return None
			clubs = await _hydrate(conn, [row])
		return clubs[0]

	async def update_club(
		self,
		club_id: UUID,
		changes: Mapping[str, Any],
		*,
		expected_version: int | None = None,
	) -> Club:
		unknown = set(changes) - UPDATABLE_FIELDS
		if unknown:
			raise ValueError(f"unsupported club fields: {sorted(unknown)}")
		fields: list[str] = []
		values: list[object] = []
		for key, value in changes.items():
			if key == "leadership":
				leadership = value if isinstance(value, Leadership) else Leadership(**value)
				for attr, column in _LEADERSHIP_COLUMNS.items():
					fields.append("%s=$%d" % (column, len(values) + 2))
					values.append(getattr(leadership, attr))
				continue
			if key == "status" and isinstance(value, ClubStatus):
				value = value.value
			fields.append("%s=$%d" % (key, len(values) + 2))
			values.append(value)
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				await _lock_and_bump(conn, club_id, expected_version)
				try:
					if fields:
						row = await conn.fetchrow(
							f"UPDATE clubs SET {', '.join(fields)} WHERE id = $1 RETURNING {_CLUB_COLUMNS}",
							club_id,
							*values,
						)
					else:
						row = await conn.fetchrow(f"SELECT {_CLUB_COLUMNS} FROM clubs WHERE id = $1", club_id)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("Club with this name already exists") from exc
				clubs = await _hydrate(conn, [row])
		return clubs[0]

	async def delete_club(self, club_id: UUID) -> bool:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute("DELETE FROM user_joined_clubs WHERE club_id = $1", club_id)
				await conn.execute("DELETE FROM club_members WHERE club_id = $1", club_id)
				result = await conn.execute("DELETE FROM clubs WHERE id = $1", club_id)
		return result.endswith(" 1")

	async def list_clubs(self, query: ClubQuery) -> ClubPage:
		clauses: list[str] = []
		values: list[object] = []
		if query.status is not None:
			values.append(query.status.value)
			clauses.append(f"status = ${len(values)}")
		if query.category:
			values.append(query.category)
			clauses.append(f"category = ${len(values)}")
		if query.search:
			values.append(_like_pattern(query.search))
			n = len(values)
			clauses.append(f"(name ILIKE ${n} ESCAPE '\\' OR description ILIKE ${n} ESCAPE '\\')")
		where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
		async with self._pool.acquire() as conn:
			total = await conn.fetchval(f"SELECT count(*) FROM clubs {where}", *values)
			rows = await conn.fetch(
				f"""
				SELECT {_CLUB_COLUMNS} FROM clubs {where}
				ORDER BY lower(name)
				LIMIT ${len(values) + 1} OFFSET ${len(values) + 2}
				""",
				*values,
				query.limit,
				query.offset,
			)
			clubs = await _hydrate(conn, rows)
		return ClubPage(clubs=clubs, total=int(total or 0), page=query.page, limit=query.limit)

	async def list_clubs_by_ids(self, club_ids: Sequence[UUID]) -> List[Club]:
		if not club_ids:
			return []
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {_CLUB_COLUMNS} FROM clubs WHERE id = ANY($1::uuid[])",
				list(club_ids),
			)
			clubs = await _hydrate(conn, rows)
		by_id = {club.id: club for club in clubs}
		return [by_id[cid] for cid in club_ids if cid in by_id]

	async def stats(self) -> ClubStats:
		async with self._pool.acquire() as conn:
			status_rows = await conn.fetch("SELECT status, count(*) AS count FROM clubs GROUP BY status")
			category_rows = await conn.fetch(
				"SELECT category, count(*) AS count FROM clubs GROUP BY category ORDER BY count(*) DESC, category"
			)
			popular_rows = await conn.fetch(
				"""
				SELECT c.id, c.name, count(m.id) FILTER (WHERE m.status = 'approved') AS member_count
				FROM clubs c
				LEFT JOIN club_members m ON m.club_id = c.id
				GROUP BY c.id, c.name
				ORDER BY member_count DESC, lower(c.name)
				"""
			)
		by_status = {row["status"]: int(row["count"]) for row in status_rows}
		stats = ClubStats(
			total_clubs=sum(by_status.values()),
			active_clubs=by_status.get(ClubStatus.ACTIVE.value, 0),
			pending_clubs=by_status.get(ClubStatus.PENDING_APPROVAL.value, 0),
			inactive_clubs=by_status.get(ClubStatus.INACTIVE.value, 0),
		)
		stats.clubs_by_category = [
			CategoryCount(category=row["category"], count=int(row["count"])) for row in category_rows
		]
		stats.total_members = sum(int(row["member_count"]) for row in popular_rows)
		stats.avg_members = round(stats.total_members / stats.total_clubs) if stats.total_clubs else 0
		stats.popular_clubs = [
			PopularClub(id=row["id"], name=row["name"], member_count=int(row["member_count"]))
			for row in popular_rows[:POPULAR_LIMIT]
		]
		return stats

	async def append_membership(
		self,
		membership: Membership,
		*,
		expected_version: int | None = None,
	) -> Membership:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				await _lock_open_club_and_bump(conn, membership.club_id, expected_version)
				try:
					row = await conn.fetchrow(
						f"""
						INSERT INTO club_members (id, club_id, user_id, full_name, department, year, background,
							role, status, requested_at, updated_at)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
						RETURNING {_MEMBER_COLUMNS}
						""",
						membership.id,
						membership.club_id,
						membership.user_id,
						membership.full_name,
						membership.department,
						membership.year,
						membership.background,
						membership.role,
						membership.status.value,
						membership.requested_at,
						membership.updated_at,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("You are already a member of this club") from exc
		return _row_to_membership(row)

	async def transition_membership(
		self,
		club_id: UUID,
		membership_id: UUID,
		status: MembershipStatus,
		*,
		expected_version: int | None = None,
	) -> Tuple[MembershipStatus, Membership] | None:
		try:
			async with self._pool.acquire() as conn:
				async with conn.transaction():
					await _lock_and_bump(conn, club_id, expected_version)
					previous = await conn.fetchval(
						"SELECT status FROM club_members WHERE id = $1 AND club_id = $2 FOR UPDATE",
						membership_id,
						club_id,
					)
					if previous is None:
						# Raising rolls back the version bump.
						raise _MissingMember()
					try:
						row = await conn.fetchrow(
							f"""
							UPDATE club_members SET status = $3, updated_at = now()
							WHERE id = $1 AND club_id = $2
							RETURNING {_MEMBER_COLUMNS}
							""",
							membership_id,
							club_id,
							status.value,
						)
					except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
						raise ConflictError("User already has an active membership in this club") from exc
					previous_status = MembershipStatus(previous)
					if status == MembershipStatus.APPROVED:
						await conn.execute(
							"""
							INSERT INTO user_joined_clubs (user_id, club_id)
							VALUES ($1, $2)
							ON CONFLICT (user_id, club_id) DO NOTHING
							""",
							row["user_id"],
							club_id,
						)
					elif previous_status == MembershipStatus.APPROVED:
						await conn.execute(
							"DELETE FROM user_joined_clubs WHERE user_id = $1 AND club_id = $2",
							row["user_id"],
							club_id,
						)
		except _MissingMember:
			return None
		return previous_status, _row_to_membership(row)

	async def remove_membership(
		self,
		club_id: UUID,
		membership_id: UUID,
		*,
		expected_version: int | None = None,
	) -> Membership | None:
		try:
			async with self._pool.acquire() as conn:
				async with conn.transaction():
					await _lock_and_bump(conn, club_id, expected_version)
					row = await conn.fetchrow(
						f"DELETE FROM club_members WHERE id = $1 AND club_id = $2 RETURNING {_MEMBER_COLUMNS}",
						membership_id,
						club_id,
					)
					if row is None:
						raise _MissingMember()
					await conn.execute(
						"DELETE FROM user_joined_clubs WHERE user_id = $1 AND club_id = $2",
						row["user_id"],
						club_id,
					)
		except _MissingMember:
			return None
		return _row_to_membership(row)

	async def joined_club_ids(self, user_id: UUID) -> List[UUID]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT club_id FROM user_joined_clubs WHERE user_id = $1 ORDER BY joined_at",
				user_id,
			)
		return [row["club_id"] for row in rows]


class _MissingMember(Exception):
	"""Aborts a transaction whose target membership row is gone."""
