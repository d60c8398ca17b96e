"""PostgreSQL persistence for elections, election_candidates and user_voted_elections."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Tuple
from uuid import UUID

import asyncpg

from campushub.domain.elections.models import Candidate, Election, ElectionStats, ElectionStatus
from campushub.domain.elections.repo import (
	UPDATABLE_FIELDS,
	ElectionRepository,
	already_voted,
	voting_closed,
)
from campushub.domain.exceptions import NotFoundError, version_mismatch

_ELECTION_COLUMNS = """
	id, title, description, start_date, end_date, status, total_votes, eligible_voters,
	results_announced_at, created_by, version, created_at, updated_at
"""

_CANDIDATE_COLUMNS = "id, election_id, name, department, year, platform, image, votes"


def _row_to_candidate(row: asyncpg.Record) -> Candidate:
	return Candidate(
		id=row["id"],
		name=row["name"],
		department=row["department"],
		year=row["year"],
		platform=list(row["platform"] or []),
		image=row["image"],
		votes=int(row["votes"]),
	)


def _row_to_election(row: asyncpg.Record, candidates: Sequence[Candidate] = ()) -> Election:
	return Election(
		id=row["id"],
		title=row["title"],
		description=row["description"],
		start_date=row["start_date"],
		end_date=row["end_date"],
		created_at=row["created_at"],
		updated_at=row["updated_at"],
		status=ElectionStatus(row["status"]),
		candidates=list(candidates),
		total_votes=int(row["total_votes"]),
		eligible_voters=int(row["eligible_voters"]),
		results_announced_at=row["results_announced_at"],
		created_by=row["created_by"],
		version=int(row["version"]),
	)


async def _hydrate(conn: asyncpg.Connection, rows: Sequence[asyncpg.Record]) -> List[Election]:
	if not rows:
		return []
	ids = [row["id"] for row in rows]
	candidate_rows = await conn.fetch(
		f"""
		SELECT {_CANDIDATE_COLUMNS} FROM election_candidates
		WHERE election_id = ANY($1::uuid[])
		ORDER BY election_id, position
		""",
		ids,
	)
	grouped: Dict[UUID, List[Candidate]] = {eid: [] for eid in ids}
	for candidate_row in candidate_rows:
		grouped[candidate_row["election_id"]].append(_row_to_candidate(candidate_row))
	return [_row_to_election(row, grouped[row["id"]]) for row in rows]


async def _fetch_one(conn: asyncpg.Connection, election_id: UUID) -> Election:
	row = await conn.fetchrow(f"SELECT {_ELECTION_COLUMNS} FROM elections WHERE id = $1", election_id)
	if row is None:
		raise NotFoundError("Election not found")
	elections = await _hydrate(conn, [row])
	return elections[0]


async def _lock(conn: asyncpg.Connection, election_id: UUID) -> asyncpg.Record:
	row = await conn.fetchrow(
		"SELECT status, version, results_announced_at FROM elections WHERE id = $1 FOR UPDATE",
		election_id,
	)
	if row is None:
		raise NotFoundError("Election not found")
	return row


class PostgresElectionRepository(ElectionRepository):
	"""Candidates are owned rows ordered by position; ballots only record who voted where."""

	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def create_election(self, election: Election) -> Election:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"""
					INSERT INTO elections (id, title, description, start_date, end_date, status, total_votes,
						eligible_voters, results_announced_at, created_by, version, created_at, updated_at)
					VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
					""",
					election.id,
					election.title,
					election.description,
					election.start_date,
					election.end_date,
					election.status.value,
					election.total_votes,
					election.eligible_voters,
					election.results_announced_at,
					election.created_by,
					election.version,
					election.created_at,
					election.updated_at,
				)
				await conn.executemany(
					"""
					INSERT INTO election_candidates (id, election_id, position, name, department, year, platform,
						image, votes)
					VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
					""",
					[
						(
							candidate.id,
							election.id,
							position,
							candidate.name,
							candidate.department,
							candidate.year,
							list(candidate.platform),
							candidate.image,
							candidate.votes,
						)
						for position, candidate in enumerate(election.candidates)
					],
				)
				return await _fetch_one(conn, election.id)

	async def get_election(self, election_id: UUID) -> Election | None:
		async with self._pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_ELECTION_COLUMNS} FROM elections WHERE id = $1", election_id)
			if row is None:
				return None
			elections = await _hydrate(conn, [row])
		return elections[0]

	async def list_elections(self, status: ElectionStatus | None = None) -> List[Election]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_ELECTION_COLUMNS} FROM elections
				WHERE ($1::text IS NULL OR status = $1)
				ORDER BY created_at DESC
				""",
				status.value if status is not None else None,
			)
			return await _hydrate(conn, rows)

	async def update_election(
		self,
		election_id: UUID,
		changes: Mapping[str, Any],
		*,
		expected_version: int | None = None,
	) -> Election:
		unknown = set(changes) - UPDATABLE_FIELDS
		if unknown:
			raise ValueError(f"unsupported election fields: {sorted(unknown)}")
		fields: list[str] = []
		values: list[object] = []
		for key, value in changes.items():
			fields.append("%s=$%d" % (key, len(values) + 2))
			values.append(value)
		fields.append("version = version + 1")
		fields.append("updated_at = now()")
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				locked = await _lock(conn, election_id)
				if expected_version is not None and int(locked["version"]) != expected_version:
					raise version_mismatch()
				await conn.execute(f"UPDATE elections SET {', '.join(fields)} WHERE id = $1", election_id, *values)
				return await _fetch_one(conn, election_id)

	async def set_status(
		self,
		election_id: UUID,
		status: ElectionStatus,
		*,
		expected_version: int | None = None,
	) -> Election:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				locked = await _lock(conn, election_id)
				if expected_version is not None and int(locked["version"]) != expected_version:
					raise version_mismatch()
				await conn.execute(
					"UPDATE elections SET status = $2, version = version + 1, updated_at = now() WHERE id = $1",
					election_id,
					status.value,
				)
				return await _fetch_one(conn, election_id)

	async def mark_announced(self, election_id: UUID, announced_at: datetime) -> Tuple[Election, bool]:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				updated = await conn.fetchval(
					"""
					UPDATE elections
					SET status = $2, results_announced_at = $3, version = version + 1, updated_at = now()
					WHERE id = $1 AND results_announced_at IS NULL
					RETURNING id
					""",
					election_id,
					ElectionStatus.COMPLETED.value,
					announced_at,
				)
				election = await _fetch_one(conn, election_id)
		return election, updated is not None

	async def delete_election(self, election_id: UUID) -> bool:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute("DELETE FROM user_voted_elections WHERE election_id = $1", election_id)
				await conn.execute("DELETE FROM election_candidates WHERE election_id = $1", election_id)
				result = await conn.execute("DELETE FROM elections WHERE id = $1", election_id)
		return result.endswith(" 1")

	async def record_vote(self, election_id: UUID, user_id: UUID, candidate_id: UUID) -> Election:
		async with self._pool.acquire() as conn:
			async with conn.transaction():
				locked = await _lock(conn, election_id)
				if ElectionStatus(locked["status"]) == ElectionStatus.COMPLETED:
					raise voting_closed()
				ballot = await conn.fetchval(
					"""
					INSERT INTO user_voted_elections (user_id, election_id)
					VALUES ($1, $2)
					ON CONFLICT (user_id, election_id) DO NOTHING
					RETURNING election_id
					""",
					user_id,
					election_id,
				)
				if ballot is None:
					raise already_voted()
				counted = await conn.fetchval(
					"""
					UPDATE election_candidates SET votes = votes + 1
					WHERE id = $1 AND election_id = $2
					RETURNING id
					""",
					candidate_id,
					election_id,
				)
				if counted is None:
					# Rolls back the ballot row as well.
					raise NotFoundError("Candidate not found")
				await conn.execute(
					"""
					UPDATE elections SET total_votes = total_votes + 1, version = version + 1, updated_at = now()
					WHERE id = $1
					""",
					election_id,
				)
				return await _fetch_one(conn, election_id)

	async def has_voted(self, election_id: UUID, user_id: UUID) -> bool:
		async with self._pool.acquire() as conn:
			found = await conn.fetchval(
				"SELECT 1 FROM user_voted_elections WHERE user_id = $1 AND election_id = $2",
				user_id,
				election_id,
			)
		return found is not None

	async def voted_election_ids(self, user_id: UUID) -> List[UUID]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT election_id FROM user_voted_elections WHERE user_id = $1 ORDER BY voted_at",
				user_id,
			)
		return [row["election_id"] for row in rows]

	async def stats(self) -> ElectionStats:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT status, count(*) AS count, coalesce(sum(total_votes), 0) AS votes,
					coalesce(sum(eligible_voters), 0) AS eligible
				FROM elections
				GROUP BY status
				"""
			)
		stats = ElectionStats()
		for row in rows:
			count = int(row["count"])
			stats.total_elections += count
			stats.total_votes += int(row["votes"])
			stats.eligible_voters += int(row["eligible"])
			status = ElectionStatus(row["status"])
			if status == ElectionStatus.PENDING:
				stats.pending_elections = count
			elif status == ElectionStatus.ONGOING:
				stats.ongoing_elections = count
			else:
				stats.completed_elections = count
		return stats
