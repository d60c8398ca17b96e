"""Storage contracts and the in-memory store for elections and cast ballots."""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Protocol, Set, Tuple
from uuid import UUID

from fastapi import status as http_status

from campushub.domain.elections.models import Election, ElectionStats, ElectionStatus
from campushub.domain.exceptions import ConflictError, InvalidStateError, NotFoundError, version_mismatch

UPDATABLE_FIELDS = frozenset({"title", "description", "start_date", "end_date", "eligible_voters"})


def already_voted() -> ConflictError:
	return ConflictError("You have already voted in this election", status_code=http_status.HTTP_409_CONFLICT)


def voting_closed() -> InvalidStateError:
	return InvalidStateError("Voting has closed for this election")


class ElectionRepository(Protocol):
	"""Persistence for elections, their ordered candidates and users' voted-election sets."""

	async def create_election(self, election: Election) -> Election:
		...

	async def get_election(self, election_id: UUID) -> Election | None:
		...

	async def list_elections(self, status: ElectionStatus | None = None) -> List[Election]:
		...

	async def update_election(
		self,
		election_id: UUID,
		changes: Mapping[str, Any],
		*,
		expected_version: int | None = None,
	) -> Election:
		...

	async def set_status(
		self,
		election_id: UUID,
		status: ElectionStatus,
		*,
		expected_version: int | None = None,
	) -> Election:
		...

	async def mark_announced(self, election_id: UUID, announced_at: datetime) -> Tuple[Election, bool]:
		"""Complete the election; the flag is True only for the first announcement."""
		...

	async def delete_election(self, election_id: UUID) -> bool:
		...

	async def record_vote(self, election_id: UUID, user_id: UUID, candidate_id: UUID) -> Election:
		"""Check-and-record one ballot as a single atomic unit."""
		...

	async def has_voted(self, election_id: UUID, user_id: UUID) -> bool:
		...

	async def voted_election_ids(self, user_id: UUID) -> List[UUID]:
		...

	async def stats(self) -> ElectionStats:
		...


def _now() -> datetime:
	return datetime.now(timezone.utc)


def build_stats(elections: List[Election]) -> ElectionStats:
	stats = ElectionStats(total_elections=len(elections))
	for election in elections:
		if election.status == ElectionStatus.PENDING:
			stats.pending_elections += 1
		elif election.status == ElectionStatus.ONGOING:
			stats.ongoing_elections += 1
		else:
			stats.completed_elections += 1
		stats.total_votes += election.total_votes
		stats.eligible_voters += election.eligible_voters
	return stats


class InMemoryElectionRepository(ElectionRepository):
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._elections: Dict[UUID, Election] = {}
		self._voted: Dict[UUID, Set[UUID]] = {}
		self._voted_order: Dict[UUID, List[UUID]] = {}

	def _require(self, election_id: UUID) -> Election:
		election = self._elections.get(election_id)
		if election is None:
			raise NotFoundError("Election not found")
		return election

	def _bump(self, election: Election, expected_version: int | None) -> None:
		if expected_version is not None and election.version != expected_version:
			raise version_mismatch()
		election.version += 1
		election.updated_at = _now()

	async def create_election(self, election: Election) -> Election:
		async with self._lock:
			self._elections[election.id] = copy.deepcopy(election)
			return copy.deepcopy(election)

	async def get_election(self, election_id: UUID) -> Election | None:
		async with self._lock:
			election = self._elections.get(election_id)
			return copy.deepcopy(election) if election else None

	async def list_elections(self, status: ElectionStatus | None = None) -> List[Election]:
		async with self._lock:
			matched = [e for e in self._elections.values() if status is None or e.status == status]
			matched.sort(key=lambda e: e.created_at, reverse=True)
			return [copy.deepcopy(e) for e in matched]

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
		async with self._lock:
			election = self._require(election_id)
			self._bump(election, expected_version)
			for key, value in changes.items():
				setattr(election, key, value)
			return copy.deepcopy(election)

	async def set_status(
		self,
		election_id: UUID,
		status: ElectionStatus,
		*,
		expected_version: int | None = None,
	) -> Election:
		async with self._lock:
			election = self._require(election_id)
			self._bump(election, expected_version)
			election.status = status
			return copy.deepcopy(election)

	async def mark_announced(self, election_id: UUID, announced_at: datetime) -> Tuple[Election, bool]:
		async with self._lock:
			election = self._require(election_id)
			if election.results_announced_at is not None:
				return copy.deepcopy(election), False
			self._bump(election, None)
			election.status = ElectionStatus.COMPLETED
			election.results_announced_at = announced_at
			return copy.deepcopy(election), True

	async def delete_election(self, election_id: UUID) -> bool:
		async with self._lock:
			if self._elections.pop(election_id, None) is None:
				return False
			for user_id, voted in self._voted.items():
				if election_id in voted:
					voted.discard(election_id)
					self._voted_order[user_id].remove(election_id)
			return True

	async def record_vote(self, election_id: UUID, user_id: UUID, candidate_id: UUID) -> Election:
		async with self._lock:
			election = self._require(election_id)
			if not election.accepts_votes:
				raise voting_closed()
			if election_id in self._voted.get(user_id, set()):
				raise already_voted()
			candidate = election.find_candidate(candidate_id)
			if candidate is None:
				raise NotFoundError("Candidate not found")
			candidate.votes += 1
			election.total_votes += 1
			election.version += 1
			election.updated_at = _now()
			self._voted.setdefault(user_id, set()).add(election_id)
			self._voted_order.setdefault(user_id, []).append(election_id)
			return copy.deepcopy(election)

	async def has_voted(self, election_id: UUID, user_id: UUID) -> bool:
		async with self._lock:
			return election_id in self._voted.get(user_id, set())

	async def voted_election_ids(self, user_id: UUID) -> List[UUID]:
		async with self._lock:
			return list(self._voted_order.get(user_id, []))

	async def stats(self) -> ElectionStats:
		async with self._lock:
			return build_stats(list(self._elections.values()))
