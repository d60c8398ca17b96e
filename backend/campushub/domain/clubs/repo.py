"""Storage contracts and the in-memory store for clubs and their memberships."""

from __future__ import annotations

import asyncio
import copy
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Protocol, Sequence, Tuple
from uuid import UUID

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
from campushub.domain.exceptions import ConflictError, InvalidStateError, NotFoundError, version_mismatch

UPDATABLE_FIELDS = frozenset(
	{
		"name",
		"description",
		"category",
		"status",
		"image",
		"founded",
		"contact_email",
		"meeting_schedule",
		"requirements",
		"leadership",
	}
)

POPULAR_LIMIT = 5


class ClubRepository(Protocol):
	"""Persistence for clubs, their ordered membership lists and users' joined-club sets.

	Every mutating call bumps the club version; passing `expected_version`
	turns the call into a compare-and-swap that raises on a stale version.
	"""

	async def create_club(self, club: Club) -> Club:
		...

	async def get_club(self, club_id: UUID) -> Club | None:
		...

	async def find_by_name(self, name: str, *, exclude_id: UUID | None = None) -> Club | None:
		...

	async def update_club(
		self,
		club_id: UUID,
		changes: Mapping[str, Any],
		*,
		expected_version: int | None = None,
	) -> Club:
		...

	async def delete_club(self, club_id: UUID) -> bool:
		...

	async def list_clubs(self, query: ClubQuery) -> ClubPage:
		...

	async def list_clubs_by_ids(self, club_ids: Sequence[UUID]) -> List[Club]:
		...

	async def stats(self) -> ClubStats:
		...

	async def append_membership(
		self,
		membership: Membership,
		*,
		expected_version: int | None = None,
	) -> Membership:
		...

	async def transition_membership(
		self,
		club_id: UUID,
		membership_id: UUID,
		status: MembershipStatus,
		*,
		expected_version: int | None = None,
	) -> Tuple[MembershipStatus, Membership] | None:
		...

	async def remove_membership(
		self,
		club_id: UUID,
		membership_id: UUID,
		*,
		expected_version: int | None = None,
	) -> Membership | None:
		...

	async def joined_club_ids(self, user_id: UUID) -> List[UUID]:
		...


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _matches(club: Club, query: ClubQuery) -> bool:
	if query.status is not None and club.status != query.status:
		return False
	if query.category and club.category != query.category:
		return False
	if query.search:
		needle = query.search.lower()
		if needle not in club.name.lower() and needle not in (club.description or "").lower():
			return False
	return True


def build_stats(clubs: Sequence[Club]) -> ClubStats:
	"""Aggregate statistics over a full club listing."""
	stats = ClubStats(total_clubs=len(clubs))
	for club in clubs:
		if club.status == ClubStatus.ACTIVE:
			stats.active_clubs += 1
		elif club.status == ClubStatus.PENDING_APPROVAL:
			stats.pending_clubs += 1
		elif club.status == ClubStatus.INACTIVE:
			stats.inactive_clubs += 1
	counts = Counter(club.category for club in clubs)
	stats.clubs_by_category = [
		CategoryCount(category=category, count=count) for category, count in counts.most_common()
	]
	stats.total_members = sum(club.member_count for club in clubs)
	stats.avg_members = round(stats.total_members / len(clubs)) if clubs else 0
	ranked = sorted(clubs, key=lambda club: club.member_count, reverse=True)[:POPULAR_LIMIT]
	stats.popular_clubs = [
		PopularClub(id=club.id, name=club.name, member_count=club.member_count) for club in ranked
	]
	return stats


class InMemoryClubRepository(ClubRepository):
	"""Club store kept in process memory for local development and tests.

	A single lock serialises writers, which gives each call the same
	all-or-nothing behaviour as one Postgres transaction.
	"""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._clubs: Dict[UUID, Club] = {}
		# user id -> ordered set of club ids
		self._joined: Dict[UUID, Dict[UUID, None]] = {}

	def _bump(self, club: Club, expected_version: int | None) -> None:
		if expected_version is not None and club.version != expected_version:
			raise version_mismatch()
		club.version += 1
		club.updated_at = _now()

	def _require(self, club_id: UUID) -> Club:
		club = self._clubs.get(club_id)
		if club is None:
			raise NotFoundError("Club not found")
		return club

	def _name_taken(self, name: str, exclude_id: UUID | None) -> Club | None:
		lowered = name.lower()
		for club in self._clubs.values():
			if club.id != exclude_id and club.name.lower() == lowered:
				return club
		return None

	async def create_club(self, club: Club) -> Club:
		async with self._lock:
			if self._name_taken(club.name, None) is not None:
				raise ConflictError("Club with this name already exists")
			self._clubs[club.id] = copy.deepcopy(club)
			return copy.deepcopy(club)

	async def get_club(self, club_id: UUID) -> Club | None:
		async with self._lock:
			club = self._clubs.get(club_id)
			return copy.deepcopy(club) if club else None

	async def find_by_name(self, name: str, *, exclude_id: UUID | None = None) -> Club | None:
		async with self._lock:
			club = self._name_taken(name, exclude_id)
			return copy.deepcopy(club) if club else None

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
		async with self._lock:
			club = self._require(club_id)
			new_name = changes.get("name")
			if new_name and self._name_taken(new_name, club_id) is not None:
				raise ConflictError("Club with this name already exists")
			self._bump(club, expected_version)
			for key, value in changes.items():
				if key == "leadership" and isinstance(value, Leadership):
					club.leadership = copy.deepcopy(value)
				else:
					setattr(club, key, value)
			return copy.deepcopy(club)

	async def delete_club(self, club_id: UUID) -> bool:
		async with self._lock:
			if self._clubs.pop(club_id, None) is None:
				return False
			for joined in self._joined.values():
				joined.pop(club_id, None)
			return True

	async def list_clubs(self, query: ClubQuery) -> ClubPage:
		async with self._lock:
			matched = sorted(
				(club for club in self._clubs.values() if _matches(club, query)),
				key=lambda club: club.name.lower(),
			)
			window = matched[query.offset : query.offset + query.limit]
			return ClubPage(
				clubs=[copy.deepcopy(club) for club in window],
				total=len(matched),
				page=query.page,
				limit=query.limit,
			)

	async def list_clubs_by_ids(self, club_ids: Sequence[UUID]) -> List[Club]:
		async with self._lock:
			return [copy.deepcopy(self._clubs[cid]) for cid in club_ids if cid in self._clubs]

	async def stats(self) -> ClubStats:
		async with self._lock:
			return build_stats(list(self._clubs.values()))

	async def append_membership(
		self,
		membership: Membership,
		*,
		expected_version: int | None = None,
	) -> Membership:
		async with self._lock:
			club = self._require(membership.club_id)
			if club.status != ClubStatus.ACTIVE:
				raise InvalidStateError("Cannot join inactive club")
			if club.active_membership_for(membership.user_id) is not None:
				raise ConflictError("You are already a member of this club")
			self._bump(club, expected_version)
			club.members.append(copy.deepcopy(membership))
			return copy.deepcopy(membership)

	async def transition_membership(
		self,
		club_id: UUID,
		membership_id: UUID,
		status: MembershipStatus,
		*,
		expected_version: int | None = None,
	) -> Tuple[MembershipStatus, Membership] | None:
		async with self._lock:
			club = self._require(club_id)
			member = club.find_member(membership_id)
			if member is None:
				return None
			previous = member.status
			if previous == MembershipStatus.REJECTED and status != MembershipStatus.REJECTED:
				other = club.active_membership_for(member.user_id)
				if other is not None and other.id != member.id:
					raise ConflictError("User already has an active membership in this club")
			self._bump(club, expected_version)
			member.status = status
			member.updated_at = _now()
			joined = self._joined.setdefault(member.user_id, {})
			if status == MembershipStatus.APPROVED:
				joined[club_id] = None
			elif previous == MembershipStatus.APPROVED:
				joined.pop(club_id, None)
			return previous, copy.deepcopy(member)

	async def remove_membership(
		self,
		club_id: UUID,
		membership_id: UUID,
		*,
		expected_version: int | None = None,
	) -> Membership | None:
		async with self._lock:
			club = self._require(club_id)
			member = club.find_member(membership_id)
			if member is None:
				return None
			self._bump(club, expected_version)
			club.members = [m for m in club.members if m.id != membership_id]
			self._joined.setdefault(member.user_id, {}).pop(club_id, None)
			return copy.deepcopy(member)

	async def joined_club_ids(self, user_id: UUID) -> List[UUID]:
		async with self._lock:
			return list(self._joined.get(user_id, {}))
