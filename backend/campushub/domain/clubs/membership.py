"""Membership workflow: join requests, moderation and leaving."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from campushub.domain import container
from campushub.domain.clubs.models import Club, ClubStatus, Membership, MembershipStatus
from campushub.domain.clubs.repo import ClubRepository
from campushub.domain.exceptions import ConflictError, InvalidStateError, NotFoundError
from campushub.obs import audit
from campushub.obs import metrics as obs_metrics
from campushub.obs.logging import get_logger

logger = get_logger("campushub.clubs.membership")

PENDING_MESSAGE = "Your join request is already pending approval"
ALREADY_MEMBER_MESSAGE = "You are already a member of this club"


class MembershipManager:
	"""State transitions over a club's membership list.

	Join requests are two-phase: a request lands as ``pending`` and only an
	administrator's approval makes the user a member. Every check runs before
	the single write the repository performs for each transition.
	"""

	def __init__(self, *, repository: ClubRepository | None = None) -> None:
		self._repository = repository

	@property
	def repo(self) -> ClubRepository:
		return self._repository or container.clubs()

	async def _require_club(self, club_id: UUID) -> Club:
		club = await self.repo.get_club(club_id)
		if club is None:
			raise NotFoundError("Club not found")
		return club

	async def request_join(
		self,
		club_id: UUID,
		user_id: UUID,
		*,
		full_name: str,
		department: str,
		year: str,
		background: Optional[str] = None,
		expected_version: int | None = None,
	) -> Membership:
		club = await self._require_club(club_id)
		if club.status != ClubStatus.ACTIVE:
			obs_metrics.inc_membership_reject("join", "inactive")
			raise InvalidStateError("Cannot join inactive club")
		existing = club.active_membership_for(user_id)
		if existing is not None:
			if existing.status == MembershipStatus.PENDING:
				obs_metrics.inc_membership_reject("join", "pending")
				raise ConflictError(PENDING_MESSAGE)
			obs_metrics.inc_membership_reject("join", "member")
			raise ConflictError(ALREADY_MEMBER_MESSAGE)

		now = datetime.now(timezone.utc)
		membership = Membership(
			id=uuid4(),
			club_id=club_id,
			user_id=user_id,
			full_name=full_name.strip(),
			department=department.strip(),
			year=year.strip(),
			background=background.strip() if background else None,
			requested_at=now,
			updated_at=now,
		)
		stored = await self.repo.append_membership(membership, expected_version=expected_version)
		obs_metrics.inc_membership("join")
		logger.info(
			"club_join_requested",
			extra={"club_id": str(club_id), "membership_id": str(stored.id)},
		)
		await audit.log_event(
			"club.join_requested",
			user_id=str(user_id),
			meta={"club_id": str(club_id), "membership_id": str(stored.id)},
		)
		return stored

	async def approve_member(
		self,
		club_id: UUID,
		membership_id: UUID,
		*,
		expected_version: int | None = None,
	) -> Membership:
		return await self._transition(
			club_id, membership_id, MembershipStatus.APPROVED, expected_version=expected_version
		)

	async def reject_member(
		self,
		club_id: UUID,
		membership_id: UUID,
		*,
		expected_version: int | None = None,
	) -> Membership:
		return await self._transition(
			club_id, membership_id, MembershipStatus.REJECTED, expected_version=expected_version
		)

	async def _transition(
		self,
		club_id: UUID,
		membership_id: UUID,
		status: MembershipStatus,
		*,
		expected_version: int | None,
	) -> Membership:
		action = "approve" if status == MembershipStatus.APPROVED else "reject"
		club = await self._require_club(club_id)
		if club.find_member(membership_id) is None:
			obs_metrics.inc_membership_reject(action, "member_not_found")
			raise NotFoundError("Member not found")
		result = await self.repo.transition_membership(
			club_id, membership_id, status, expected_version=expected_version
		)
		if result is None:
			# Removed between the read and the write.
			raise NotFoundError("Member not found")
		previous, membership = result
		obs_metrics.inc_membership(action)
		logger.info(
			"club_member_transition",
			extra={
				"club_id": str(club_id),
				"membership_id": str(membership_id),
				"from_status": previous.value,
				"to_status": status.value,
			},
		)
		await audit.log_event(
			f"club.member_{status.value}",
			user_id=str(membership.user_id),
			meta={"club_id": str(club_id), "membership_id": str(membership_id), "previous": previous.value},
		)
		return membership

	async def leave_club(
		self,
		club_id: UUID,
		user_id: UUID,
		*,
		expected_version: int | None = None,
	) -> Membership:
		club = await self._require_club(club_id)
		target = club.membership_to_remove(user_id)
		if target is None:
			obs_metrics.inc_membership_reject("leave", "not_member")
			raise InvalidStateError("You are not a member of this club")
		removed = await self.repo.remove_membership(club_id, target.id, expected_version=expected_version)
		if removed is None:
			raise InvalidStateError("You are not a member of this club")
		obs_metrics.inc_membership("leave")
		await audit.log_event(
			"club.member_left",
			user_id=str(user_id),
			meta={"club_id": str(club_id), "membership_id": str(removed.id)},
		)
		return removed

	async def list_pending_requests(self, club_id: UUID) -> List[Membership]:
		club = await self._require_club(club_id)
		return club.pending_requests()
