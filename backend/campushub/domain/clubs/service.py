"""Service for Clubs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from campushub.domain import container
from campushub.domain.clubs.models import Club, ClubPage, ClubQuery, ClubStats, ClubStatus
from campushub.domain.clubs.repo import ClubRepository
from campushub.domain.clubs.schemas import ClubCreateRequest, ClubUpdateRequest
from campushub.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from campushub.infra.auth import AuthenticatedUser
from campushub.obs import audit
from campushub.obs.logging import get_logger

logger = get_logger("campushub.clubs")

MAX_PAGE_SIZE = 100
NAME_TAKEN = "Club with this name already exists"


def _require_admin(actor: AuthenticatedUser) -> None:
	if not actor.is_admin:
		raise ForbiddenError("Admin access required")


class ClubService:
	"""Club catalog: administration, browsing and statistics."""

	def __init__(self, *, repository: ClubRepository | None = None) -> None:
		self._repository = repository

	@property
	def repo(self) -> ClubRepository:
		return self._repository or container.clubs()

	async def create_club(self, actor: AuthenticatedUser, data: ClubCreateRequest) -> Club:
		_require_admin(actor)
		name = data.name.strip()
		if await self.repo.find_by_name(name) is not None:
			raise ConflictError(NAME_TAKEN)
		now = datetime.now(timezone.utc)
		club = Club(
			id=uuid4(),
			name=name,
			description=data.description.strip(),
			category=data.category.strip(),
			# Clubs created by an administrator skip the approval queue.
			status=ClubStatus.ACTIVE,
			created_at=now,
			updated_at=now,
			image=data.image,
			founded=data.founded,
			contact_email=str(data.contact_email) if data.contact_email else None,
			meeting_schedule=data.meeting_schedule,
			requirements=data.requirements,
		)
		if data.leadership is not None:
			club.leadership = data.leadership.to_domain()
		created = await self.repo.create_club(club)
		logger.info("club_created", extra={"club_id": str(created.id)})
		await audit.log_event("club.created", user_id=actor.id, meta={"club_id": str(created.id), "name": created.name})
		return created

	async def update_club(
		self,
		actor: AuthenticatedUser,
		club_id: UUID,
		data: ClubUpdateRequest,
		*,
		expected_version: int | None = None,
	) -> Club:
		_require_admin(actor)
		changes: Dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
		if "leadership" in changes:
			changes["leadership"] = data.leadership.to_domain()
		if "contact_email" in changes:
			changes["contact_email"] = str(data.contact_email)
		if "name" in changes:
			changes["name"] = changes["name"].strip()
			if await self.repo.find_by_name(changes["name"], exclude_id=club_id) is not None:
				raise ConflictError(NAME_TAKEN)
		if not changes:
			return await self.get_club(club_id, actor)
		updated = await self.repo.update_club(club_id, changes, expected_version=expected_version)
		await audit.log_event(
			"club.updated",
			user_id=actor.id,
			meta={"club_id": str(club_id), "fields": ",".join(sorted(changes))},
		)
		return updated

	async def delete_club(self, actor: AuthenticatedUser, club_id: UUID) -> None:
		_require_admin(actor)
		if not await self.repo.delete_club(club_id):
			raise NotFoundError("Club not found")
		logger.info("club_deleted", extra={"club_id": str(club_id)})
		await audit.log_event("club.deleted", user_id=actor.id, meta={"club_id": str(club_id)})

	async def list_clubs(
		self,
		viewer: Optional[AuthenticatedUser],
		*,
		category: Optional[str] = None,
		status: Optional[ClubStatus] = None,
		search: Optional[str] = None,
		page: int = 1,
		limit: int = 20,
	) -> ClubPage:
		if viewer is None or not viewer.is_admin:
			status = ClubStatus.ACTIVE
		query = ClubQuery(
			category=category or None,
			status=status,
			search=(search or "").strip() or None,
			page=max(page, 1),
			limit=min(max(limit, 1), MAX_PAGE_SIZE),
		)
		return await self.repo.list_clubs(query)

	async def get_club(self, club_id: UUID, viewer: Optional[AuthenticatedUser] = None) -> Club:
		club = await self.repo.get_club(club_id)
		if club is None:
			raise NotFoundError("Club not found")
		if club.status != ClubStatus.ACTIVE and (viewer is None or not viewer.is_admin):
			raise NotFoundError("Club not found")
		return club

	async def club_stats(self, actor: AuthenticatedUser) -> ClubStats:
		_require_admin(actor)
		return await self.repo.stats()

	async def user_clubs(self, user_id: UUID) -> List[Club]:
		club_ids = await self.repo.joined_club_ids(user_id)
		return await self.repo.list_clubs_by_ids(club_ids)
