"""Election lifecycle and vote tallying."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from campushub.domain import container
from campushub.domain.elections.models import (
	STATUS_ORDER,
	Candidate,
	Election,
	ElectionResults,
	ElectionStats,
	ElectionStatus,
)
from campushub.domain.elections.repo import ElectionRepository, already_voted, voting_closed
from campushub.domain.elections.schemas import ElectionCreateRequest, ElectionUpdateRequest
from campushub.domain.elections.tally import build_results
from campushub.domain.exceptions import DomainError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from campushub.infra.auth import AuthenticatedUser
from campushub.obs import audit
from campushub.obs import metrics as obs_metrics
from campushub.obs.logging import get_logger

logger = get_logger("campushub.elections")

MIN_CANDIDATES = 2


def _require_admin(actor: AuthenticatedUser) -> None:
	if not actor.is_admin:
		raise ForbiddenError("Admin access required")


def _check_window(start: datetime, end: datetime) -> None:
	if end < start:
		raise ValidationError("End date must be after start date")


class ElectionTally:
	"""Owns election state: candidates, per-candidate counters and the voted-once rule."""

	def __init__(self, *, repository: ElectionRepository | None = None) -> None:
		self._repository = repository

	@property
	def repo(self) -> ElectionRepository:
		return self._repository or container.elections()

	async def get_election(self, election_id: UUID) -> Election:
		election = await self.repo.get_election(election_id)
		if election is None:
			raise NotFoundError("Election not found")
		return election

	async def list_elections(self, status: ElectionStatus | None = None) -> List[Election]:
		return await self.repo.list_elections(status)

	async def create_election(self, actor: AuthenticatedUser, payload: ElectionCreateRequest) -> Election:
		_require_admin(actor)
		if len(payload.candidates) < MIN_CANDIDATES:
			raise ValidationError("At least two candidates are required")
		_check_window(payload.start_date, payload.end_date)
		now = datetime.now(timezone.utc)
		election = Election(
			id=uuid4(),
			title=payload.title.strip(),
			description=payload.description.strip(),
			start_date=payload.start_date,
			end_date=payload.end_date,
			created_at=now,
			updated_at=now,
			candidates=[
				Candidate(
					id=uuid4(),
					name=item.name.strip(),
					department=item.department.strip(),
					year=item.year.strip(),
					platform=[line.strip() for line in item.platform if line.strip()],
					image=item.image,
				)
				for item in payload.candidates
			],
			eligible_voters=payload.eligible_voters,
			created_by=_actor_uuid(actor),
		)
		created = await self.repo.create_election(election)
		logger.info("election_created", extra={"election_id": str(created.id), "candidates": len(created.candidates)})
		await audit.log_event("election.created", user_id=actor.id, meta={"election_id": str(created.id)})
		return created

	async def update_election(
		self,
		actor: AuthenticatedUser,
		election_id: UUID,
		payload: ElectionUpdateRequest,
		*,
		expected_version: int | None = None,
	) -> Election:
		_require_admin(actor)
		current = await self.get_election(election_id)
		changes: Dict[str, Any] = payload.model_dump(exclude_unset=True, exclude_none=True)
		if not changes:
			return current
		_check_window(changes.get("start_date", current.start_date), changes.get("end_date", current.end_date))
		updated = await self.repo.update_election(election_id, changes, expected_version=expected_version)
		await audit.log_event(
			"election.updated", user_id=actor.id, meta={"election_id": str(election_id), "fields": ",".join(sorted(changes))}
		)
		return updated

	async def update_status(
		self,
		actor: AuthenticatedUser,
		election_id: UUID,
		status: ElectionStatus,
		*,
		expected_version: int | None = None,
	) -> Election:
		_require_admin(actor)
		current = await self.get_election(election_id)
		if STATUS_ORDER[status] < STATUS_ORDER[current.status]:
			raise InvalidStateError(f"Cannot move election from {current.status.value} to {status.value}")
		if status == current.status:
			return current
		updated = await self.repo.set_status(election_id, status, expected_version=expected_version)
		logger.info(
			"election_status_changed",
			extra={"election_id": str(election_id), "from_status": current.status.value, "to_status": status.value},
		)
		await audit.log_event(
			"election.status_changed",
			user_id=actor.id,
			meta={"election_id": str(election_id), "status": status.value},
		)
		return updated

	async def delete_election(self, actor: AuthenticatedUser, election_id: UUID) -> None:
		_require_admin(actor)
		if not await self.repo.delete_election(election_id):
			raise NotFoundError("Election not found")
		await audit.log_event("election.deleted", user_id=actor.id, meta={"election_id": str(election_id)})

	async def cast_vote(self, election_id: UUID, user_id: UUID, candidate_id: UUID) -> Election:
		election = await self.get_election(election_id)
		try:
			if election.find_candidate(candidate_id) is None:
				raise NotFoundError("Candidate not found")
			if not election.accepts_votes:
				raise voting_closed()
			if await self.repo.has_voted(election_id, user_id):
				raise already_voted()
			# The repository repeats these checks inside the write.
			updated = await self.repo.record_vote(election_id, user_id, candidate_id)
		except DomainError as exc:
			obs_metrics.inc_vote_reject(type(exc).__name__)
			raise
		obs_metrics.inc_vote()
		logger.info("election_vote_cast", extra={"election_id": str(election_id)})
		# Ballots are secret; the audit trail records who voted, never for whom.
		await audit.log_event("election.vote_cast", user_id=str(user_id), meta={"election_id": str(election_id)})
		return updated

	async def has_voted(self, election_id: UUID, user_id: UUID) -> bool:
		return await self.repo.has_voted(election_id, user_id)

	async def announce_results(self, actor: AuthenticatedUser, election_id: UUID) -> ElectionResults:
		_require_admin(actor)
		election, first = await self.repo.mark_announced(election_id, datetime.now(timezone.utc))
		obs_metrics.inc_announcement(first)
		if first:
			logger.info(
				"election_results_announced",
				extra={"election_id": str(election_id), "total_votes": election.total_votes},
			)
			await audit.log_event(
				"election.results_announced",
				user_id=actor.id,
				meta={"election_id": str(election_id), "total_votes": election.total_votes},
			)
		return build_results(election)

	async def results(self, election_id: UUID) -> ElectionResults:
		return build_results(await self.get_election(election_id))

	async def election_stats(self, actor: AuthenticatedUser) -> ElectionStats:
		_require_admin(actor)
		return await self.repo.stats()


def _actor_uuid(actor: AuthenticatedUser) -> Optional[UUID]:
	try:
		return UUID(actor.id)
	except ValueError:
		return None
