import pytest
from uuid import uuid4

from campushub.domain import container
from campushub.domain.clubs.membership import MembershipManager
from campushub.domain.clubs.models import ClubStatus, MembershipStatus
from campushub.domain.clubs.repo import InMemoryClubRepository
from campushub.domain.clubs.schemas import ClubCreateRequest, ClubUpdateRequest
from campushub.domain.clubs.service import ClubService
from campushub.domain.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from campushub.infra.auth import AuthenticatedUser

ADMIN = AuthenticatedUser(id=str(uuid4()), roles=("admin",))


async def _make_club(name="Chess Club", *, status=None):
	club = await ClubService().create_club(
		ADMIN,
		ClubCreateRequest(name=name, description="Weekly games", category="Games"),
	)
	if status is not None:
		club = await ClubService().update_club(ADMIN, club.id, ClubUpdateRequest(status=status))
	return club


async def _join(manager, club_id, user_id):
	return await manager.request_join(
		club_id, user_id, full_name="Abebe Kebede", department="Computer Science", year="2nd Year"
	)


@pytest.mark.asyncio
async def test_join_creates_pending_request():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()

	membership = await _join(manager, club.id, user_id)

	assert membership.status == MembershipStatus.PENDING
	assert membership.full_name == "Abebe Kebede"
	pending = await manager.list_pending_requests(club.id)
	assert [m.id for m in pending] == [membership.id]
	# Not a member until approved.
	assert await container.clubs().joined_club_ids(user_id) == []
	stored = await container.clubs().get_club(club.id)
	assert stored.member_count == 0


@pytest.mark.asyncio
async def test_join_inactive_club_is_rejected_without_writing():
	manager = MembershipManager()
	club = await _make_club(status=ClubStatus.PENDING_APPROVAL)

	with pytest.raises(InvalidStateError) as exc:
		await _join(manager, club.id, uuid4())

	assert exc.value.detail == "Cannot join inactive club"
	stored = await container.clubs().get_club(club.id)
	assert stored.members == []


@pytest.mark.asyncio
async def test_join_unknown_club_is_not_found():
	with pytest.raises(NotFoundError):
		await _join(MembershipManager(), uuid4(), uuid4())


@pytest.mark.asyncio
async def test_duplicate_join_while_pending():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	await _join(manager, club.id, user_id)

	with pytest.raises(ConflictError) as exc:
		await _join(manager, club.id, user_id)

	assert exc.value.detail == "Your join request is already pending approval"
	stored = await container.clubs().get_club(club.id)
	assert len(stored.members) == 1


@pytest.mark.asyncio
async def test_approve_adds_back_reference_once():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	membership = await _join(manager, club.id, user_id)

	approved = await manager.approve_member(club.id, membership.id)
	again = await manager.approve_member(club.id, membership.id)

	assert approved.status == MembershipStatus.APPROVED
	assert again.status == MembershipStatus.APPROVED
	assert await container.clubs().joined_club_ids(user_id) == [club.id]
	stored = await container.clubs().get_club(club.id)
	assert stored.member_count == 1
	assert await manager.list_pending_requests(club.id) == []

	with pytest.raises(ConflictError) as exc:
		await _join(manager, club.id, user_id)
	assert exc.value.detail == "You are already a member of this club"


@pytest.mark.asyncio
async def test_approve_unknown_membership():
	manager = MembershipManager()
	club = await _make_club()

	with pytest.raises(NotFoundError) as exc:
		await manager.approve_member(club.id, uuid4())

	assert exc.value.detail == "Member not found"


@pytest.mark.asyncio
async def test_reject_approved_member_removes_back_reference():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	membership = await _join(manager, club.id, user_id)
	await manager.approve_member(club.id, membership.id)

	rejected = await manager.reject_member(club.id, membership.id)

	assert rejected.status == MembershipStatus.REJECTED
	assert await container.clubs().joined_club_ids(user_id) == []
	stored = await container.clubs().get_club(club.id)
	assert stored.member_count == 0


@pytest.mark.asyncio
async def test_rejected_user_may_request_again():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	first = await _join(manager, club.id, user_id)
	await manager.reject_member(club.id, first.id)

	second = await _join(manager, club.id, user_id)

	assert second.id != first.id
	assert second.status == MembershipStatus.PENDING


@pytest.mark.asyncio
async def test_leave_removes_entry_and_back_reference():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	membership = await _join(manager, club.id, user_id)
	await manager.approve_member(club.id, membership.id)

	removed = await manager.leave_club(club.id, user_id)

	assert removed.id == membership.id
	stored = await container.clubs().get_club(club.id)
	assert stored.members == []
	assert await container.clubs().joined_club_ids(user_id) == []

	with pytest.raises(InvalidStateError) as exc:
		await manager.leave_club(club.id, user_id)
	assert exc.value.detail == "You are not a member of this club"


@pytest.mark.asyncio
async def test_leave_withdraws_pending_request():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	await _join(manager, club.id, user_id)

	await manager.leave_club(club.id, user_id)

	assert await manager.list_pending_requests(club.id) == []


@pytest.mark.asyncio
async def test_stale_version_is_rejected():
	manager = MembershipManager()
	club = await _make_club()

	with pytest.raises(ConflictError) as exc:
		await manager.request_join(
			club.id,
			uuid4(),
			full_name="Hana Tesfaye",
			department="Law",
			year="1st Year",
			expected_version=club.version + 5,
		)

	assert exc.value.status_code == 409
	assert exc.value.detail == "version_mismatch"


@pytest.mark.asyncio
async def test_club_administration_requires_admin():
	student = AuthenticatedUser(id=str(uuid4()), roles=("student",))
	with pytest.raises(ForbiddenError):
		await ClubService().create_club(
			student, ClubCreateRequest(name="Drama Club", description="Stage", category="Arts")
		)


@pytest.mark.asyncio
async def test_duplicate_club_name_conflicts():
	await _make_club("Robotics")
	with pytest.raises(ConflictError) as exc:
		await _make_club("robotics")
	assert exc.value.detail == "Club with this name already exists"


@pytest.mark.asyncio
async def test_non_admin_listing_only_sees_active_clubs():
	service = ClubService()
	await _make_club("Active Club")
	await _make_club("Dormant Club", status=ClubStatus.INACTIVE)

	public = await service.list_clubs(None)
	admin_view = await service.list_clubs(ADMIN)

	assert [c.name for c in public.clubs] == ["Active Club"]
	assert public.total == 1
	assert {c.name for c in admin_view.clubs} == {"Active Club", "Dormant Club"}


@pytest.mark.asyncio
async def test_user_clubs_follow_approval_order():
	manager = MembershipManager()
	first = await _make_club("Alpha Society")
	second = await _make_club("Beta Society")
	user_id = uuid4()
	m2 = await _join(manager, second.id, user_id)
	m1 = await _join(manager, first.id, user_id)
	await manager.approve_member(second.id, m2.id)
	await manager.approve_member(first.id, m1.id)

	clubs = await ClubService().user_clubs(user_id)

	assert [c.id for c in clubs] == [second.id, first.id]


class _DeactivatedAfterRead(InMemoryClubRepository):
	"""Hands out the active snapshot, then an admin deactivates the club before the write."""

	async def get_club(self, club_id):
		club = await super().get_club(club_id)
		self._clubs[club_id].status = ClubStatus.INACTIVE
		return club


@pytest.mark.asyncio
async def test_join_rechecks_status_under_write_lock():
	repo = _DeactivatedAfterRead()
	container.configure(clubs_repository=repo)
	club = await ClubService().create_club(
		ADMIN,
		ClubCreateRequest(name="Drama Club", description="Stage nights", category="Arts"),
	)

	with pytest.raises(InvalidStateError) as exc:
		await _join(MembershipManager(repository=repo), club.id, uuid4())

	assert exc.value.detail == "Cannot join inactive club"
	stored = repo._clubs[club.id]
	assert stored.status == ClubStatus.INACTIVE
	assert stored.members == []


@pytest.mark.asyncio
async def test_pending_requests_keep_insertion_order():
	manager = MembershipManager()
	club = await _make_club()
	first = await _join(manager, club.id, uuid4())
	middle = await _join(manager, club.id, uuid4())
	last = await _join(manager, club.id, uuid4())

	await manager.approve_member(club.id, middle.id)

	pending = await manager.list_pending_requests(club.id)
	assert [m.id for m in pending] == [first.id, last.id]


@pytest.mark.asyncio
async def test_reapproving_rejected_entry_conflicts_with_newer_request():
	manager = MembershipManager()
	club = await _make_club()
	user_id = uuid4()
	old = await _join(manager, club.id, user_id)
	await manager.reject_member(club.id, old.id)
	newer = await _join(manager, club.id, user_id)

	with pytest.raises(ConflictError) as exc:
		await manager.approve_member(club.id, old.id)

	assert exc.value.detail == "User already has an active membership in this club"
	stored = await container.clubs().get_club(club.id)
	statuses = {m.id: m.status for m in stored.members}
	assert statuses == {old.id: MembershipStatus.REJECTED, newer.id: MembershipStatus.PENDING}
	assert await container.clubs().joined_club_ids(user_id) == []
