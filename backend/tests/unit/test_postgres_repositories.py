import pytest
from datetime import datetime, timezone
from uuid import uuid4
from unittest.mock import AsyncMock, MagicMock

from campushub.domain.clubs.models import ClubQuery, Membership, MembershipStatus
from campushub.domain.elections.models import ElectionStatus
from campushub.domain.exceptions import ConflictError, InvalidStateError, NotFoundError
from campushub.infra.clubs_repo import PostgresClubRepository
from campushub.infra.elections_repo import PostgresElectionRepository


def _pool_for(conn):
	pool = MagicMock()
	pool.acquire.return_value.__aenter__.return_value = conn
	pool.acquire.return_value.__aexit__.return_value = False
	tx = MagicMock()
	tx.__aenter__.return_value = None
	tx.__aexit__.return_value = False
	conn.transaction = MagicMock(return_value=tx)
	return pool


def _election_row(election_id, **overrides):
	now = datetime.now(timezone.utc)
	row = {
		"id": election_id,
		"title": "Student Union President",
		"description": "Annual election",
		"start_date": now,
		"end_date": now,
		"status": "Completed",
		"total_votes": 4,
		"eligible_voters": 10,
		"results_announced_at": now,
		"created_by": None,
		"version": 3,
		"created_at": now,
		"updated_at": now,
	}
	row.update(overrides)
	return row


def _member_row(club_id, membership_id, status="approved"):
	now = datetime.now(timezone.utc)
	return {
		"id": membership_id,
		"club_id": club_id,
		"user_id": uuid4(),
		"full_name": "Abebe Kebede",
		"department": "Physics",
		"year": "1st Year",
		"background": None,
		"role": "member",
		"status": status,
		"requested_at": now,
		"updated_at": now,
	}


@pytest.mark.asyncio
async def test_record_vote_second_ballot_is_conflict():
	conn = AsyncMock()
	conn.fetchrow.return_value = {"status": "Ongoing", "version": 2, "results_announced_at": None}
	conn.fetchval.return_value = None  # ON CONFLICT DO NOTHING returned no row
	repo = PostgresElectionRepository(_pool_for(conn))

	with pytest.raises(ConflictError) as exc:
		await repo.record_vote(uuid4(), uuid4(), uuid4())

	assert exc.value.status_code == 409
	args, _ = conn.fetchrow.call_args
	assert "FOR UPDATE" in args[0]
	assert conn.fetchval.await_count == 1
	conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_record_vote_on_completed_election():
	conn = AsyncMock()
	conn.fetchrow.return_value = {"status": "Completed", "version": 2, "results_announced_at": None}
	repo = PostgresElectionRepository(_pool_for(conn))

	with pytest.raises(InvalidStateError):
		await repo.record_vote(uuid4(), uuid4(), uuid4())

	conn.fetchval.assert_not_called()


@pytest.mark.asyncio
async def test_record_vote_unknown_candidate_aborts_before_total():
	election_id = uuid4()
	conn = AsyncMock()
	conn.fetchrow.return_value = {"status": "Pending", "version": 1, "results_announced_at": None}
	conn.fetchval.side_effect = [election_id, None]
	repo = PostgresElectionRepository(_pool_for(conn))

	with pytest.raises(NotFoundError) as exc:
		await repo.record_vote(election_id, uuid4(), uuid4())

	assert exc.value.detail == "Candidate not found"
	conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_mark_announced_reports_repeat():
	election_id = uuid4()
	conn = AsyncMock()
	conn.fetchval.return_value = None  # already announced, conditional UPDATE matched nothing
	conn.fetchrow.return_value = _election_row(election_id)
	conn.fetch.return_value = []
	repo = PostgresElectionRepository(_pool_for(conn))

	election, first = await repo.mark_announced(election_id, datetime.now(timezone.utc))

	assert first is False
	assert election.status == ElectionStatus.COMPLETED
	args, _ = conn.fetchval.call_args
	assert "results_announced_at IS NULL" in args[0]


@pytest.mark.asyncio
async def test_transition_membership_stale_version():
	conn = AsyncMock()
	conn.fetchval.return_value = 7
	repo = PostgresClubRepository(_pool_for(conn))

	with pytest.raises(ConflictError) as exc:
		await repo.transition_membership(uuid4(), uuid4(), MembershipStatus.APPROVED, expected_version=3)

	assert exc.value.detail == "version_mismatch"
	conn.fetchrow.assert_not_called()


@pytest.mark.asyncio
async def test_transition_membership_missing_member_returns_none():
	conn = AsyncMock()
	conn.fetchval.side_effect = [1, 2, None]
	repo = PostgresClubRepository(_pool_for(conn))

	result = await repo.transition_membership(uuid4(), uuid4(), MembershipStatus.APPROVED)

	assert result is None
	conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_approve_inserts_back_reference_idempotently():
	club_id, membership_id = uuid4(), uuid4()
	conn = AsyncMock()
	conn.fetchval.side_effect = [1, 2, "pending"]
	conn.fetchrow.return_value = _member_row(club_id, membership_id)
	repo = PostgresClubRepository(_pool_for(conn))

	previous, membership = await repo.transition_membership(club_id, membership_id, MembershipStatus.APPROVED)

	assert previous == MembershipStatus.PENDING
	assert membership.status == MembershipStatus.APPROVED
	args, _ = conn.execute.call_args
	assert "INSERT INTO user_joined_clubs" in args[0]
	assert "ON CONFLICT" in args[0]


@pytest.mark.asyncio
async def test_reject_of_approved_member_pulls_back_reference():
	club_id, membership_id = uuid4(), uuid4()
	conn = AsyncMock()
	conn.fetchval.side_effect = [1, 2, "approved"]
	conn.fetchrow.return_value = _member_row(club_id, membership_id, status="rejected")
	repo = PostgresClubRepository(_pool_for(conn))

	previous, membership = await repo.transition_membership(club_id, membership_id, MembershipStatus.REJECTED)

	assert previous == MembershipStatus.APPROVED
	assert membership.status == MembershipStatus.REJECTED
	args, _ = conn.execute.call_args
	assert "DELETE FROM user_joined_clubs" in args[0]


@pytest.mark.asyncio
async def test_append_membership_refuses_club_deactivated_before_lock():
	club_id = uuid4()
	now = datetime.now(timezone.utc)
	conn = AsyncMock()
	conn.fetchrow.return_value = {"status": "inactive", "version": 4}
	repo = PostgresClubRepository(_pool_for(conn))
	membership = Membership(
		id=uuid4(),
		club_id=club_id,
		user_id=uuid4(),
		full_name="Abebe Kebede",
		department="Physics",
		year="1st Year",
		background=None,
		requested_at=now,
		updated_at=now,
	)

	with pytest.raises(InvalidStateError) as exc:
		await repo.append_membership(membership)

	assert exc.value.detail == "Cannot join inactive club"
	args, _ = conn.fetchrow.call_args
	assert "FOR UPDATE" in args[0]
	assert conn.fetchrow.await_count == 1
	conn.fetchval.assert_not_called()


@pytest.mark.asyncio
async def test_list_clubs_search_treats_wildcards_literally():
	conn = AsyncMock()
	conn.fetchval.return_value = 0
	conn.fetch.return_value = []
	repo = PostgresClubRepository(_pool_for(conn))

	page = await repo.list_clubs(ClubQuery(search="50%_off\\"))

	assert page.total == 0
	count_args, _ = conn.fetchval.call_args
	assert "ESCAPE '\\'" in count_args[0]
	assert count_args[1] == "%50\\%\\_off\\\\%"
	rows_args, _ = conn.fetch.call_args
	assert rows_args[1] == "%50\\%\\_off\\\\%"
