"""Lightweight repository container shared by the clubs, elections and identity services.

Services resolve their repository through the accessors below on every call, so
wiring the Postgres implementations at startup is picked up by services that
were constructed at import time.
"""

from __future__ import annotations

from typing import Optional

import asyncpg

from campushub.domain.clubs.repo import ClubRepository, InMemoryClubRepository
from campushub.domain.elections.repo import ElectionRepository, InMemoryElectionRepository
from campushub.domain.identity.repo import InMemoryUserRepository, UserRepository

_clubs: ClubRepository = InMemoryClubRepository()
_elections: ElectionRepository = InMemoryElectionRepository()
_users: UserRepository = InMemoryUserRepository()


def configure(
	*,
	clubs_repository: Optional[ClubRepository] = None,
	elections_repository: Optional[ElectionRepository] = None,
	users_repository: Optional[UserRepository] = None,
) -> None:
	global _clubs, _elections, _users
	if clubs_repository is not None:
		_clubs = clubs_repository
	if elections_repository is not None:
		_elections = elections_repository
	if users_repository is not None:
		_users = users_repository


def configure_postgres(pool: asyncpg.Pool) -> None:
	from campushub.infra.clubs_repo import PostgresClubRepository
	from campushub.infra.elections_repo import PostgresElectionRepository
	from campushub.infra.users_repo import PostgresUserRepository

	configure(
		clubs_repository=PostgresClubRepository(pool),
		elections_repository=PostgresElectionRepository(pool),
		users_repository=PostgresUserRepository(pool),
	)


def reset_memory() -> None:
	"""Swap in fresh in-memory stores (tests and PERSISTENCE=memory)."""
	configure(
		clubs_repository=InMemoryClubRepository(),
		elections_repository=InMemoryElectionRepository(),
		users_repository=InMemoryUserRepository(),
	)


def clubs() -> ClubRepository:
	return _clubs


def elections() -> ElectionRepository:
	return _elections


def users() -> UserRepository:
	return _users
