"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"campushub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"campushub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

CLUB_MEMBERSHIP_TRANSITIONS = Counter(
	"campushub_club_membership_transitions_total",
	"Club membership state transitions",
	["action"],
)

CLUB_MEMBERSHIP_REJECTS = Counter(
	"campushub_club_membership_rejects_total",
	"Club membership operations refused by domain rules",
	["action", "reason"],
)

ELECTION_VOTES = Counter(
	"campushub_election_votes_total",
	"Votes accepted by the election tally",
)

ELECTION_VOTE_REJECTS = Counter(
	"campushub_election_vote_rejects_total",
	"Votes refused by the election tally",
	["reason"],
)

ELECTION_ANNOUNCEMENTS = Counter(
	"campushub_election_announcements_total",
	"Result announcements (first and repeated)",
	["first"],
)

IDENTITY_LOGINS = Counter(
	"campushub_identity_logins_total",
	"Login attempts by outcome",
	["result"],
)

REDIS_UP = Gauge("campushub_redis_up", "Redis readiness (1 ok, 0 failing)")
POSTGRES_UP = Gauge("campushub_postgres_up", "Postgres readiness (1 ok, 0 failing)")
REDIS_LATENCY = Histogram("campushub_redis_ping_seconds", "Redis ping latency")
POSTGRES_LATENCY = Histogram("campushub_postgres_ping_seconds", "Postgres ping latency")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_membership(action: str) -> None:
	CLUB_MEMBERSHIP_TRANSITIONS.labels(action=action).inc()


def inc_membership_reject(action: str, reason: str) -> None:
	CLUB_MEMBERSHIP_REJECTS.labels(action=action, reason=reason).inc()


def inc_vote() -> None:
	ELECTION_VOTES.inc()


def inc_vote_reject(reason: str) -> None:
	ELECTION_VOTE_REJECTS.labels(reason=reason).inc()


def inc_announcement(first: bool) -> None:
	ELECTION_ANNOUNCEMENTS.labels(first="true" if first else "false").inc()


def inc_login(result: str) -> None:
	IDENTITY_LOGINS.labels(result=result).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
