"""Liveness and readiness probes.

Readiness reports one entry per dependency. In ``PERSISTENCE=memory`` mode the
Postgres and migration checks pass without touching a database.
"""

from __future__ import annotations

import asyncio
from time import perf_counter
from typing import Any, Awaitable, Dict, Optional, Tuple

from campushub.infra import postgres
from campushub.infra.redis import redis_client
from campushub.obs import metrics
from campushub.obs.logging import get_logger
from campushub.settings import settings

logger = get_logger("campushub.health")

REDIS_TIMEOUT = 0.2
POSTGRES_TIMEOUT = 0.3


async def _timed(probe: Awaitable[Any], timeout: float) -> float:
	start = perf_counter()
	await asyncio.wait_for(probe, timeout=timeout)
	return perf_counter() - start


def _ok(latency: float) -> Dict[str, Any]:
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def check_redis() -> Dict[str, Any]:
	try:
		latency = await _timed(redis_client.ping(), REDIS_TIMEOUT)
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_redis(False)
		logger.warning("readiness_redis_failed", exc_info=True)
		return {"ok": False, "error": str(exc)}
	metrics.mark_redis(True, latency_seconds=latency)
	return _ok(latency)


async def check_postgres() -> Tuple[Dict[str, Any], Optional[Any]]:
	try:
		pool = await postgres.get_pool()
	except Exception as exc:  # pragma: no cover - connection bootstrap failure
		metrics.mark_postgres(False)
		logger.warning("readiness_postgres_unavailable", exc_info=True)
		return {"ok": False, "error": str(exc)}, None

	async def _select_one() -> None:
		async with pool.acquire() as conn:
			await conn.execute("SELECT 1")

	try:
		latency = await _timed(_select_one(), POSTGRES_TIMEOUT)
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_postgres(False)
		logger.warning("readiness_postgres_failed", exc_info=True)
		return {"ok": False, "error": str(exc)}, pool
	metrics.mark_postgres(True, latency_seconds=latency)
	return _ok(latency), pool


async def check_migrations(pool: Any, required: str) -> Dict[str, Any]:
	if pool is None:
		return {"ok": False, "error": "pool_unavailable"}
	try:
		async with pool.acquire() as conn:
			applied = await conn.fetchval("SELECT max(version) FROM schema_migrations")
	except Exception as exc:  # pragma: no cover - table missing before the first migration
		return {"ok": False, "error": str(exc)}
	if applied is None:
		return {"ok": False, "error": "no_migrations"}
	# Versions are zero-padded prefixes, so string order is numeric order.
	return {"ok": str(applied) >= required, "version": str(applied), "required": required}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	checks: Dict[str, Dict[str, Any]] = {"redis": await check_redis()}
	if settings.uses_postgres():
		checks["postgres"], pool = await check_postgres()
		checks["migrations"] = await check_migrations(pool, settings.health_min_migration)
	else:
		checks["postgres"] = {"ok": True, "mode": "memory"}
		checks["migrations"] = {"ok": True, "mode": "memory"}
	ready = all(check.get("ok") for check in checks.values())
	payload = {
		"status": "ok" if ready else "degraded",
		"service": settings.service_name,
		"commit": settings.git_commit,
		"checks": checks,
	}
	return (200 if ready else 503), payload
