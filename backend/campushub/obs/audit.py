"""Audit trail for club and election state transitions.

Events are appended to a bounded Redis stream and mirrored to the structured
log. Audit emission never fails the request that produced it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from campushub.infra.redis import redis_client
from campushub.obs.logging import current_request_id, get_logger

STREAM_KEY = "x:campus.events"
STREAM_MAXLEN = 50000

audit_logger = get_logger("campushub.audit")


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def _stringify(meta: Mapping[str, Any]) -> Dict[str, str]:
	return {key: ("" if value is None else str(value)) for key, value in meta.items()}


async def log_event(event: str, *, user_id: Optional[str] = None, meta: Optional[Mapping[str, Any]] = None) -> None:
	payload: Dict[str, Any] = {"event": event, "ts": _now_iso()}
	if user_id:
		payload["user_id"] = str(user_id)
	request_id = current_request_id()
	if request_id:
		payload["request_id"] = request_id
	if meta:
		payload.update(_stringify(meta))
	audit_logger.info("audit_event", extra={"audit": payload})
	try:
		await redis_client.xadd_capped(STREAM_KEY, payload, maxlen=STREAM_MAXLEN)
	except Exception:
		audit_logger.warning("audit_stream_unavailable", exc_info=True, extra={"event": event})
