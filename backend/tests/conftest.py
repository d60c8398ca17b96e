import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Settings are read at import time; SECRET_KEY has no default.
os.environ.setdefault("SECRET_KEY", "campushub-test-secret-key-0123456789abcdef")
os.environ.setdefault("PERSISTENCE", "memory")

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from campushub.domain import container
from campushub.infra import postgres
from campushub.main import app
from campushub.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from campushub.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings(monkeypatch):
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Roles headers, which are only
	accepted in dev mode, and every test runs against the in-memory stores.
	"""
	monkeypatch.setattr(settings, "environment", "dev")
	monkeypatch.setattr(settings, "persistence", "memory")
	monkeypatch.setattr(settings, "bootstrap_admin_username", None)
	monkeypatch.setattr(settings, "bootstrap_admin_password", None)


@pytest.fixture(autouse=True)
def reset_stores():
	container.reset_memory()
	yield
	container.reset_memory()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


@pytest.fixture
def admin_headers():
	return {"X-User-Id": str(uuid4()), "X-User-Roles": "admin"}
