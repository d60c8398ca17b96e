"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campushub.api import auth, clubs, elections, ops
from campushub.api.errors import install_error_handlers
from campushub.domain import container
from campushub.domain.identity.provisioning import ensure_default_admin
from campushub.infra import postgres
from campushub.obs import init as obs_init
from campushub.obs.logging import get_logger
from campushub.settings import settings

logger = get_logger("campushub.main")

DEV_ORIGINS = [
	"http://localhost:3000",
	"http://127.0.0.1:3000",
	"http://localhost:5173",
	"http://127.0.0.1:5173",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
	pool = None
	if settings.uses_postgres():
		pool = await postgres.init_pool()
		container.configure_postgres(pool)
	logger.info(
		"startup",
		extra={"persistence": "postgres" if pool is not None else "memory", "env": settings.environment},
	)
	# Provisioning runs before the app starts serving.
	await ensure_default_admin()
	try:
		yield
	finally:
		if pool is not None:
			await postgres.close_pool()


def _allowed_origins() -> list[str]:
	origins = list(settings.cors_allow_origins)
	if not origins:
		origins = list(DEV_ORIGINS) if settings.is_dev() else []
	# Starlette disallows wildcard '*' with allow_credentials=True.
	if "*" in origins:
		origins = list(DEV_ORIGINS) if settings.is_dev() else [o for o in origins if o != "*"]
	return origins


app = FastAPI(title="CampusHub Student Services", lifespan=lifespan)
install_error_handlers(app)

app.add_middleware(
	CORSMiddleware,
	allow_origins=_allowed_origins(),
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(auth.router, prefix="/api", tags=["identity"])
app.include_router(clubs.router, prefix="/api")
app.include_router(elections.router, prefix="/api")
app.include_router(ops.router)
