"""Apply pending SQL migrations from backend/migrations in filename order.

Each file runs in its own transaction and its numeric prefix is recorded in
schema_migrations, which the readiness probe compares against
HEALTH_MIN_MIGRATION.

Usage: python backend/scripts/apply_migrations.py
"""

import asyncio
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = BACKEND_DIR / "migrations"

if str(BACKEND_DIR) not in sys.path:
    sys.path.append(str(BACKEND_DIR))

from campushub.infra.postgres import close_pool, init_pool  # noqa: E402
from campushub.obs.logging import configure_logging, get_logger  # noqa: E402

logger = get_logger("campushub.migrations")

BOOTSTRAP_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


def _version(path: Path) -> str:
    return path.stem.split("_", 1)[0]


async def main() -> int:
    configure_logging()
    files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not files:
        logger.warning("migrations_missing", extra={"path": str(MIGRATIONS_DIR)})
        return 1
    pool = await init_pool()
    try:
        async with pool.acquire() as conn:
            await conn.execute(BOOTSTRAP_SQL)
            applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
            for path in files:
                version = _version(path)
                if version in applied:
                    continue
                logger.info("migration_applying", extra={"migration": path.name})
                async with conn.transaction():
                    await conn.execute(path.read_text(encoding="utf-8"))
                    await conn.execute(
                        "INSERT INTO schema_migrations (version) VALUES ($1) ON CONFLICT DO NOTHING",
                        version,
                    )
                logger.info("migration_applied", extra={"migration": path.name, "version": version})
    finally:
        await close_pool()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
