"""Postgres connection pool, schema migrations and connectivity check."""

from pathlib import Path
from typing import Optional

import asyncpg
import structlog

from src.config import get_settings

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"

# Process-wide pool shared by every PostgresUserRepository
_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Return the open pool.

    Raises:
        RuntimeError: If init_database() has not run
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_database() first.")
    return _pool


async def init_database() -> asyncpg.Pool:
    """Open the pool using the configured URL and sizing. Idempotent."""
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()
    sizing = {
        "min_size": settings.postgres_pool_min_size,
        "max_size": settings.postgres_pool_max_size,
    }

    try:
        _pool = await asyncpg.create_pool(
            settings.postgres_url,
            command_timeout=settings.postgres_command_timeout,
            **sizing,
        )
    except Exception as e:
        logger.error("database_pool_creation_failed", error=str(e), **sizing)
        raise

    logger.info("database_pool_created", **sizing)
    return _pool


async def close_database() -> None:
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("database_pool_closed")


async def run_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> int:
    """Apply every ``*.sql`` file in filename order on one connection.

    Each file must be idempotent (``IF NOT EXISTS``), since all of them run
    on every start. The first failing file aborts the run.

    Returns:
        Number of files applied
    """
    pool = await get_pool()

    if not migrations_dir.exists():
        logger.warning("migrations_directory_not_found", path=str(migrations_dir))
        return 0

    migration_files = sorted(migrations_dir.glob("*.sql"))

    async with pool.acquire() as conn:
        for migration_file in migration_files:
            try:
                await conn.execute(migration_file.read_text())
            except Exception as e:
                logger.error("migration_failed", file=migration_file.name, error=str(e))
                raise
            logger.info("migration_applied", file=migration_file.name)

    return len(migration_files)


async def health_check() -> bool:
    """Return True if a pooled connection answers ``SELECT 1``."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False
