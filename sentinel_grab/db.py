"""Database pool creation."""

import asyncpg
import structlog

from sentinel_grab.config import Settings

logger = structlog.get_logger(__name__)


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Create the asyncpg pool for the job queue.

    Raises:
        ConfigurationError: If DATABASE_URL is not set
    """
    url = settings.require_database_url()
    logger.info("Attempting database connection", url_prefix=url[:30] + "...")
    pool = await asyncpg.create_pool(
        url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=10,
        command_timeout=60,
        statement_cache_size=0,  # Disable for pgbouncer transaction mode
    )
    logger.info(
        "Database pool initialized",
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    return pool
