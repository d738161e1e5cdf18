"""asyncpg pool for the search database.

The search engine receives its pool explicitly. The process-wide pool held
here serves the two entry points that own a pool's lifetime: the API
lifespan and each CLI invocation.
"""

from dataclasses import dataclass, field
from typing import Optional

import asyncpg
from blog_search_common import StorageError, get_logger, get_settings

logger = get_logger(__name__)

APPLICATION_NAME = "blog-search"


@dataclass
class DatabaseConfig:
    """Where the blog database lives and how many connections to hold.

    A ``dsn`` (normally DATABASE_URL) takes precedence over the discrete
    host/port/database/user/password fields.
    """

    host: str = "localhost"
    port: int = 5432
    database: str = "blog"
    user: str = "postgres"
    password: str = "postgres"
    min_pool_size: int = 2
    max_pool_size: int = 10
    dsn: Optional[str] = None
    # Upper bound for any single statement; per-search timeouts are shorter
    command_timeout: float = 60.0
    server_settings: dict[str, str] = field(
        default_factory=lambda: {"application_name": APPLICATION_NAME}
    )

    def get_dsn(self) -> str:
        if self.dsn:
            return self.dsn
        return (
            f"postgresql://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    def describe(self) -> dict:
        """Log-safe summary of the target (never includes credentials)."""
        if self.dsn:
            return {"target": "dsn"}
        return {"target": f"{self.host}:{self.port}/{self.database}"}

    @classmethod
    def from_settings(cls) -> "DatabaseConfig":
        settings = get_settings()
        return cls(
            dsn=settings.database_url,
            min_pool_size=settings.db_min_pool_size,
            max_pool_size=settings.db_max_pool_size,
        )


_connection_pool: Optional[asyncpg.Pool] = None


async def get_connection_pool(config: Optional[DatabaseConfig] = None) -> asyncpg.Pool:
    """Return the process-wide pool, creating it on first use.

    ``config`` only matters for the call that creates the pool; later calls
    get the existing pool back unchanged.

    Raises:
        StorageError: The pool could not be opened
    """
    global _connection_pool

    if _connection_pool is not None:
        return _connection_pool

    config = config or DatabaseConfig.from_settings()
    logger.info(
        "creating_connection_pool",
        min_size=config.min_pool_size,
        max_size=config.max_pool_size,
        **config.describe(),
    )

    try:
        _connection_pool = await asyncpg.create_pool(
            dsn=config.get_dsn(),
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
            command_timeout=config.command_timeout,
            server_settings=config.server_settings,
        )
    except Exception as e:
        logger.error("connection_pool_creation_failed", error=str(e))
        raise StorageError(f"Failed to create connection pool: {e}") from e

    logger.info("connection_pool_created", pool_size=config.max_pool_size)
    return _connection_pool


async def close_connection_pool() -> None:
    """Close and forget the process-wide pool; a no-op when none is open."""
    global _connection_pool

    pool, _connection_pool = _connection_pool, None
    if pool is None:
        return

    logger.info("closing_connection_pool")
    try:
        await pool.close()
    except Exception as e:
        logger.warning("connection_pool_close_warning", error=str(e))
    logger.info("connection_pool_closed")


async def check_connection_health(pool: Optional[asyncpg.Pool] = None) -> bool:
    """True when the database answers ``SELECT 1``; never raises."""
    try:
        if pool is None:
            pool = await get_connection_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        return False
