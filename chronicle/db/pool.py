"""PostgreSQL connection pool management.

One pool is shared by every relational audit writer in the process.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

from chronicle.db.errors import ConflictError, ConnectionError, ValidationError
from chronicle.observability.logging import get_logger

logger = get_logger(__name__)


class PostgresPool:
    """Manages an asyncpg connection pool.

    Usage:
        pool = PostgresPool(dsn="postgresql://...")
        async with pool.acquire() as conn:
            await conn.execute("INSERT ...")
        await pool.close()
    """

    def __init__(
        self,
        dsn: str | None = None,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 30.0,
    ) -> None:
        """Initialize pool configuration.

        Args:
            dsn: Database connection string. Falls back to environment variables.
            min_size: Minimum number of connections to keep open.
            max_size: Maximum number of connections in the pool.
            command_timeout: Default timeout for statements (seconds).
        """
        self._dsn = dsn or self._get_dsn_from_env()
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: asyncpg.Pool | None = None

    @staticmethod
    def _get_dsn_from_env() -> str:
        """Get database DSN from environment variables."""
        dsn = os.environ.get("CHRONICLE_DATABASE_URL") or os.environ.get("DATABASE_URL")
        if dsn:
            return dsn

        host = os.environ.get("POSTGRES_HOST", "localhost")
        port = os.environ.get("POSTGRES_PORT", "5432")
        user = os.environ.get("POSTGRES_USER", "postgres")
        password = os.environ.get("POSTGRES_PASSWORD", "postgres")
        database = os.environ.get("POSTGRES_DB", "postgres")

        return f"postgresql://{user}:{password}@{host}:{port}/{database}"

    async def connect(self) -> None:
        """Initialize the connection pool."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
            logger.info(
                "postgres_pool_connected",
                min_size=self._min_size,
                max_size=self._max_size,
            )
        except Exception as e:
            logger.error("postgres_pool_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}", cause=e) from e

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool, connecting on first use."""
        if self._pool is None:
            await self.connect()
        pool = self._pool
        if pool is None:
            raise ConnectionError("PostgreSQL pool was closed while connecting")

        try:
            async with pool.acquire() as connection:
                yield connection
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"Duplicate key: {e}", cause=e) from e
        except asyncpg.DataError as e:
            raise ValidationError(f"Invalid data: {e}", cause=e) from e
        except asyncpg.PostgresError as e:
            logger.error("postgres_connection_error", error=str(e))
            raise ConnectionError(f"PostgreSQL error: {e}", cause=e) from e

    @property
    def is_connected(self) -> bool:
        """Check if pool is initialized."""
        return self._pool is not None
