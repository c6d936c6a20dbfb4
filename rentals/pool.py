from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar
import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from rentals.errors import ConfigurationError
from rentals.models.database import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PoolConfig:
    url: URL
    pool_min: int = 1
    pool_max: int = 10
    pool_increment: int = 1
    pool_timeout: float = 30.0

    def __post_init__(self):
        if self.pool_min < 1 or self.pool_max < self.pool_min:
            raise ConfigurationError(
                f"Invalid pool bounds: min={self.pool_min}, max={self.pool_max}"
            )
        if self.pool_increment < 1:
            raise ConfigurationError(f"Invalid pool increment: {self.pool_increment}")

    @classmethod
    def create(cls, driver: str, user: str, password: str, host: str,
               port: Optional[int], database: str, **pool_options) -> "PoolConfig":
        url = URL.create(
            driver,
            username=user,
            password=password,
            host=host,
            port=port,
            database=database,
        )
        return cls(url=url, **pool_options)


class PoolHandle:
    """Owns the process' database connection pool.

    The handle is constructed once (usually by the application factory) and
    passed to every repository. The underlying engine is created lazily on
    first use and can be closed and re-created.

    Two scopes hand out connections:

    * ``connection()`` leases an auto-committing connection for standalone
      reads and single-statement writes.
    * ``transaction()`` leases a plain connection, commits when the block
      completes and rolls back when it raises (cancellation included).

    Both scopes always return the connection to the pool.
    """

    def __init__(self, config: Optional[PoolConfig] = None, settings=None):
        self._config = config
        self._settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def _resolve_config(self) -> PoolConfig:
        if self._config is None:
            if self._settings is None:
                from rentals.config.settings import settings as default_settings
                self._settings = default_settings
            self._config = self._settings.pool_config()
        return self._config

    async def initialize(self) -> AsyncEngine:
        """Create the pool if it does not exist yet and return it"""
        if self._engine is not None:
            return self._engine

        async with self._lock:
            if self._engine is None:
                config = self._resolve_config()
                self._engine = create_async_engine(
                    config.url,
                    pool_size=config.pool_min,
                    max_overflow=config.pool_max - config.pool_min,
                    pool_timeout=config.pool_timeout,
                    pool_pre_ping=True,
                )
                logger.info(
                    f"Connection pool created for {config.url.render_as_string(hide_password=True)} "
                    f"(min={config.pool_min}, max={config.pool_max}, increment={config.pool_increment})"
                )
        return self._engine

    async def close(self):
        """Drain and discard the pool; the next acquisition re-initializes it"""
        async with self._lock:
            if self._engine is not None:
                await self._engine.dispose()
                self._engine = None
                logger.info("Connection pool closed")

    async def _release(self, conn: AsyncConnection):
        try:
            await conn.close()
        except Exception as e:
            logger.error(f"Error releasing connection: {e}")

    async def _rollback(self, conn: AsyncConnection):
        try:
            await conn.rollback()
        except Exception as e:
            logger.error(f"Error rolling back transaction: {e}")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        engine = await self.initialize()
        conn = await engine.connect()
        try:
            yield await conn.execution_options(isolation_level="AUTOCOMMIT")
        finally:
            await self._release(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        engine = await self.initialize()
        conn = await engine.connect()
        try:
            await conn.begin()
            try:
                yield conn
                await conn.commit()
            except BaseException as e:
                logger.warning(f"Rolling back transaction: {e!r}")
                await self._rollback(conn)
                raise
        finally:
            await self._release(conn)

    async def run(self, fn: Callable[[AsyncConnection], Awaitable[T]]) -> T:
        """Run a unit of work on a single auto-committing connection"""
        async with self.connection() as conn:
            return await fn(conn)

    async def run_in_transaction(self, fn: Callable[[AsyncConnection], Awaitable[T]]) -> T:
        """Run a unit of work atomically"""
        async with self.transaction() as conn:
            return await fn(conn)

    async def create_all(self):
        """Create every table known to the schema metadata"""
        engine = await self.initialize()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    async def health_check(self) -> bool:
        try:
            async with self.connection() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
