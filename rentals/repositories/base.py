from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from rentals.pool import PoolHandle

T = TypeVar("T")


class BaseRepository:
    """Base repository over the shared connection pool.

    Every public method takes an optional ``conn``. When the caller passes the
    connection of an open transaction the statement joins that transaction;
    otherwise the repository leases its own auto-committing connection for
    the duration of the call. Repositories never commit.
    """

    def __init__(self, pool: PoolHandle):
        self.pool = pool

    async def _run(self, fn: Callable[[AsyncConnection], Awaitable[T]],
                   conn: Optional[AsyncConnection] = None) -> T:
        if conn is not None:
            return await fn(conn)
        return await self.pool.run(fn)

    async def _fetch_one(self, statement, conn: Optional[AsyncConnection] = None) -> Optional[RowMapping]:
        async def work(c: AsyncConnection):
            result = await c.execute(statement)
            return result.mappings().first()

        return await self._run(work, conn)

    async def _fetch_all(self, statement, conn: Optional[AsyncConnection] = None) -> List[RowMapping]:
        async def work(c: AsyncConnection):
            result = await c.execute(statement)
            return list(result.mappings().all())

        return await self._run(work, conn)

    async def _insert_returning_id(self, statement, conn: Optional[AsyncConnection] = None) -> int:
        async def work(c: AsyncConnection):
            result = await c.execute(statement)
            return int(result.scalar_one())

        return await self._run(work, conn)

    async def _rowcount(self, statement, params: Optional[dict] = None,
                        conn: Optional[AsyncConnection] = None) -> int:
        async def work(c: AsyncConnection):
            if params is None:
                result = await c.execute(statement)
            else:
                result = await c.execute(statement, params)
            return result.rowcount

        return await self._run(work, conn)

