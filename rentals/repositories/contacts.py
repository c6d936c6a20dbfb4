from typing import Optional, Type
import logging

from sqlalchemy import Table, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from rentals.models import schemas
from rentals.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ContactRepository(BaseRepository):
    """Managers and tenants share the same contact columns keyed by cognito id"""

    table: Table
    model: Type[schemas.ContactBase]

    def _select(self):
        t = self.table
        return select(t.c.id, t.c.cognito_id, t.c.name, t.c.email, t.c.phone_number)

    async def _get(self, conn: AsyncConnection, cognito_id: str):
        result = await conn.execute(self._select().where(self.table.c.cognito_id == cognito_id))
        row = result.mappings().first()
        return self.model(**row) if row else None

    async def get(self, cognito_id: str, conn: Optional[AsyncConnection] = None):
        async def work(c: AsyncConnection):
            return await self._get(c, cognito_id)

        return await self._run(work, conn)

    async def create(self, data: schemas.ContactCreate, conn: Optional[AsyncConnection] = None):
        async def work(c: AsyncConnection):
            await c.execute(
                insert(self.table).values(
                    cognito_id=data.cognito_id,
                    name=data.name,
                    email=data.email,
                    phone_number=data.phone_number,
                )
            )
            return await self._get(c, data.cognito_id)

        created = await self._run(work, conn)
        logger.info(f"Created {self.table.name} {data.cognito_id}")
        return created

    async def update(self, cognito_id: str, data: schemas.ContactUpdate,
                     conn: Optional[AsyncConnection] = None):
        """Overwrite the contact fields; None when no such contact exists"""

        async def work(c: AsyncConnection):
            result = await c.execute(
                update(self.table)
                .where(self.table.c.cognito_id == cognito_id)
                .values(name=data.name, email=data.email, phone_number=data.phone_number)
            )
            if result.rowcount == 0:
                return None
            return await self._get(c, cognito_id)

        return await self._run(work, conn)
