from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from rentals.models import database
from rentals.models import schemas
from rentals.repositories.base import BaseRepository
from rentals.repositories.properties import (
    L, LOCATION_COLUMNS, M, MANAGER_COLUMNS, P, PROPERTY_COLUMNS, map_manager, map_property_row,
)

logger = logging.getLogger(__name__)

A = database.Application.__table__
T = database.Tenant.__table__

APPLICATION_COLUMNS = [
    A.c.id.label("application_id"),
    A.c.application_date.label("application_application_date"),
    A.c.status.label("application_status"),
    A.c.tenant_cognito_id.label("application_tenant_cognito_id"),
    A.c.name.label("application_name"),
    A.c.email.label("application_email"),
    A.c.phone_number.label("application_phone_number"),
    A.c.message.label("application_message"),
    A.c.lease_id.label("application_lease_id"),
]

TENANT_COLUMNS = [
    T.c.id.label("tenant_id"),
    T.c.name.label("tenant_name"),
    T.c.email.label("tenant_email"),
    T.c.phone_number.label("tenant_phone_number"),
]


def map_application_row(row: RowMapping, lease: Optional[schemas.Lease] = None) -> schemas.Application:
    prop = map_property_row(row)
    return schemas.Application(
        id=row["application_id"],
        application_date=row["application_application_date"],
        status=row["application_status"],
        property_id=prop.id,
        tenant_cognito_id=row["application_tenant_cognito_id"],
        name=row["application_name"],
        email=row["application_email"],
        phone_number=row["application_phone_number"],
        message=row["application_message"],
        lease_id=row["application_lease_id"],
        property=prop.model_copy(update={"manager": None}),
        manager=map_manager(row, prop.manager_cognito_id),
        tenant=schemas.Tenant(
            id=row["tenant_id"],
            cognito_id=row["application_tenant_cognito_id"],
            name=row["tenant_name"],
            email=row["tenant_email"],
            phone_number=row["tenant_phone_number"],
        ),
        lease=lease,
    )


class ApplicationRepository(BaseRepository):
    """Rental applications, always read joined with property, manager and tenant"""

    def _select(self):
        source = (
            A.join(P, A.c.property_id == P.c.id)
            .join(L, P.c.location_id == L.c.id)
            .join(M, P.c.manager_cognito_id == M.c.cognito_id)
            .join(T, A.c.tenant_cognito_id == T.c.cognito_id)
        )
        return select(
            *APPLICATION_COLUMNS, *PROPERTY_COLUMNS, *LOCATION_COLUMNS, *MANAGER_COLUMNS, *TENANT_COLUMNS
        ).select_from(source)

    async def get_detail(self, application_id: int,
                         conn: Optional[AsyncConnection] = None) -> Optional[schemas.Application]:
        row = await self._fetch_one(self._select().where(A.c.id == application_id), conn)
        return map_application_row(row) if row else None

    async def list(self, tenant_cognito_id: Optional[str] = None, manager_cognito_id: Optional[str] = None,
                   conn: Optional[AsyncConnection] = None) -> List[schemas.Application]:
        query = self._select()
        if tenant_cognito_id is not None:
            query = query.where(A.c.tenant_cognito_id == tenant_cognito_id)
        if manager_cognito_id is not None:
            query = query.where(P.c.manager_cognito_id == manager_cognito_id)
        rows = await self._fetch_all(query.order_by(A.c.id), conn)
        return [map_application_row(row) for row in rows]

    async def create(self, data: schemas.ApplicationCreate, application_date: datetime,
                     conn: Optional[AsyncConnection] = None) -> int:
        statement = (
            insert(A)
            .values(
                application_date=application_date,
                status=schemas.ApplicationStatus.PENDING.value,
                property_id=data.property_id,
                tenant_cognito_id=data.tenant_cognito_id,
                name=data.name,
                email=data.email,
                phone_number=data.phone_number,
                message=data.message,
                lease_id=None,
            )
            .returning(A.c.id)
        )
        application_id = await self._insert_returning_id(statement, conn)
        logger.info(f"Created application {application_id} for property {data.property_id}")
        return application_id

    async def transition(self, application_id: int, from_status: str, to_status: str,
                         lease_id: Optional[int] = None,
                         conn: Optional[AsyncConnection] = None) -> int:
        """Move an application from ``from_status`` to ``to_status``.

        The update only matches while the row still holds ``from_status``, so
        a concurrent writer that got there first makes this return 0.
        """
        values = {"status": to_status}
        if lease_id is not None:
            values["lease_id"] = lease_id
        statement = (
            update(A)
            .where(A.c.id == application_id, A.c.status == from_status)
            .values(**values)
        )
        return await self._rowcount(statement, conn=conn)
