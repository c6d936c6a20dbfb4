from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from sqlalchemy import insert, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from rentals.models import database
from rentals.models import schemas
from rentals.repositories.base import BaseRepository
from rentals.utils.codecs import DecimalMoney
from rentals.utils.dates import next_payment_date

logger = logging.getLogger(__name__)

LE = database.Lease.__table__
PAY = database.Payment.__table__
T = database.Tenant.__table__
P = database.Property.__table__

LEASE_COLUMNS = [
    LE.c.id, LE.c.start_date, LE.c.end_date, LE.c.rent, LE.c.deposit,
    LE.c.property_id, LE.c.tenant_cognito_id,
]


def map_lease_row(row: RowMapping, now: Optional[datetime] = None) -> schemas.Lease:
    keys = row.keys()
    return schemas.Lease(
        id=row["id"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        rent=DecimalMoney.decode(row["rent"]),
        deposit=DecimalMoney.decode(row["deposit"]),
        property_id=row["property_id"],
        tenant_cognito_id=row["tenant_cognito_id"],
        next_payment_date=next_payment_date(row["start_date"], now),
        tenant=schemas.LeaseTenant(
            cognito_id=row["tenant_cognito_id"],
            name=row["tenant_name"],
            email=row["tenant_email"],
            phone_number=row["tenant_phone_number"],
        ) if "tenant_name" in keys else None,
        property=schemas.LeaseProperty(
            id=row["property_id"],
            name=row["property_name"],
            description=row["property_description"],
        ) if "property_name" in keys else None,
    )


class LeaseRepository(BaseRepository):

    async def create(self, start_date: datetime, end_date: datetime, rent: Decimal, deposit: Decimal,
                     property_id: int, tenant_cognito_id: str,
                     conn: Optional[AsyncConnection] = None) -> int:
        statement = (
            insert(LE)
            .values(
                start_date=start_date,
                end_date=end_date,
                rent=DecimalMoney.encode(rent),
                deposit=DecimalMoney.encode(deposit),
                property_id=property_id,
                tenant_cognito_id=tenant_cognito_id,
            )
            .returning(LE.c.id)
        )
        lease_id = await self._insert_returning_id(statement, conn)
        logger.info(f"Created lease {lease_id} for tenant {tenant_cognito_id} on property {property_id}")
        return lease_id

    async def get(self, lease_id: int, now: Optional[datetime] = None,
                  conn: Optional[AsyncConnection] = None) -> Optional[schemas.Lease]:
        row = await self._fetch_one(select(*LEASE_COLUMNS).where(LE.c.id == lease_id), conn)
        return map_lease_row(row, now) if row else None

    async def latest_for(self, tenant_cognito_id: str, property_id: int, now: Optional[datetime] = None,
                         conn: Optional[AsyncConnection] = None) -> Optional[schemas.Lease]:
        key = (tenant_cognito_id, property_id)
        return (await self.latest_for_each([key], now, conn)).get(key)

    async def latest_for_each(self, pairs: Iterable[Tuple[str, int]], now: Optional[datetime] = None,
                              conn: Optional[AsyncConnection] = None) -> Dict[Tuple[str, int], schemas.Lease]:
        """Most recent lease per (tenant, property) pair, fetched in one query"""
        wanted = set(pairs)
        if not wanted:
            return {}
        query = (
            select(*LEASE_COLUMNS)
            .where(
                LE.c.tenant_cognito_id.in_(sorted({tenant for tenant, _ in wanted})),
                LE.c.property_id.in_(sorted({prop for _, prop in wanted})),
            )
            .order_by(LE.c.start_date.desc(), LE.c.id.desc())
        )
        latest = {}
        for row in await self._fetch_all(query, conn):
            key = (row["tenant_cognito_id"], row["property_id"])
            if key in wanted and key not in latest:
                latest[key] = map_lease_row(row, now)
        return latest

    async def list(self, conn: Optional[AsyncConnection] = None) -> List[schemas.Lease]:
        query = (
            select(
                *LEASE_COLUMNS,
                T.c.name.label("tenant_name"),
                T.c.email.label("tenant_email"),
                T.c.phone_number.label("tenant_phone_number"),
                P.c.name.label("property_name"),
                P.c.description.label("property_description"),
            )
            .select_from(
                LE.join(T, LE.c.tenant_cognito_id == T.c.cognito_id)
                .join(P, LE.c.property_id == P.c.id)
            )
            .order_by(LE.c.id)
        )
        rows = await self._fetch_all(query, conn)
        return [map_lease_row(row) for row in rows]

    async def payments(self, lease_id: int, conn: Optional[AsyncConnection] = None) -> List[schemas.Payment]:
        query = select(
            PAY.c.id, PAY.c.amount_due, PAY.c.amount_paid, PAY.c.due_date,
            PAY.c.payment_date, PAY.c.payment_status, PAY.c.lease_id,
        ).where(PAY.c.lease_id == lease_id).order_by(PAY.c.due_date)
        rows = await self._fetch_all(query, conn)
        return [
            schemas.Payment(
                **{**row, "amount_due": DecimalMoney.decode(row["amount_due"]),
                   "amount_paid": DecimalMoney.decode(row["amount_paid"])}
            )
            for row in rows
        ]
