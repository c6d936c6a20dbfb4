from typing import List, Optional
import logging

from sqlalchemy import delete, insert, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection

from rentals.errors import ConflictError
from rentals.models import database
from rentals.models import schemas
from rentals.repositories.contacts import ContactRepository
from rentals.repositories.properties import (
    L, LOCATION_COLUMNS, P, PROPERTY_COLUMNS, map_property_row,
)

logger = logging.getLogger(__name__)

FAVORITES = database.TenantFavorite.__table__
RESIDENCES = database.TenantProperty.__table__

# ON CONFLICT ... DO NOTHING is understood by PostgreSQL and SQLite
UPSERT_RESIDENCE = text(
    """
    INSERT INTO tenant_properties (tenant_cognito_id, property_id)
    VALUES (:tenant_cognito_id, :property_id)
    ON CONFLICT (tenant_cognito_id, property_id) DO NOTHING
    """
)


class TenantRepository(ContactRepository):
    """Tenants plus their favorite and current-residence associations"""

    table = database.Tenant.__table__
    model = schemas.Tenant

    async def _properties_via(self, association, cognito_id: str,
                              conn: Optional[AsyncConnection]) -> List[schemas.Property]:
        query = (
            select(*PROPERTY_COLUMNS, *LOCATION_COLUMNS)
            .select_from(
                association
                .join(P, association.c.property_id == P.c.id)
                .join(L, P.c.location_id == L.c.id)
            )
            .where(association.c.tenant_cognito_id == cognito_id)
            .order_by(P.c.id)
        )
        rows = await self._fetch_all(query, conn)
        return [map_property_row(row) for row in rows]

    async def favorites(self, cognito_id: str,
                        conn: Optional[AsyncConnection] = None) -> List[schemas.Property]:
        return await self._properties_via(FAVORITES, cognito_id, conn)

    async def current_residences(self, cognito_id: str,
                                 conn: Optional[AsyncConnection] = None) -> List[schemas.Property]:
        return await self._properties_via(RESIDENCES, cognito_id, conn)

    async def add_favorite(self, cognito_id: str, property_id: int,
                           conn: Optional[AsyncConnection] = None):
        """Add a favorite; adding the same property twice is a conflict"""
        statement = insert(FAVORITES).values(tenant_cognito_id=cognito_id, property_id=property_id)
        try:
            await self._rowcount(statement, conn=conn)
        except IntegrityError as e:
            raise ConflictError("Property already added as favorite") from e
        logger.info(f"Tenant {cognito_id} favorited property {property_id}")

    async def remove_favorite(self, cognito_id: str, property_id: int,
                              conn: Optional[AsyncConnection] = None) -> int:
        statement = delete(FAVORITES).where(
            FAVORITES.c.tenant_cognito_id == cognito_id,
            FAVORITES.c.property_id == property_id,
        )
        return await self._rowcount(statement, conn=conn)

    async def add_residence(self, cognito_id: str, property_id: int,
                            conn: Optional[AsyncConnection] = None) -> int:
        """Link tenant and property; an existing link is left untouched"""
        return await self._rowcount(
            UPSERT_RESIDENCE,
            {"tenant_cognito_id": cognito_id, "property_id": property_id},
            conn=conn,
        )
