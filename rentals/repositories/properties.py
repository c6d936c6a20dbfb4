from datetime import datetime
from typing import List, Optional, Sequence
import logging

from sqlalchemy import insert, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from rentals.models import database
from rentals.models import schemas
from rentals.repositories.base import BaseRepository
from rentals.utils.codecs import BooleanFlag, DecimalMoney, JsonStringArray, to_float, to_int

logger = logging.getLogger(__name__)

P = database.Property.__table__
L = database.Location.__table__
M = database.Manager.__table__

PROPERTY_COLUMNS = [
    P.c.id, P.c.name, P.c.description, P.c.price_per_month, P.c.security_deposit,
    P.c.application_fee, P.c.photo_urls, P.c.amenities, P.c.highlights,
    P.c.is_pets_allowed, P.c.is_parking_included, P.c.beds, P.c.baths,
    P.c.square_feet, P.c.property_type, P.c.posted_date, P.c.average_rating,
    P.c.number_of_reviews, P.c.location_id, P.c.manager_cognito_id,
]

LOCATION_COLUMNS = [
    L.c.address.label("location_address"),
    L.c.city.label("location_city"),
    L.c.state.label("location_state"),
    L.c.country.label("location_country"),
    L.c.postal_code.label("location_postal_code"),
    L.c.latitude.label("location_latitude"),
    L.c.longitude.label("location_longitude"),
]

MANAGER_COLUMNS = [
    M.c.id.label("manager_id"),
    M.c.name.label("manager_name"),
    M.c.email.label("manager_email"),
    M.c.phone_number.label("manager_phone_number"),
]


def map_location(row: RowMapping, location_id: int) -> schemas.Location:
    return schemas.Location(
        id=location_id,
        address=row["location_address"],
        city=row["location_city"],
        state=row["location_state"],
        country=row["location_country"],
        postal_code=row["location_postal_code"],
        coordinates=schemas.Coordinates(
            latitude=row["location_latitude"],
            longitude=row["location_longitude"],
        ),
    )


def map_manager(row: RowMapping, cognito_id: str) -> schemas.Manager:
    return schemas.Manager(
        id=row["manager_id"],
        cognito_id=cognito_id,
        name=row["manager_name"],
        email=row["manager_email"],
        phone_number=row["manager_phone_number"],
    )


def map_property_row(row: RowMapping) -> schemas.Property:
    """Build a Property from a row selected with PROPERTY_COLUMNS.

    Location and manager are attached when their labelled columns are
    present in the row.
    """
    keys = row.keys()
    return schemas.Property(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        price_per_month=DecimalMoney.decode(row["price_per_month"]),
        security_deposit=DecimalMoney.decode(row["security_deposit"]),
        application_fee=DecimalMoney.decode(row["application_fee"]),
        photo_urls=JsonStringArray.decode(row["photo_urls"]),
        amenities=JsonStringArray.decode(row["amenities"]),
        highlights=JsonStringArray.decode(row["highlights"]),
        is_pets_allowed=BooleanFlag.decode(row["is_pets_allowed"]),
        is_parking_included=BooleanFlag.decode(row["is_parking_included"]),
        beds=row["beds"],
        baths=row["baths"],
        square_feet=row["square_feet"],
        property_type=row["property_type"],
        posted_date=row["posted_date"],
        average_rating=row["average_rating"] or 0,
        number_of_reviews=row["number_of_reviews"] or 0,
        location_id=row["location_id"],
        manager_cognito_id=row["manager_cognito_id"],
        location=map_location(row, row["location_id"]) if "location_address" in keys else None,
        manager=map_manager(row, row["manager_cognito_id"]) if "manager_name" in keys else None,
    )


class PropertyRepository(BaseRepository):
    """Properties and the locations they own"""

    def _select(self, with_manager: bool = False):
        columns = PROPERTY_COLUMNS + LOCATION_COLUMNS
        source = P.join(L, P.c.location_id == L.c.id)
        if with_manager:
            columns = columns + MANAGER_COLUMNS
            source = source.join(M, P.c.manager_cognito_id == M.c.cognito_id)
        return select(*columns).select_from(source)

    async def get(self, property_id: int, conn: Optional[AsyncConnection] = None) -> Optional[schemas.Property]:
        row = await self._fetch_one(
            self._select(with_manager=True).where(P.c.id == property_id), conn
        )
        return map_property_row(row) if row else None

    async def exists(self, property_id: int, conn: Optional[AsyncConnection] = None) -> bool:
        row = await self._fetch_one(select(P.c.id).where(P.c.id == property_id), conn)
        return row is not None

    async def list(self, property_ids: Optional[Sequence[int]] = None,
                   conn: Optional[AsyncConnection] = None) -> List[schemas.Property]:
        query = self._select()
        if property_ids is not None:
            query = query.where(P.c.id.in_(list(property_ids)))
        rows = await self._fetch_all(query.order_by(P.c.id), conn)
        return [map_property_row(row) for row in rows]

    async def list_by_manager(self, manager_cognito_id: str,
                              conn: Optional[AsyncConnection] = None) -> List[schemas.Property]:
        query = self._select().where(P.c.manager_cognito_id == manager_cognito_id).order_by(P.c.id)
        rows = await self._fetch_all(query, conn)
        return [map_property_row(row) for row in rows]

    async def create_location(self, address: str, city: str, state: str, country: str,
                              postal_code: str, latitude: float, longitude: float,
                              conn: Optional[AsyncConnection] = None) -> int:
        statement = (
            insert(L)
            .values(
                address=address,
                city=city,
                state=state,
                country=country,
                postal_code=postal_code,
                latitude=latitude,
                longitude=longitude,
            )
            .returning(L.c.id)
        )
        location_id = await self._insert_returning_id(statement, conn)
        logger.info(f"Created location {location_id}: {address}, {city}")
        return location_id

    async def create(self, data: schemas.PropertyCreate, photo_urls: List[str], location_id: int,
                     posted_date: datetime, conn: Optional[AsyncConnection] = None) -> int:
        statement = (
            insert(P)
            .values(
                name=data.name,
                description=data.description,
                price_per_month=DecimalMoney.encode(data.price_per_month),
                security_deposit=DecimalMoney.encode(data.security_deposit),
                application_fee=DecimalMoney.encode(data.application_fee),
                photo_urls=JsonStringArray.encode(photo_urls),
                amenities=JsonStringArray.encode(data.amenities),
                highlights=JsonStringArray.encode(data.highlights),
                is_pets_allowed=BooleanFlag.encode(data.is_pets_allowed),
                is_parking_included=BooleanFlag.encode(data.is_parking_included),
                beds=to_int(data.beds),
                baths=to_float(data.baths),
                square_feet=to_int(data.square_feet),
                property_type=data.property_type,
                posted_date=posted_date,
                average_rating=0,
                number_of_reviews=0,
                location_id=location_id,
                manager_cognito_id=data.manager_cognito_id,
            )
            .returning(P.c.id)
        )
        property_id = await self._insert_returning_id(statement, conn)
        logger.info(f"Created property {property_id} '{data.name}' for manager {data.manager_cognito_id}")
        return property_id
