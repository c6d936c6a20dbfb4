from datetime import datetime

import pytest
from sqlalchemy import func, select

from fakes import property_form, sqlite_config
from rentals.models import schemas
from rentals.pool import PoolHandle
from rentals.repositories.managers import ManagerRepository
from rentals.repositories.properties import PropertyRepository
from rentals.repositories.tenants import TenantRepository
from rentals.services.applications import ApplicationService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "rentals.db"


@pytest.fixture
async def pool(anyio_backend, db_path):
    handle = PoolHandle(config=sqlite_config(db_path))
    await handle.create_all()
    yield handle
    await handle.close()


@pytest.fixture
def count_rows(pool):
    async def count(table, *criteria):
        query = select(func.count()).select_from(table)
        if criteria:
            query = query.where(*criteria)
        async with pool.connection() as conn:
            return (await conn.execute(query)).scalar_one()

    return count


@pytest.fixture
async def manager(pool):
    return await ManagerRepository(pool).create(
        schemas.ContactCreate(
            cognito_id="mgr-1",
            name="Maria Manager",
            email="maria@example.com",
            phone_number="+1 555 0100",
        )
    )


@pytest.fixture
async def tenant(pool):
    return await TenantRepository(pool).create(
        schemas.ContactCreate(
            cognito_id="tnt-1",
            name="Tom Tenant",
            email="tom@example.com",
            phone_number="+1 555 0199",
        )
    )


@pytest.fixture
async def listing(pool, manager):
    properties = PropertyRepository(pool)
    async with pool.transaction() as conn:
        location_id = await properties.create_location(
            address="12 Harbour St",
            city="Seattle",
            state="WA",
            country="US",
            postal_code="98101",
            latitude=47.6062,
            longitude=-122.3321,
            conn=conn,
        )
        property_id = await properties.create(
            property_form(manager.cognito_id),
            ["https://cdn.test/properties/front.jpg"],
            location_id,
            posted_date=datetime(2024, 1, 1),
            conn=conn,
        )
    return await properties.get(property_id)


@pytest.fixture
async def application(pool, listing, tenant):
    return await ApplicationService(pool).create(
        schemas.ApplicationCreate(
            application_date=datetime(2024, 1, 15),
            property_id=listing.id,
            tenant_cognito_id=tenant.cognito_id,
            name=tenant.name,
            email=tenant.email,
            phone_number=tenant.phone_number,
            message="Looking to move in next month",
        )
    )
