from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import insert, update

from rentals.errors import ConflictError
from rentals.models import database, schemas
from rentals.repositories.leases import LeaseRepository
from rentals.repositories.managers import ManagerRepository
from rentals.repositories.properties import PropertyRepository
from rentals.repositories.tenants import TenantRepository

pytestmark = pytest.mark.anyio

RESIDENCES = database.TenantProperty.__table__
PAYMENTS = database.Payment.__table__


async def test_property_is_decoded_with_location_and_manager(listing, manager):
    assert listing.price_per_month == Decimal("1500.00")
    assert listing.security_deposit == Decimal("3000.00")
    assert listing.application_fee == Decimal("50.00")
    assert listing.amenities == ["wifi", "pool"]
    assert listing.highlights == ["quiet", "sunny"]
    assert listing.photo_urls == ["https://cdn.test/properties/front.jpg"]
    assert listing.is_pets_allowed is True
    assert listing.is_parking_included is False
    assert (listing.beds, listing.baths, listing.square_feet) == (2, 1.5, 900)
    assert listing.posted_date == datetime(2024, 1, 1)
    assert listing.location.city == "Seattle"
    assert listing.location.coordinates.latitude == pytest.approx(47.6062)
    assert listing.manager.cognito_id == manager.cognito_id


async def test_property_lookup_and_listing(pool, listing, manager):
    properties = PropertyRepository(pool)

    assert await properties.get(listing.id + 100) is None
    assert await properties.exists(listing.id)
    assert not await properties.exists(listing.id + 100)
    assert [p.id for p in await properties.list()] == [listing.id]
    assert await properties.list(property_ids=[listing.id + 100]) == []
    assert [p.id for p in await properties.list_by_manager(manager.cognito_id)] == [listing.id]
    assert await properties.list_by_manager("someone-else") == []


async def test_contact_update_and_missing_contact(pool, manager):
    managers = ManagerRepository(pool)

    updated = await managers.update(
        manager.cognito_id,
        schemas.ContactUpdate(name="Maria M.", email="mm@example.com", phone_number="+1 555 0101"),
    )

    assert updated.name == "Maria M."
    assert (await managers.get(manager.cognito_id)).email == "mm@example.com"
    assert await managers.get("ghost") is None
    assert await managers.update(
        "ghost", schemas.ContactUpdate(name="x", email="x@example.com", phone_number="0")
    ) is None


async def test_favorite_twice_is_a_conflict(pool, tenant, listing):
    tenants = TenantRepository(pool)
    await tenants.add_favorite(tenant.cognito_id, listing.id)

    with pytest.raises(ConflictError):
        await tenants.add_favorite(tenant.cognito_id, listing.id)

    assert [p.id for p in await tenants.favorites(tenant.cognito_id)] == [listing.id]
    assert await tenants.remove_favorite(tenant.cognito_id, listing.id) == 1
    assert await tenants.favorites(tenant.cognito_id) == []


async def test_residence_link_is_idempotent(pool, tenant, listing, count_rows):
    tenants = TenantRepository(pool)

    await tenants.add_residence(tenant.cognito_id, listing.id)
    await tenants.add_residence(tenant.cognito_id, listing.id)

    assert await count_rows(RESIDENCES) == 1
    assert [p.id for p in await tenants.current_residences(tenant.cognito_id)] == [listing.id]


async def test_residence_link_joins_caller_transaction(pool, tenant, listing, count_rows):
    tenants = TenantRepository(pool)

    with pytest.raises(RuntimeError):
        async with pool.transaction() as conn:
            await tenants.add_residence(tenant.cognito_id, listing.id, conn=conn)
            raise RuntimeError("abort")

    assert await count_rows(RESIDENCES) == 0


async def test_lease_reads(pool, tenant, listing):
    leases = LeaseRepository(pool)
    older = await leases.create(
        datetime(2023, 1, 31), datetime(2024, 1, 31), Decimal("1400"), Decimal("2800"),
        listing.id, tenant.cognito_id,
    )
    newer = await leases.create(
        datetime(2024, 1, 31), datetime(2025, 1, 31), Decimal("1500.004"), Decimal("3000"),
        listing.id, tenant.cognito_id,
    )

    lease = await leases.get(newer, now=datetime(2024, 2, 15))
    assert lease.rent == Decimal("1500.00")
    assert lease.next_payment_date == datetime(2024, 2, 29)

    latest = await leases.latest_for(tenant.cognito_id, listing.id)
    assert latest.id == newer

    listed = await leases.list()
    assert [item.id for item in listed] == [older, newer]
    assert listed[0].tenant.name == tenant.name
    assert listed[0].property.name == listing.name

    assert await leases.get(newer + 100) is None
    assert await leases.latest_for("nobody", listing.id) is None


async def test_lease_payments_are_ordered_by_due_date(pool, tenant, listing):
    leases = LeaseRepository(pool)
    lease_id = await leases.create(
        datetime(2024, 1, 1), datetime(2025, 1, 1), Decimal("1500"), Decimal("3000"),
        listing.id, tenant.cognito_id,
    )
    async with pool.connection() as conn:
        for month in (3, 2):
            await conn.execute(insert(PAYMENTS).values(
                amount_due=Decimal("1500.00"),
                amount_paid=Decimal("750.5"),
                due_date=datetime(2024, month, 1),
                payment_date=datetime(2024, month, 2),
                payment_status="PartiallyPaid",
                lease_id=lease_id,
            ))

    payments = await leases.payments(lease_id)

    assert [p.due_date.month for p in payments] == [2, 3]
    assert payments[0].amount_paid == Decimal("750.50")


async def test_rent_is_not_linked_to_later_price_changes(pool, tenant, listing):
    leases = LeaseRepository(pool)
    lease_id = await leases.create(
        datetime(2024, 1, 1), datetime(2025, 1, 1), listing.price_per_month,
        listing.security_deposit, listing.id, tenant.cognito_id,
    )
    async with pool.connection() as conn:
        props = database.Property.__table__
        await conn.execute(update(props).where(props.c.id == listing.id).values(price_per_month=2000))

    assert (await leases.get(lease_id)).rent == Decimal("1500.00")


async def test_latest_leases_for_many_pairs(pool, tenant, listing):
    leases = LeaseRepository(pool)
    wanted = await leases.create(
        datetime(2024, 1, 1), datetime(2025, 1, 1), Decimal("1500"), Decimal("3000"),
        listing.id, tenant.cognito_id,
    )
    # same tenant, another property: shares the IN lists but is not a requested pair
    await leases.create(
        datetime(2024, 6, 1), datetime(2025, 6, 1), Decimal("900"), Decimal("900"),
        999, tenant.cognito_id,
    )

    latest = await leases.latest_for_each([(tenant.cognito_id, listing.id), ("tnt-2", 999)])

    assert list(latest) == [(tenant.cognito_id, listing.id)]
    assert latest[(tenant.cognito_id, listing.id)].id == wanted
    assert await leases.latest_for_each([]) == {}
