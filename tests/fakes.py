"""In-memory stand-ins for the external capabilities, plus small builders."""
from typing import Dict, Optional, Tuple
import asyncio

from sqlalchemy.engine import URL

from rentals.capabilities.geocoding import Address
from rentals.errors import StorageError
from rentals.models import schemas
from rentals.pool import PoolConfig


class MemoryStorage:
    """Object storage keeping uploads in a dict"""

    def __init__(self, fail_on: Optional[str] = None, delays: Optional[Dict[str, float]] = None):
        self.fail_on = fail_on
        self.delays = delays or {}
        self.objects = {}

    async def store(self, data: bytes, content_type: str, key: str) -> str:
        for name, delay in self.delays.items():
            if key.endswith(name):
                await asyncio.sleep(delay)
        if self.fail_on and key.endswith(self.fail_on):
            raise StorageError(f"Upload of {key} failed: bucket unavailable")
        self.objects[key] = (data, content_type)
        return f"https://cdn.test/{key}"


class StaticGeocoder:
    def __init__(self, coordinates: Optional[Tuple[float, float]] = (47.6062, -122.3321),
                 error: Optional[Exception] = None):
        self.coordinates = coordinates
        self.error = error
        self.calls = []

    async def resolve(self, address: Address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        return self.coordinates


def sqlite_config(path, **pool_options) -> PoolConfig:
    options = dict(pool_min=1, pool_max=5, pool_timeout=5.0)
    options.update(pool_options)
    return PoolConfig(url=URL.create("sqlite+aiosqlite", database=str(path)), **options)


def property_form(manager_cognito_id: str, **overrides) -> schemas.PropertyCreate:
    fields = dict(
        name="Harbour Loft",
        description="Two bedroom loft by the water",
        price_per_month="1500",
        security_deposit="3000",
        application_fee="50",
        amenities=["wifi", "pool"],
        highlights="quiet,sunny",
        is_pets_allowed="true",
        is_parking_included=False,
        beds="2",
        baths="1.5",
        square_feet="900",
        property_type="Apartment",
        address="12 Harbour St",
        city="Seattle",
        state="WA",
        country="US",
        postal_code="98101",
        manager_cognito_id=manager_cognito_id,
    )
    fields.update(overrides)
    return schemas.PropertyCreate(**fields)
