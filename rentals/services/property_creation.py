from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
import asyncio
import logging

from rentals.capabilities.geocoding import Address, Geocoder
from rentals.capabilities.storage import ObjectStorage
from rentals.errors import NotFoundError, StorageError
from rentals.models import schemas
from rentals.pool import PoolHandle
from rentals.repositories.managers import ManagerRepository
from rentals.repositories.properties import PropertyRepository
from rentals.utils.codecs import DecimalMoney
from rentals.utils.dates import utcnow

logger = logging.getLogger(__name__)

UNRESOLVED_COORDINATES = (0.0, 0.0)


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes


class PropertyCreationWorkflow:
    """Creates a listing with its photos and geocoded location.

    Photos are uploaded and the address geocoded before any database work.
    Uploads are all-or-nothing: the first failure cancels the rest and no
    rows are written. Geocoding is best-effort and falls back to (0, 0).
    The location and the property are then inserted in one transaction.
    """

    def __init__(self, pool: PoolHandle, storage: ObjectStorage, geocoder: Geocoder,
                 properties: Optional[PropertyRepository] = None,
                 managers: Optional[ManagerRepository] = None):
        self.pool = pool
        self.storage = storage
        self.geocoder = geocoder
        self.properties = properties or PropertyRepository(pool)
        self.managers = managers or ManagerRepository(pool)

    @staticmethod
    def object_key(file: UploadedFile, index: int, now: datetime) -> str:
        stamp = int(now.timestamp() * 1000)
        return f"properties/{stamp}-{index}-{file.filename}"

    async def _upload(self, file: UploadedFile, key: str) -> str:
        try:
            return await self.storage.store(file.data, file.content_type, key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Upload of {file.filename} failed: {e}") from e

    async def upload_photos(self, files: Sequence[UploadedFile], now: datetime) -> List[str]:
        tasks = [
            asyncio.ensure_future(self._upload(file, self.object_key(file, index, now)))
            for index, file in enumerate(files)
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def geocode(self, address: Address) -> Tuple[float, float]:
        try:
            coordinates = await self.geocoder.resolve(address)
        except Exception as e:
            logger.warning(f"Geocoding failed for {address.street}, {address.city}: {e}")
            return UNRESOLVED_COORDINATES
        if coordinates is None:
            logger.warning(f"No coordinates found for {address.street}, {address.city}")
            return UNRESOLVED_COORDINATES
        return coordinates

    async def create(self, data: schemas.PropertyCreate, files: Sequence[UploadedFile] = (),
                     now: Optional[datetime] = None) -> schemas.Property:
        if await self.managers.get(data.manager_cognito_id) is None:
            raise NotFoundError("Manager not found")
        # out-of-range amounts are rejected before anything is uploaded
        for amount in (data.price_per_month, data.security_deposit, data.application_fee):
            DecimalMoney.encode(amount)

        now = now or utcnow()
        photo_urls = await self.upload_photos(files, now)
        latitude, longitude = await self.geocode(
            Address(
                street=data.address,
                city=data.city,
                country=data.country,
                postal_code=data.postal_code,
                state=data.state,
            )
        )

        async with self.pool.transaction() as conn:
            location_id = await self.properties.create_location(
                address=data.address,
                city=data.city,
                state=data.state,
                country=data.country,
                postal_code=data.postal_code,
                latitude=latitude,
                longitude=longitude,
                conn=conn,
            )
            property_id = await self.properties.create(
                data, photo_urls, location_id, posted_date=now, conn=conn
            )

        created = await self.properties.get(property_id)
        if created is None:
            raise NotFoundError("Property not found after creation.")
        return created
