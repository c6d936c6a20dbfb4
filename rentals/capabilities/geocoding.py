from dataclasses import dataclass
from typing import Optional, Protocol, Tuple
import asyncio
import logging

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    country: str
    postal_code: str
    state: str = ""


class Geocoder(Protocol):
    async def resolve(self, address: Address) -> Optional[Tuple[float, float]]:
        """(latitude, longitude) for the address, or None when unknown"""
        ...


class NominatimGeocoder:
    """OpenStreetMap Nominatim structured search"""

    def __init__(self, url: str, user_agent: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    @classmethod
    def from_settings(cls, settings) -> "NominatimGeocoder":
        return cls(
            url=settings.geocoding_url,
            user_agent=settings.geocoding_user_agent,
            timeout=settings.geocoding_timeout,
        )

    def _search(self, address: Address) -> Optional[Tuple[float, float]]:
        params = {
            "street": address.street,
            "city": address.city,
            "country": address.country,
            "postalcode": address.postal_code,
            "format": "json",
            "limit": "1",
        }
        response = self.session.get(self.url, params=params, timeout=self.timeout)
        response.raise_for_status()
        results = response.json()
        if not results:
            return None

        first = results[0]
        if not first.get("lat") or not first.get("lon"):
            return None
        return float(first["lat"]), float(first["lon"])

    async def resolve(self, address: Address) -> Optional[Tuple[float, float]]:
        return await asyncio.to_thread(self._search, address)
