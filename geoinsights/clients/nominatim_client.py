"""
Nominatim (OpenStreetMap) client for forward and reverse geocoding.
"""
import asyncio
from typing import Any, Dict, Optional, Tuple

from aiohttp import ClientError, ClientSession, ClientTimeout
from loguru import logger

from geoinsights.config import NOMINATIM_URL, REQUEST_TIMEOUT_SECONDS, USER_AGENT
from geoinsights.models import ReverseGeocodeResult


class NominatimError(RuntimeError):
    """Nominatim answered with a non-200 status."""


class NominatimClient:
    """
    Nominatim client for making geocoding requests.

    The client does not throttle itself: callers own the pacing between
    requests (Nominatim's usage policy allows at most one request per second).
    Every request is bounded by `timeout` seconds.
    """

    def __init__(
        self,
        base_url: str = NOMINATIM_URL,
        user_agent: str = USER_AGENT,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self._session: Optional[ClientSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def _get_json(self, endpoint: str, params: Dict[str, str]) -> Any:
        session = await self._get_session()
        async with session.get(f"{self.base_url}/{endpoint}", params=params) as resp:
            if resp.status != 200:
                raise NominatimError(f"Nominatim API failed with status {resp.status}")
            return await resp.json()

    async def reverse_geocode(self, lat: float, lon: float) -> ReverseGeocodeResult:
        """
        Resolve a coordinate pair to its city and state.

        Args:
            lat: Latitude in degrees.
            lon: Longitude in degrees.

        Returns:
            ReverseGeocodeResult: City (city, town or village) and state.
            Both are None when the request fails.
        """
        params = {
            "format": "jsonv2",
            "lat": str(lat),
            "lon": str(lon),
            "accept-language": "en",
        }
        try:
            data = await self._get_json("reverse", params)
        except (ClientError, asyncio.TimeoutError, NominatimError) as e:
            logger.debug(f"⚠️ Reverse geocoding failed for ({lat}, {lon}): {e}")
            return ReverseGeocodeResult(city=None, state=None)

        address = (data or {}).get("address", {}) if isinstance(data, dict) else {}
        return ReverseGeocodeResult(
            city=address.get("city") or address.get("town") or address.get("village") or None,
            state=address.get("state") or None,
        )

    async def geocode(self, address: str) -> Optional[Tuple[float, float]]:
        """
        Resolve a free-text address to coordinates.

        Args:
            address: Address query, e.g. "Padaria Real, Rua X 10, Campinas, SP".

        Returns:
            Optional[Tuple[float, float]]: (lat, lon) of the best hit, or None if nothing was found.

        Raises:
            NominatimError, aiohttp.ClientError, asyncio.TimeoutError: When the request fails.
        """
        results = await self._get_json("search", {"q": address, "format": "json", "limit": "1"})
        if not results:
            return None
        return float(results[0]["lat"]), float(results[0]["lon"])

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
