# talenthunt/services/location_service.py
from datetime import timedelta
from typing import Awaitable, Callable, Optional
import logging

import httpx

from talenthunt.config import settings
from talenthunt.exceptions import AmbiguousUpstreamError, NotFoundError
from talenthunt.utils.dates import utcnow

logger = logging.getLogger(__name__)


class LocationUnavailable(AmbiguousUpstreamError):
    default_detail = "Unable to fetch location data. Please try again later."


class LocationCache:
    """
    Nigerian states, LGAs and wards, fetched once and refreshed when stale.

    One instance lives on ``app.state``; ``fetch`` can be swapped for a
    coroutine returning the raw state list (tests, offline runs).
    """

    def __init__(
        self,
        url: str = None,
        ttl_hours: int = None,
        fetch: Optional[Callable[[], Awaitable[list]]] = None,
    ):
        self.url = url or settings.LOCATION_DATA_URL
        self.ttl = timedelta(hours=ttl_hours if ttl_hours is not None else settings.LOCATION_CACHE_HOURS)
        self._fetch = fetch or self._fetch_remote
        self.data: Optional[list] = None
        self.last_refreshed = None

    async def _fetch_remote(self) -> list:
        logger.info("🌍 Fetching Nigerian location data...")
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Failed to fetch location data: {e}")
            raise LocationUnavailable() from e

        if not isinstance(data, list):
            raise LocationUnavailable("Invalid data format received from location service")
        logger.info(f"✅ Location data loaded for {len(data)} states")
        return data

    def is_fresh(self) -> bool:
        return self.data is not None and self.last_refreshed is not None and utcnow() - self.last_refreshed < self.ttl

    async def refresh(self) -> None:
        self.data = await self._fetch()
        self.last_refreshed = utcnow()

    async def states(self) -> list:
        if not self.is_fresh():
            await self.refresh()
        return self.data

    async def _state(self, state_name: str) -> dict:
        for state in await self.states():
            if state.get("state", "").lower() == state_name.strip().lower():
                return state
        raise NotFoundError(f"State '{state_name}' not found")

    async def list_states(self) -> list:
        return [{"name": s.get("state"), "lga_count": len(s.get("lgas", []))} for s in await self.states()]

    async def lgas_by_state(self, state_name: str) -> list:
        state = await self._state(state_name)
        return [{"name": lga.get("name"), "ward_count": len(lga.get("wards", []))} for lga in state.get("lgas", [])]

    async def lga_details(self, state_name: str, lga_name: str) -> dict:
        state = await self._state(state_name)
        for lga in state.get("lgas", []):
            if lga.get("name", "").lower() == lga_name.strip().lower():
                return lga
        raise NotFoundError(f"LGA '{lga_name}' not found in {state.get('state')} state")

    async def search_lgas(self, query: str, limit: int = 20) -> list:
        term = query.strip().lower()
        results = []
        for state in await self.states():
            for lga in state.get("lgas", []):
                if term in lga.get("name", "").lower():
                    results.append({
                        "state": state.get("state"),
                        "lga": lga.get("name"),
                        "ward_count": len(lga.get("wards", [])),
                    })
                    if len(results) >= limit:
                        return results
        return results

    def info(self) -> dict:
        return {
            "is_valid": self.is_fresh(),
            "last_refreshed": self.last_refreshed.isoformat() if self.last_refreshed else None,
            "state_count": len(self.data or []),
        }
