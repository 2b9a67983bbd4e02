"""
Nominatim geocoding client with a long-lived result cache.

Lookups are keyed by the normalized query, so "100 Main St, Dallas" and
"100  MAIN st,  dallas" share one cache entry and one outbound request.
"No result" (empty answer, non-200, malformed coordinates) is returned as
None and never cached. Network failures and timeouts raise GeocodingError,
which callers must treat differently from "no result".
"""

import asyncio
import logging
import math
from typing import Any, Optional

import requests

from shopfinder.schemas.shop_schema import GeocodeResult
from shopfinder.storage.kv import KVStore, geocode_key
from shopfinder.storage.locks import KeyedLocks
from shopfinder.tools.rate_limiter import RateLimiter
from shopfinder.utils import normalize_query

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_TTL_SECONDS = 30 * 24 * 60 * 60


class GeocodingError(Exception):
    """The provider could not be reached; a retry might help."""


class GeocodingClient:
    """Rate-limited, cached place lookup."""

    def __init__(
        self,
        kv: KVStore,
        user_agent: str,
        limiter: RateLimiter,
        url: str = DEFAULT_URL,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not user_agent or not user_agent.strip():
            raise ValueError(
                "A geocoding user agent with contact info is required "
                "(set NOMINATIM_USER_AGENT)."
            )
        self._kv = kv
        self._user_agent = user_agent.strip()
        self._limiter = limiter
        self._url = url
        self._cache_ttl = cache_ttl
        self._timeout = timeout
        self._session = session or requests.Session()
        self._inflight = KeyedLocks()

    async def geocode(self, query: str, namespace: str = "address") -> Optional[GeocodeResult]:
        """Resolve free text to coordinates, consulting the cache first."""
        cache_key = geocode_key(namespace, normalize_query(query))
        # Concurrent misses on one key wait here, then read the cached answer.
        async with self._inflight.hold(cache_key):
            cached = await self._kv.get(cache_key)
            if cached is not None:
                logger.debug("Geocode cache hit: %s", cache_key)
                return GeocodeResult.model_validate(cached)

            result = await self._lookup(query.strip())
            if result is not None:
                await self._kv.set(cache_key, result.model_dump(mode="json"), self._cache_ttl)
            return result

    async def geocode_city_state(self, city: str, state: str) -> Optional[GeocodeResult]:
        """Resolve a US city/state pair to its center point."""
        return await self.geocode(f"{city}, {state}, USA", namespace="citystate")

    async def _lookup(self, query: str) -> Optional[GeocodeResult]:
        params = {"format": "jsonv2", "limit": "1", "q": query, "addressdetails": "0"}
        headers = {"User-Agent": self._user_agent, "Accept-Language": "en"}
        async with self._limiter.acquire():
            try:
                response = await asyncio.to_thread(
                    self._session.get,
                    self._url,
                    params=params,
                    headers=headers,
                    timeout=self._timeout,
                )
            except requests.RequestException as exc:
                raise GeocodingError(f"Geocoding request failed for {query!r}: {exc}") from exc

        if response.status_code != 200:
            logger.warning(
                "Geocoder non-200 for %r: %s %s",
                query, response.status_code, response.text[:200],
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Geocoder returned non-JSON body for %r", query)
            return None
        return _parse_first_match(data)


def _parse_first_match(data: Any) -> Optional[GeocodeResult]:
    """Extract the best match; anything malformed counts as no result."""
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        return None
    item = data[0]
    try:
        lat = float(item.get("lat"))
        lng = float(item.get("lon"))
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return GeocodeResult(lat=lat, lng=lng, display_name=item.get("display_name"))
