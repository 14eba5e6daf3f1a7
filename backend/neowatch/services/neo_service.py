"""
Read-through access to asteroid data for routes and background jobs.

Every read checks the tiered cache first and only then goes upstream; the
resulting cache writes happen behind the caller's back.
"""
import logging
from datetime import date
from typing import List, Optional

from neowatch.core.errors import NeoNotFound, UpstreamUnavailable
from neowatch.schemas.neo import BrowsePage, CelestialObject
from neowatch.services.neo_cache import MISS, NeoCache
from neowatch.services.neows import NeoWsClient

logger = logging.getLogger(__name__)


class NeoService:
    def __init__(self, cache: NeoCache, client: NeoWsClient):
        self.cache = cache
        self.client = client

    async def get_objects_in_range(
        self,
        start: date,
        end: Optional[date] = None,
        degrade: bool = True,
    ) -> List[CelestialObject]:
        """
        Cache-first, upstream on MISS.

        With `degrade` (the request path) an unavailable upstream yields an
        empty list; background jobs pass degrade=False to see the failure.
        A 404 on a feed window is treated as the upstream being unavailable.
        """
        cached = await self.cache.get_by_date_range(start, end)
        if cached is not MISS:
            return cached

        logger.info(f"Cache miss for {start}..{end or start}, fetching from NeoWs")
        try:
            try:
                return await self.client.fetch_feed(start, end)
            except NeoNotFound as e:
                raise UpstreamUnavailable(f"NeoWs has no feed for {start}..{end or start}: {e}") from e
        except UpstreamUnavailable as e:
            if not degrade:
                raise
            logger.error(f"NeoWs unavailable, serving empty result: {e}")
            return []

    async def get_object(self, neo_id: str) -> Optional[CelestialObject]:
        """Raises NeoNotFound or UpstreamUnavailable; None means rate limited."""
        cached = await self.cache.get_by_object_id(neo_id)
        if cached is not MISS:
            return cached
        return await self.client.fetch_lookup(neo_id)

    async def browse_objects(self, page: int = 0, size: int = 20) -> BrowsePage:
        return await self.client.fetch_browse(page, size)
