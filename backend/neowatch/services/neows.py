"""
NASA NeoWs REST API Client

Provides access to the Near Earth Object Web Service:
- feed: objects approaching within a date window (max 7 days per call)
- lookup: a single object by id
- browse: the paginated catalog

Every record goes through the parser, and fetched objects are handed to the
cache write queue without being awaited. Rate limiting degrades to an empty
result; any other upstream failure raises UpstreamUnavailable.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

import httpx

from neowatch.core.clock import Clock, utcnow
from neowatch.core.config import settings
from neowatch.core.errors import (
    MalformedRecord,
    NeoNotFound,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from neowatch.schemas.neo import BrowsePage, CelestialObject, Pagination
from neowatch.services.background import CacheWriteQueue
from neowatch.services.neo_cache import NeoCache
from neowatch.services.neo_parser import parse_neo

logger = logging.getLogger(__name__)

QUOTA_ERROR_CODES = {"OVER_RATE_LIMIT"}


def _is_quota_error(resp: httpx.Response) -> bool:
    if resp.status_code == 429:
        return True
    if resp.status_code != 403:
        return False
    try:
        error = resp.json().get("error", {})
    except (ValueError, AttributeError):
        return False
    return isinstance(error, dict) and error.get("code") in QUOTA_ERROR_CODES


def merge_feed_records(near_earth_objects: Dict[str, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Flatten the per-date feed payload into one record per object id.

    An object approaching twice inside the window is listed under both dates,
    each copy carrying only that date's approach; the copies are merged so the
    object is parsed and scored once with its full approach list.
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for day in sorted(near_earth_objects):
        for record in near_earth_objects[day] or []:
            if not isinstance(record, dict) or record.get("id") is None:
                # let the parser reject it with a proper reason
                merged[f"_invalid_{len(merged)}"] = record
                continue
            key = str(record["id"])
            if key not in merged:
                merged[key] = {**record, "close_approach_data": list(record.get("close_approach_data") or [])}
            else:
                merged[key]["close_approach_data"].extend(record.get("close_approach_data") or [])
    return list(merged.values())


class NeoWsClient:
    """
    Async client for api.nasa.gov/neo/rest/v1.

    Usage:
        client = NeoWsClient(cache=NeoCache(SessionLocal), write_queue=CacheWriteQueue())
        objects = await client.fetch_feed(date(2024, 1, 15))
    """

    def __init__(
        self,
        cache: Optional[NeoCache] = None,
        write_queue: Optional[CacheWriteQueue] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_days: Optional[int] = None,
        clock: Clock = utcnow,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.write_queue = write_queue
        self.base_url = (base_url or settings.NASA_BASE_URL).rstrip("/")
        self.api_key = api_key or settings.NASA_API_KEY
        self.timeout = timeout if timeout is not None else settings.UPSTREAM_TIMEOUT_SECONDS
        self.max_days = max_days if max_days is not None else settings.FEED_MAX_DAYS
        self.clock = clock
        self.transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = dict(params or {})
        query["api_key"] = self.api_key
        url = f"{self.base_url}/{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, params=query)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"NeoWs timed out after {self.timeout}s on /{path}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"NeoWs request to /{path} failed: {e}") from e

        if _is_quota_error(resp):
            raise UpstreamRateLimited(f"NeoWs rate limit hit on /{path} ({resp.status_code})")
        if resp.status_code == 404:
            raise NeoNotFound(f"NeoWs has no resource at /{path}")
        if not resp.is_success:
            raise UpstreamUnavailable(f"NeoWs returned {resp.status_code} for /{path}")

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"NeoWs returned invalid JSON for /{path}") from e

    def _parse_all(self, records: Iterable[Any]) -> List[CelestialObject]:
        objects = []
        for raw in records:
            try:
                objects.append(parse_neo(raw, clock=self.clock))
            except MalformedRecord as e:
                logger.warning(f"Skipping NeoWs record: {e}")
        return objects

    def _schedule_cache_write(self, objects: List[CelestialObject], day: Optional[date] = None) -> None:
        if self.cache is None or self.write_queue is None:
            return
        cache = self.cache
        self.write_queue.submit(
            lambda: cache.persist_fetch(objects, day),
            description=f"cache write of {len(objects)} objects",
        )

    async def fetch_feed(self, start_date: date, end_date: Optional[date] = None) -> List[CelestialObject]:
        """
        Objects with an approach between start_date and end_date (inclusive).

        The window may span at most `max_days`; wider ranges must be chunked by
        the caller. Single-day fetches also refresh that day's daily cache.
        """
        end = end_date or start_date
        if end < start_date:
            raise ValueError(f"end_date {end} is before start_date {start_date}")
        if end - start_date > timedelta(days=self.max_days):
            raise ValueError(f"NeoWs feed window is limited to {self.max_days} days")

        logger.info(f"Fetching NeoWs feed: {start_date} to {end}")
        try:
            data = await self._get("feed", {
                "start_date": start_date.isoformat(),
                "end_date": end.isoformat(),
            })
        except UpstreamRateLimited as e:
            logger.warning(f"{e}. Returning empty feed.")
            return []

        near_earth_objects = data.get("near_earth_objects") if isinstance(data, dict) else None
        if not isinstance(near_earth_objects, dict):
            raise UpstreamUnavailable("NeoWs feed payload has no near_earth_objects map")

        objects = self._parse_all(merge_feed_records(near_earth_objects))
        logger.info(f"Fetched {len(objects)} objects from NeoWs")

        self._schedule_cache_write(objects, day=start_date if end == start_date else None)
        return objects

    async def fetch_lookup(self, neo_id: str) -> Optional[CelestialObject]:
        """One object by id, or None when the API key is rate limited."""
        logger.info(f"Fetching object {neo_id} from NeoWs")
        try:
            data = await self._get(f"neo/{neo_id}")
        except UpstreamRateLimited as e:
            logger.warning(f"{e}. Lookup of {neo_id} skipped.")
            return None

        try:
            obj = parse_neo(data, clock=self.clock)
        except MalformedRecord as e:
            raise UpstreamUnavailable(f"NeoWs returned an unusable record for {neo_id}") from e

        self._schedule_cache_write([obj])
        return obj

    async def fetch_browse(self, page: int = 0, size: int = 20) -> BrowsePage:
        logger.info(f"Browsing NeoWs catalog page {page}")
        try:
            data = await self._get("neo/browse", {"page": page, "size": size})
        except UpstreamRateLimited as e:
            logger.warning(f"{e}. Returning empty browse page.")
            return BrowsePage(pagination=Pagination(current_page=page, size=size))

        if not isinstance(data, dict):
            raise UpstreamUnavailable("NeoWs browse payload is not an object")

        objects = self._parse_all(data.get("near_earth_objects") or [])
        page_info = data.get("page") or {}
        self._schedule_cache_write(objects)

        return BrowsePage(
            objects=objects,
            pagination=Pagination(
                total=page_info.get("total_elements", 0),
                total_pages=page_info.get("total_pages", 0),
                size=page_info.get("size", size),
                current_page=page_info.get("number", page),
            ),
        )
