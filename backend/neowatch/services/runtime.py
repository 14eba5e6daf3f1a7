"""
Process-wide service instances and the entry points the worker and scripts call.

Usage:
    from neowatch.services.runtime import neo_service, run_notification_check
    summary = await run_notification_check()
"""
import logging
from datetime import date, timedelta
from typing import Optional

from neowatch.core.clock import today
from neowatch.core.config import settings
from neowatch.core.errors import NeoNotFound, UpstreamUnavailable
from neowatch.db.session import SessionLocal
from neowatch.services.background import CacheWriteQueue
from neowatch.services.neo_cache import NeoCache
from neowatch.services.neo_service import NeoService
from neowatch.services.neows import NeoWsClient
from neowatch.services.notification_scheduler import NotificationScheduler, RunSummary
from neowatch.services.watchlist import InMemoryFallbackStore, WatchlistService

logger = logging.getLogger(__name__)

REFRESH_AHEAD_DAYS = 7

write_queue = CacheWriteQueue()
neo_cache = NeoCache(SessionLocal, max_age=timedelta(hours=settings.CACHE_MAX_AGE_HOURS))
neows_client = NeoWsClient(cache=neo_cache, write_queue=write_queue)
neo_service = NeoService(neo_cache, neows_client)
watchlist_service = WatchlistService(SessionLocal, neo_service, InMemoryFallbackStore())


async def run_notification_check() -> RunSummary:
    """One scheduler pass; waits for any cache writes it triggered."""
    scheduler = NotificationScheduler(SessionLocal, neo_service)
    try:
        return await scheduler.run()
    finally:
        await write_queue.drain()


async def refresh_feed(start: Optional[date] = None) -> int:
    """
    Warm the cache for the coming week plus today's daily entry.

    Windows are fetched one after another; a failed window is logged and the
    refresh moves on. Returns the number of objects fetched.
    """
    start = start or today()
    end = start + timedelta(days=REFRESH_AHEAD_DAYS)
    fetched = 0

    try:
        fetched += len(await neows_client.fetch_feed(start))
    except (UpstreamUnavailable, NeoNotFound) as e:
        logger.error(f"Refresh of {start} failed: {e}")

    window_start = start
    while window_start <= end:
        window_end = min(window_start + timedelta(days=settings.FEED_MAX_DAYS - 1), end)
        try:
            fetched += len(await neows_client.fetch_feed(window_start, window_end))
        except (UpstreamUnavailable, NeoNotFound) as e:
            logger.error(f"Refresh of {window_start}..{window_end} failed: {e}")
        window_start = window_end + timedelta(days=1)

    await write_queue.drain()
    logger.info(f"Feed refresh complete, {fetched} objects fetched")
    return fetched
