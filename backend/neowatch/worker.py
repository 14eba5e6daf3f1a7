"""
Celery worker for background tasks.
Tasks: alert checks against today's asteroids, NeoWs feed refresh.
"""
import asyncio
import logging
import sys

from celery import Celery

from neowatch.core.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

celery_app = Celery(
    "neowatch",
    broker=f"{settings.REDIS_URL}/0",
    backend=f"{settings.REDIS_URL}/1",
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)


@celery_app.on_after_configure.connect
def setup_periodic_tasks(sender, **kwargs):
    sender.add_periodic_task(
        settings.ALERT_CHECK_INTERVAL_MINUTES * 60.0,
        check_alerts_task.s(),
        name="Check alerts every hour",
    )

    sender.add_periodic_task(
        settings.CACHE_REFRESH_INTERVAL_HOURS * 3600.0,
        refresh_feed_task.s(),
        name="Refresh NeoWs feed every 6 hours",
    )


async def _in_fresh_loop(job):
    # each task runs its own event loop, so pooled connections must not outlive it
    from neowatch.db.session import engine

    try:
        return await job()
    finally:
        await engine.dispose()


@celery_app.task(name="check_alerts")
def check_alerts_task():
    """Run one notification scheduler pass."""
    from neowatch.services.runtime import run_notification_check

    summary = asyncio.run(_in_fresh_loop(run_notification_check))
    logger.info(f"Alert check finished in state {summary.state.value}")
    return summary.as_dict()


@celery_app.task(name="refresh_feed")
def refresh_feed_task():
    """Warm the cache for today and the coming week."""
    from neowatch.services.runtime import refresh_feed

    fetched = asyncio.run(_in_fresh_loop(refresh_feed))
    return {"fetched": fetched}
