"""
Notification Scheduler

One run checks every active alert rule against today's asteroids:

    LOAD_RULES -> LOAD_OBJECTS -> MATCH -> DEDUP_AND_PERSIST -> DONE

A failure while loading rules or objects aborts the run before anything is
written. Each matched pair is persisted in its own session, so one failed
insert never stops the rest. The existence check runs before every insert and
the (user, alert, object, date) unique constraint settles overlapping runs.
Only approaches dated on the run day are matched, since that day is part of
the notification key.
"""
import enum
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from neowatch.core.clock import Clock, today, utcnow
from neowatch.core.errors import DuplicateNotification, UpstreamUnavailable
from neowatch.models.alert import AlertRule
from neowatch.schemas.neo import CelestialObject
from neowatch.services.alert_matcher import matches, render_message
from neowatch.services.alerts import create_notification, list_active_alert_rules, notification_exists
from neowatch.services.neo_service import NeoService

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    LOAD_RULES = "LOAD_RULES"
    LOAD_OBJECTS = "LOAD_OBJECTS"
    MATCH = "MATCH"
    DEDUP_AND_PERSIST = "DEDUP_AND_PERSIST"
    DONE = "DONE"
    ABORTED = "ABORTED"


@dataclass
class RunSummary:
    run_date: Optional[date] = None
    state: RunState = RunState.LOAD_RULES
    rules_checked: int = 0
    objects_checked: int = 0
    matches: int = 0
    notifications_created: int = 0
    duplicates_skipped: int = 0
    failures: int = 0
    duration_ms: int = 0

    def as_dict(self) -> dict:
        return {
            "run_date": self.run_date.isoformat() if self.run_date else None,
            "state": self.state.value,
            "rules_checked": self.rules_checked,
            "objects_checked": self.objects_checked,
            "matches": self.matches,
            "notifications_created": self.notifications_created,
            "duplicates_skipped": self.duplicates_skipped,
            "failures": self.failures,
            "duration_ms": self.duration_ms,
        }


def approaching_on(obj: CelestialObject, day: date) -> Optional[CelestialObject]:
    """`obj` narrowed to its approaches on `day`, or None if it has none that day."""
    approaches = [a for a in obj.close_approaches if a.approach_date == day]
    if not approaches:
        return None
    return obj.model_copy(update={"close_approaches": approaches})


class NotificationScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        neo_service: NeoService,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.neo_service = neo_service
        self.clock = clock

    async def _persist(self, rule: AlertRule, obj: CelestialObject, run_date: date) -> bool:
        """True if a notification was created, False if one already existed."""
        async with self.session_factory() as db:
            try:
                if await notification_exists(db, rule.user_id, rule.id, obj.id, run_date):
                    raise DuplicateNotification(f"alert {rule.id} / object {obj.id} already notified")
                await create_notification(db, rule, obj, render_message(obj, rule), run_date, clock=self.clock)
            except DuplicateNotification:
                return False
        return True

    async def run(self) -> RunSummary:
        started = time.perf_counter()
        run_date = today(self.clock)
        summary = RunSummary(run_date=run_date)
        logger.info(f"[Alert Checker] Starting alert check for {run_date}")

        try:
            async with self.session_factory() as db:
                rules = await list_active_alert_rules(db)
            summary.rules_checked = len(rules)
            if not rules:
                logger.info("[Alert Checker] No active alerts found, skipping")
                summary.state = RunState.DONE
                return summary

            summary.state = RunState.LOAD_OBJECTS
            loaded = await self.neo_service.get_objects_in_range(run_date, degrade=False)
            objects = [o for o in (approaching_on(obj, run_date) for obj in loaded) if o is not None]
            summary.objects_checked = len(objects)
            if not objects:
                logger.info(f"[Alert Checker] No asteroids for {run_date}, skipping")
                summary.state = RunState.DONE
                return summary
        except (SQLAlchemyError, UpstreamUnavailable) as e:
            logger.error(f"[Alert Checker] Aborted during {summary.state.value}: {e}")
            summary.state = RunState.ABORTED
            return summary
        finally:
            summary.duration_ms = int((time.perf_counter() - started) * 1000)

        summary.state = RunState.MATCH
        matched = [(rule, obj) for rule in rules for obj in objects if matches(obj, rule)]
        summary.matches = len(matched)

        summary.state = RunState.DEDUP_AND_PERSIST
        for rule, obj in matched:
            try:
                created = await self._persist(rule, obj, run_date)
            except SQLAlchemyError as e:
                summary.failures += 1
                logger.error(f"[Alert Checker] Failed to create notification for alert {rule.id} / {obj.id}: {e}")
                continue
            if created:
                summary.notifications_created += 1
                logger.info(f"[Alert Checker] Notification created for user {rule.user_id}: {obj.name}")
            else:
                summary.duplicates_skipped += 1

        summary.state = RunState.DONE
        summary.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"[Alert Checker] Check complete! {summary.matches} matches, "
            f"{summary.notifications_created} notifications created, "
            f"{summary.duplicates_skipped} duplicates skipped in {summary.duration_ms}ms"
        )
        return summary
