"""
Tiered asteroid cache.

Two independently keyed layers share one staleness rule:
  - daily_cache: the whole feed for one calendar day (fast path for the dashboard)
  - neo_object / close_approach: one row per object, approaches keyed by epoch ms

Reads return MISS rather than an empty list when nothing fresh is known, so
callers can tell a cold cache from a day with zero objects. Every database
failure is absorbed here: reads degrade to MISS, writes are logged and dropped.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from neowatch.core.clock import Clock, utcnow
from neowatch.core.errors import CacheUnavailable
from neowatch.models.daily_cache import DailyCache
from neowatch.models.neo import CloseApproach, NeoObject
from neowatch.schemas.neo import CelestialObject, CloseApproachData

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(hours=24)


class CacheMiss:
    """Sentinel for 'nothing fresh cached'. Compare with `is MISS`."""

    def __repr__(self) -> str:
        return "MISS"


MISS = CacheMiss()

CachedObjects = Union[List[CelestialObject], CacheMiss]


def is_stale(timestamp: Optional[datetime], now: datetime, max_age: timedelta = DEFAULT_MAX_AGE) -> bool:
    if timestamp is None:
        return True
    return now - timestamp > max_age


def daily_stats(day: date, objects: Iterable[CelestialObject]) -> Dict[str, Any]:
    """Aggregate block stored next to a daily entry. Only approaches on `day` count."""
    objects = list(objects)
    closest_km: Optional[float] = None
    fastest_kmh = 0.0
    for obj in objects:
        for approach in obj.close_approaches:
            if approach.approach_date != day:
                continue
            if closest_km is None or approach.miss_distance_km < closest_km:
                closest_km = approach.miss_distance_km
            fastest_kmh = max(fastest_kmh, approach.velocity_kmh)
    return {
        "count": len(objects),
        "hazardous": sum(1 for o in objects if o.is_hazardous),
        "closest_km": closest_km or 0.0,
        "fastest_kmh": fastest_kmh,
    }


def _to_entity(row: NeoObject) -> CelestialObject:
    return CelestialObject(
        id=row.id,
        neo_reference_id=row.neo_reference_id,
        name=row.name,
        nasa_jpl_url=row.nasa_jpl_url,
        absolute_magnitude=row.absolute_magnitude or 0.0,
        diameter_min_km=row.diameter_min_km or 0.0,
        diameter_max_km=row.diameter_max_km or 0.0,
        diameter_min_m=row.diameter_min_m or 0.0,
        diameter_max_m=row.diameter_max_m or 0.0,
        is_hazardous=bool(row.is_hazardous),
        is_sentry=bool(row.is_sentry),
        sentry_data=row.sentry_data,
        close_approaches=[
            CloseApproachData(
                approach_date=a.approach_date,
                approach_datetime=a.approach_datetime,
                epoch_ms=a.epoch_ms,
                velocity_kmh=a.velocity_kmh or 0.0,
                velocity_kms=a.velocity_kms or 0.0,
                miss_distance_km=a.miss_distance_km or 0.0,
                miss_distance_au=a.miss_distance_au or 0.0,
                miss_distance_lunar=a.miss_distance_lunar or 0.0,
                orbiting_body=a.orbiting_body or "Earth",
            )
            for a in row.close_approaches
        ],
        risk_score=row.risk_score or 0,
        risk_level=row.risk_level,
        orbital_data=row.orbital_data,
        last_fetched=row.last_fetched,
    )


def _apply_object(row: NeoObject, obj: CelestialObject) -> None:
    row.neo_reference_id = obj.neo_reference_id
    row.name = obj.name
    row.nasa_jpl_url = obj.nasa_jpl_url
    row.absolute_magnitude = obj.absolute_magnitude
    row.diameter_min_km = obj.diameter_min_km
    row.diameter_max_km = obj.diameter_max_km
    row.diameter_min_m = obj.diameter_min_m
    row.diameter_max_m = obj.diameter_max_m
    row.is_hazardous = obj.is_hazardous
    row.is_sentry = obj.is_sentry
    row.sentry_data = obj.sentry_data
    row.risk_score = obj.risk_score
    row.risk_level = obj.risk_level.value
    row.orbital_data = obj.orbital_data
    row.last_fetched = obj.last_fetched


def _apply_approach(row: CloseApproach, approach: CloseApproachData) -> None:
    row.approach_date = approach.approach_date
    row.approach_datetime = approach.approach_datetime
    row.velocity_kmh = approach.velocity_kmh
    row.velocity_kms = approach.velocity_kms
    row.miss_distance_km = approach.miss_distance_km
    row.miss_distance_au = approach.miss_distance_au
    row.miss_distance_lunar = approach.miss_distance_lunar
    row.orbiting_body = approach.orbiting_body


class NeoCache:
    """
    Read-through / write-behind store for parsed asteroids.

    Usage:
        cache = NeoCache(SessionLocal)
        objects = await cache.get_by_date_range(date(2024, 1, 15))
        if objects is MISS:
            ...fetch upstream, then queue cache.persist_fetch(...)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.max_age = max_age

    # ── Reads ──────────────────────────────────────────────────────────

    async def get_by_object_id(self, neo_id: str) -> Union[CelestialObject, CacheMiss]:
        try:
            async with self.session_factory() as db:
                row = await db.get(NeoObject, neo_id)
                if row is None:
                    return MISS
                if is_stale(row.last_fetched, self.clock(), self.max_age):
                    logger.info(f"Cached object {neo_id} is stale, will refetch")
                    return MISS
                return _to_entity(row)
        except SQLAlchemyError as e:
            logger.error(f"{CacheUnavailable.__name__} reading object {neo_id}: {e}")
            return MISS

    async def get_daily_entry(self, day: date) -> CachedObjects:
        try:
            async with self.session_factory() as db:
                row = await db.get(DailyCache, day)
                if row is None:
                    return MISS
                if is_stale(row.last_updated, self.clock(), self.max_age):
                    age_h = (self.clock() - row.last_updated).total_seconds() / 3600
                    logger.info(f"Daily cache for {day} is stale ({age_h:.1f}h old)")
                    return MISS
                payload = list(row.objects or [])
        except SQLAlchemyError as e:
            logger.error(f"{CacheUnavailable.__name__} reading daily cache {day}: {e}")
            return MISS

        try:
            return [CelestialObject.model_validate(o) for o in payload]
        except ValidationError as e:
            logger.error(f"Daily cache for {day} is corrupt, ignoring: {e}")
            return MISS

    async def get_by_date_range(self, start: date, end: Optional[date] = None) -> CachedObjects:
        """
        Fresh objects with an approach in [start, end].

        Single-day queries try the daily entry first; a fresh entry is returned
        as-is, even when empty. The per-object scan can only prove presence, so
        an empty scan is a MISS.
        """
        end = end or start
        if start == end:
            cached = await self.get_daily_entry(start)
            if cached is not MISS:
                logger.info(f"Daily cache HIT for {start} ({len(cached)} objects)")
                return cached
            logger.info(f"Daily cache MISS for {start}, falling back to object scan")

        cutoff = self.clock() - self.max_age
        try:
            async with self.session_factory() as db:
                stmt = (
                    select(NeoObject)
                    .where(NeoObject.last_fetched > cutoff)
                    .where(NeoObject.close_approaches.any(and_(
                        CloseApproach.approach_date >= start,
                        CloseApproach.approach_date <= end,
                    )))
                    .order_by(NeoObject.id)
                )
                rows = (await db.execute(stmt)).scalars().all()
                objects = [_to_entity(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"{CacheUnavailable.__name__} scanning {start}..{end}: {e}")
            return MISS

        if not objects:
            return MISS
        logger.info(f"Found {len(objects)} cached objects for {start}..{end}")
        return objects

    # ── Writes (only ever awaited from the write-behind queue) ─────────

    async def upsert_object(self, obj: CelestialObject) -> None:
        # One retry covers two fetches racing to insert the same new object
        for attempt in range(2):
            try:
                async with self.session_factory() as db:
                    row = await db.get(NeoObject, obj.id)
                    if row is None:
                        row = NeoObject(id=obj.id)
                        db.add(row)
                    _apply_object(row, obj)

                    by_epoch = {a.epoch_ms: a for a in row.close_approaches}
                    for approach in obj.close_approaches:
                        target = by_epoch.get(approach.epoch_ms)
                        if target is None:
                            target = CloseApproach(epoch_ms=approach.epoch_ms)
                            row.close_approaches.append(target)
                            by_epoch[approach.epoch_ms] = target
                        _apply_approach(target, approach)

                    await db.commit()
                    return
            except IntegrityError as e:
                if attempt == 0:
                    continue
                logger.error(f"{CacheUnavailable.__name__} saving object {obj.id}: {e}")
            except SQLAlchemyError as e:
                logger.error(f"{CacheUnavailable.__name__} saving object {obj.id}: {e}")
                return

    async def upsert_objects(self, objects: Iterable[CelestialObject]) -> None:
        count = 0
        for obj in objects:
            await self.upsert_object(obj)
            count += 1
        logger.info(f"Saved {count} objects to cache")

    async def upsert_daily_entry(self, day: date, objects: List[CelestialObject]) -> None:
        try:
            async with self.session_factory() as db:
                row = await db.get(DailyCache, day)
                if row is None:
                    row = DailyCache(date=day)
                    db.add(row)
                row.objects = [o.model_dump(mode="json") for o in objects]
                row.count = len(objects)
                row.stats = daily_stats(day, objects)
                row.last_updated = self.clock()
                await db.commit()
            logger.info(f"Saved daily cache for {day} ({len(objects)} objects)")
        except SQLAlchemyError as e:
            logger.error(f"{CacheUnavailable.__name__} saving daily cache {day}: {e}")

    async def persist_fetch(self, objects: List[CelestialObject], day: Optional[date] = None) -> None:
        """Write one fetch's results; `day` is set only for single-day feed fetches."""
        await self.upsert_objects(objects)
        if day is not None:
            await self.upsert_daily_entry(day, objects)
