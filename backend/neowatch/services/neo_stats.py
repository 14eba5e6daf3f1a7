"""
Dashboard aggregates: today's stats, daily trends and the monthly calendar.

Everything here reads through NeoService, so the same cache-first rules apply.
"""
import calendar
import logging
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from neowatch.core.clock import Clock, today, utcnow
from neowatch.schemas.neo import CelestialObject
from neowatch.services.neo_cache import MISS
from neowatch.services.neo_service import NeoService
from neowatch.services.risk import RiskLevel

logger = logging.getLogger(__name__)

MAX_TREND_DAYS = 30
FEED_CHUNK_DAYS = 7
CALENDAR_PREVIEW = 5
MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


def risk_distribution(objects: List[CelestialObject]) -> Dict[str, int]:
    counts = {level.value.lower(): 0 for level in RiskLevel}
    for obj in objects:
        counts[obj.risk_level.value.lower()] += 1
    return counts


def summarize_day(day: date, objects: List[CelestialObject]) -> Dict[str, Any]:
    closest_km: Optional[float] = None
    fastest_kmh = 0.0
    asteroid_of_day = None
    best_interest = 0.0

    for obj in objects:
        approach = obj.approach_on(day)
        if approach is None:
            continue
        distance = approach.miss_distance_km
        velocity = approach.velocity_kmh
        if closest_km is None or distance < closest_km:
            closest_km = distance
        fastest_kmh = max(fastest_kmh, velocity)

        # Closer, bigger and faster is more interesting
        interest = (1 / (distance + 1)) * obj.diameter_max_km * 1000 + velocity / 1000
        if interest > best_interest:
            best_interest = interest
            asteroid_of_day = {
                "id": obj.id,
                "name": obj.name,
                "diameter_km": obj.diameter_max_km,
                "velocity_kmh": velocity,
                "miss_distance_km": distance,
                "is_hazardous": obj.is_hazardous,
                "nasa_jpl_url": obj.nasa_jpl_url,
            }

    return {
        "date": day.isoformat(),
        "total": len(objects),
        "hazardous_count": sum(1 for o in objects if o.is_hazardous),
        "closest_km": round(closest_km) if closest_km is not None else 0,
        "fastest_kmh": round(fastest_kmh),
        "asteroid_of_day": asteroid_of_day,
        "risk_distribution": risk_distribution(objects),
    }


async def today_stats(neo_service: NeoService, clock: Clock = utcnow) -> Dict[str, Any]:
    """Today's summary; falls back to yesterday's cache when today comes back empty."""
    day = today(clock)
    objects = await neo_service.get_objects_in_range(day)

    if not objects:
        yesterday = day - timedelta(days=1)
        logger.warning(f"No objects for {day}, trying cached data for {yesterday}")
        cached = await neo_service.cache.get_by_date_range(yesterday)
        if cached is not MISS and cached:
            logger.info(f"Using {len(cached)} cached objects from {yesterday}")
            return summarize_day(yesterday, cached)

    return summarize_day(day, objects)


async def daily_trends(neo_service: NeoService, days: int = 7, clock: Clock = utcnow) -> List[Dict[str, Any]]:
    """Per-day totals for the past `days` days, oldest first."""
    if not 1 <= days <= MAX_TREND_DAYS:
        raise ValueError(f"days must be between 1 and {MAX_TREND_DAYS}")

    end = today(clock)
    trends = []
    for offset in range(days - 1, -1, -1):
        day = end - timedelta(days=offset)
        objects = await neo_service.get_objects_in_range(day)
        trends.append({
            "date": day.isoformat(),
            "total": len(objects),
            "hazardous": sum(1 for o in objects if o.is_hazardous),
        })
    return trends


def month_bounds(month: str) -> tuple:
    if not MONTH_PATTERN.match(month):
        raise ValueError("Invalid month format. Use YYYY-MM")
    year, month_num = (int(part) for part in month.split("-"))
    if not 1 <= month_num <= 12:
        raise ValueError("Invalid month format. Use YYYY-MM")
    last_day = calendar.monthrange(year, month_num)[1]
    return date(year, month_num, 1), date(year, month_num, last_day)


async def month_calendar(neo_service: NeoService, month: str) -> Dict[str, Any]:
    """
    Approaches per day for one month.

    The feed only serves 7-day windows, so the month is read in sequential
    chunks; a chunk that fails contributes nothing.
    """
    first, last = month_bounds(month)

    seen = set()
    days: Dict[date, Dict[str, Any]] = {}
    chunk_start = first
    while chunk_start <= last:
        chunk_end = min(chunk_start + timedelta(days=FEED_CHUNK_DAYS - 1), last)
        objects = await neo_service.get_objects_in_range(chunk_start, chunk_end)

        for obj in objects:
            for approach in obj.close_approaches:
                day = approach.approach_date
                if not first <= day <= last or (obj.id, approach.epoch_ms) in seen:
                    continue
                seen.add((obj.id, approach.epoch_ms))

                bucket = days.setdefault(day, {"total": 0, "hazardous": 0, "closest_km": None, "asteroids": []})
                bucket["total"] += 1
                if obj.is_hazardous:
                    bucket["hazardous"] += 1
                if bucket["closest_km"] is None or approach.miss_distance_km < bucket["closest_km"]:
                    bucket["closest_km"] = approach.miss_distance_km
                bucket["asteroids"].append({
                    "id": obj.id,
                    "name": obj.name,
                    "is_hazardous": obj.is_hazardous,
                    "miss_km": approach.miss_distance_km,
                })

        chunk_start = chunk_end + timedelta(days=1)

    return {
        "month": month,
        "days": [
            {
                "date": day.isoformat(),
                "total": bucket["total"],
                "hazardous": bucket["hazardous"],
                "closest_km": round(bucket["closest_km"]) if bucket["closest_km"] is not None else None,
                "asteroids": bucket["asteroids"][:CALENDAR_PREVIEW],
            }
            for day, bucket in sorted(days.items())
        ],
    }
