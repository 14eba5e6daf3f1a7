import os

# Settings are read at import time, so the test environment must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./neowatch_test.db")
os.environ.setdefault("NASA_API_KEY", "TEST_KEY")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

from datetime import date, datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from neowatch.db.base import Base  # noqa: E402
from neowatch.services.background import CacheWriteQueue  # noqa: E402
from neowatch.services.neo_cache import NeoCache  # noqa: E402

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0)
FIXED_DAY = date(2024, 1, 15)


class FakeClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'neowatch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def cache(session_factory, clock):
    return NeoCache(session_factory, clock=clock)


@pytest.fixture
def write_queue():
    return CacheWriteQueue()


def make_approach(
    day: str = "2024-01-15",
    miss_km: float = 5_000_000.0,
    velocity_kmh: float = 50_000.0,
    epoch_ms: int = 1705320000000,
    body: str = "Earth",
) -> dict:
    """A close_approach_data entry shaped like NeoWs output (numbers as strings)."""
    return {
        "close_approach_date": day,
        "close_approach_date_full": f"{day} 12:00",
        "epoch_date_close_approach": epoch_ms,
        "relative_velocity": {
            "kilometers_per_second": str(velocity_kmh / 3600),
            "kilometers_per_hour": str(velocity_kmh),
        },
        "miss_distance": {
            "astronomical": str(miss_km / 149_597_870.7),
            "lunar": str(miss_km / 384_400),
            "kilometers": str(miss_km),
        },
        "orbiting_body": body,
    }


def make_raw_neo(
    neo_id: str = "3542519",
    name: str = "(2010 PK9)",
    hazardous: bool = False,
    diameter_max_km: float = 0.5,
    approaches=None,
    sentry: bool = False,
    orbital_data=None,
) -> dict:
    """A NeoWs object record; feed, lookup and browse all share this shape."""
    return {
        "id": neo_id,
        "neo_reference_id": neo_id,
        "name": name,
        "nasa_jpl_url": f"https://ssd.jpl.nasa.gov/tools/sbdb_lookup.html#/?sstr={neo_id}",
        "absolute_magnitude_h": 21.3,
        "estimated_diameter": {
            "kilometers": {
                "estimated_diameter_min": diameter_max_km / 2,
                "estimated_diameter_max": diameter_max_km,
            },
            "meters": {
                "estimated_diameter_min": diameter_max_km * 500,
                "estimated_diameter_max": diameter_max_km * 1000,
            },
        },
        "is_potentially_hazardous_asteroid": hazardous,
        "close_approach_data": [make_approach()] if approaches is None else approaches,
        "is_sentry_object": sentry,
        "orbital_data": orbital_data,
    }


def make_feed(records_by_day: dict) -> dict:
    count = sum(len(records) for records in records_by_day.values())
    return {"element_count": count, "near_earth_objects": records_by_day}
