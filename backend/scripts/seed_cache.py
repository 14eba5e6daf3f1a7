"""Seed the daily cache with the past week of NeoWs data. Run once against a fresh database."""
import asyncio
import logging
from datetime import timedelta

from neowatch.core.clock import today
from neowatch.core.errors import NeoNotFound, UpstreamUnavailable
from neowatch.db.session import engine, init_db
from neowatch.services.runtime import neows_client, write_queue

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

SEED_DAYS = 7
REQUEST_DELAY_SECONDS = 1.0


async def seed():
    await init_db()
    print("Starting cache seed...")

    results = []
    start = today()
    for offset in range(SEED_DAYS, -1, -1):
        day = start - timedelta(days=offset)
        print(f"Fetching {day}...")
        try:
            objects = await neows_client.fetch_feed(day)
            results.append((day, len(objects), "ok"))
        except (UpstreamUnavailable, NeoNotFound) as e:
            print(f"  Failed: {e}")
            results.append((day, 0, f"failed: {e}"))
        # stay clear of the DEMO_KEY rate limit
        await asyncio.sleep(REQUEST_DELAY_SECONDS)

    await write_queue.drain()
    await engine.dispose()

    print("\nSeeding summary:")
    for day, count, status in results:
        print(f"{day}: {count} asteroids - {status}")
    succeeded = sum(1 for _, _, status in results if status == "ok")
    print(f"\nTotal: {sum(count for _, count, _ in results)} asteroids cached")
    print(f"Success rate: {succeeded}/{len(results)} days")


if __name__ == "__main__":
    asyncio.run(seed())
