"""Run one alert check pass by hand and print the summary."""
import asyncio
import logging

from neowatch.db.session import engine, init_db
from neowatch.services.runtime import run_notification_check

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


async def run():
    await init_db()
    try:
        summary = await run_notification_check()
    finally:
        await engine.dispose()

    print(f"Alert check finished: {summary.state.value}")
    for key, value in summary.as_dict().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    asyncio.run(run())
