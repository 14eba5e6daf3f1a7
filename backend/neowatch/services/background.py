"""
Write-behind queue for cache persistence.

Fetch paths hand their cache writes to a CacheWriteQueue instead of awaiting
them, so a request only ever waits for the upstream round-trip. Failures are
reported on the queue's own channel (the log) and never reach the submitter.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Set

logger = logging.getLogger(__name__)

WriteJob = Callable[[], Awaitable[None]]


class CacheWriteQueue:
    """Runs submitted jobs as detached asyncio tasks and keeps them referenced until done."""

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()
        self.failed = 0

    def submit(self, job: WriteJob, description: str = "cache write") -> None:
        task = asyncio.get_running_loop().create_task(job(), name=description)
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"Background {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            self.failed += 1
            logger.error(f"Background {task.get_name()} failed: {exc}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every write submitted so far. Used on shutdown and in tests."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
            # let the done callbacks run before re-checking
            await asyncio.sleep(0)
