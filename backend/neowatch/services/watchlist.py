"""
User watchlists.

Entries live in the database. When the database is unreachable the service
keeps working against an injected FallbackStore, partitioned by user, so a
watch added during an outage is still visible to that user for the life of
the process.
"""
import abc
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from neowatch.core.clock import Clock, today, utcnow
from neowatch.core.errors import AlreadyWatched, NotWatched
from neowatch.models.watchlist import WatchlistEntry
from neowatch.services.neo_service import NeoService

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 7


class FallbackStore(abc.ABC):
    """Key/value store partitioned by user key."""

    @abc.abstractmethod
    async def get(self, user_key: str, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def set(self, user_key: str, key: str, value: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def delete(self, user_key: str, key: str) -> bool:
        ...

    @abc.abstractmethod
    async def list(self, user_key: str) -> List[Dict[str, Any]]:
        ...


class InMemoryFallbackStore(FallbackStore):
    def __init__(self):
        self._partitions: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    async def get(self, user_key: str, key: str) -> Optional[Dict[str, Any]]:
        return self._partitions[user_key].get(key)

    async def set(self, user_key: str, key: str, value: Dict[str, Any]) -> None:
        self._partitions[user_key][key] = value

    async def delete(self, user_key: str, key: str) -> bool:
        return self._partitions[user_key].pop(key, None) is not None

    async def list(self, user_key: str) -> List[Dict[str, Any]]:
        return list(self._partitions[user_key].values())


def _entry_dict(entry: WatchlistEntry) -> Dict[str, Any]:
    return {
        "watchlist_id": entry.id,
        "neo_id": entry.neo_id,
        "stored_data": entry.stored_data or {},
        "added_at": entry.added_at,
    }


class WatchlistService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        neo_service: NeoService,
        fallback: FallbackStore,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.neo_service = neo_service
        self.fallback = fallback
        self.clock = clock

    async def add(self, user_id: int, neo_id: str, snapshot: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        snapshot = snapshot or {"id": neo_id, "name": neo_id}
        try:
            async with self.session_factory() as db:
                existing = await db.execute(
                    select(WatchlistEntry.id).where(
                        WatchlistEntry.user_id == user_id, WatchlistEntry.neo_id == neo_id
                    )
                )
                if existing.first() is not None:
                    raise AlreadyWatched(f"{neo_id} is already in the watchlist")
                entry = WatchlistEntry(user_id=user_id, neo_id=neo_id, stored_data=snapshot, added_at=self.clock())
                db.add(entry)
                try:
                    await db.commit()
                except IntegrityError as e:
                    raise AlreadyWatched(f"{neo_id} is already in the watchlist") from e
                return _entry_dict(entry)
        except SQLAlchemyError as e:
            logger.warning(f"Watchlist database unavailable, using fallback store: {e}")

        user_key = str(user_id)
        if await self.fallback.get(user_key, neo_id) is not None:
            raise AlreadyWatched(f"{neo_id} is already in the watchlist")
        item = {"watchlist_id": None, "neo_id": neo_id, "stored_data": snapshot, "added_at": self.clock()}
        await self.fallback.set(user_key, neo_id, item)
        return item

    async def remove(self, user_id: int, neo_id: str) -> None:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    delete(WatchlistEntry).where(
                        WatchlistEntry.user_id == user_id, WatchlistEntry.neo_id == neo_id
                    )
                )
                await db.commit()
            removed = result.rowcount > 0
        except SQLAlchemyError as e:
            logger.warning(f"Watchlist database unavailable, using fallback store: {e}")
            removed = False
        # An entry may also have been added to the fallback during an outage
        removed = await self.fallback.delete(str(user_id), neo_id) or removed
        if not removed:
            raise NotWatched(f"{neo_id} is not in the watchlist")

    async def list(self, user_id: int) -> List[Dict[str, Any]]:
        """Entries merged with fresh data from the recent window, newest first."""
        entries: List[Dict[str, Any]] = []
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(WatchlistEntry).where(WatchlistEntry.user_id == user_id))
                entries = [_entry_dict(e) for e in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.warning(f"Watchlist database unavailable, using fallback store: {e}")
        entries.extend(await self.fallback.list(str(user_id)))
        if not entries:
            return []

        end = today(self.clock)
        recent = await self.neo_service.get_objects_in_range(end - timedelta(days=RECENT_WINDOW_DAYS), end)
        fresh = {obj.id: obj.model_dump(mode="json") for obj in recent}

        items = []
        for entry in entries:
            combined = {**entry["stored_data"], **fresh.get(entry["neo_id"], {}), "id": entry["neo_id"]}
            if not combined.get("name"):
                continue
            items.append({"watchlist_id": entry["watchlist_id"], "added_at": entry["added_at"], **combined})

        items.sort(key=lambda item: item["added_at"] or datetime.min, reverse=True)
        return items
