"""
Category snapshot stores.

One snapshot per category, replaced wholesale on every write. A snapshot
older than its TTL reads as absent even if the backend still holds it.

Backends:
- InMemoryCategoryStore: process-local dict, used when no Redis is configured
- RedisCategoryStore: ``data:<plural>`` keys with a matching Redis expiry
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from redis.exceptions import RedisError

from hazardwatch.exceptions import StoreReadFailure, StoreWriteFailure
from hazardwatch.schemas.event import CategorySnapshot, HazardCategory, HazardEvent

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CategoryStore(ABC):
    """
    Abstract snapshot store.

    Subclasses implement the raw read/write primitives; expiry, lookups and
    stats are shared.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or _utc_now

    @abstractmethod
    async def put_many(self, snapshots: Iterable[CategorySnapshot]) -> None:
        """
        Replace several snapshots, all or nothing.

        Raises:
            StoreWriteFailure: If the backend could not be written
        """
        pass

    @abstractmethod
    async def _read(self, category: HazardCategory) -> CategorySnapshot | None:
        """Return the stored snapshot regardless of its age."""
        pass

    async def put(self, category: HazardCategory, snapshot: CategorySnapshot) -> None:
        """Replace one category's snapshot."""
        if snapshot.category != category:
            raise ValueError(
                f"Snapshot for {snapshot.category.value} cannot be stored as {category.value}"
            )
        await self.put_many([snapshot])

    async def get(self, category: HazardCategory) -> CategorySnapshot | None:
        """
        Current snapshot for a category.

        Returns:
            The snapshot, or None if absent or older than its TTL
        """
        snapshot = await self._read(category)
        if snapshot is None:
            return None
        if snapshot.is_expired(self._clock()):
            logger.debug(f"Snapshot for {category.value} expired at {snapshot.expires_at.isoformat()}")
            return None
        return snapshot

    async def get_all(self) -> dict[HazardCategory, CategorySnapshot | None]:
        """Every category's current snapshot (None where absent)."""
        return {category: await self.get(category) for category in HazardCategory}

    async def find_event(self, event_id: str) -> HazardEvent | None:
        """Look up one event by id across all current snapshots."""
        for snapshot in (await self.get_all()).values():
            if snapshot is None:
                continue
            for event in snapshot.features:
                if event.id == event_id:
                    return event
        return None

    async def stats(self) -> dict[str, dict[str, Any]]:
        """Per-category count, source and remaining lifetime."""
        now = self._clock()
        report: dict[str, dict[str, Any]] = {}
        for category, snapshot in (await self.get_all()).items():
            if snapshot is None:
                report[category.plural] = {"available": False, "count": 0}
                continue
            report[category.plural] = {
                "available": True,
                "count": snapshot.count,
                "total_available": snapshot.total_available,
                "source": snapshot.source.value,
                "timestamp": snapshot.timestamp.isoformat(),
                "expires_in_s": round(snapshot.ttl_seconds - snapshot.age_seconds(now), 1),
            }
        return report


class InMemoryCategoryStore(CategoryStore):
    """Dict-backed store; a write swaps whole snapshot objects."""

    def __init__(self, clock: Clock | None = None):
        super().__init__(clock)
        self._snapshots: dict[HazardCategory, CategorySnapshot] = {}

    async def put_many(self, snapshots: Iterable[CategorySnapshot]) -> None:
        staged = {snapshot.category: snapshot for snapshot in snapshots}
        self._snapshots.update(staged)
        logger.debug(f"Stored snapshots: {', '.join(c.plural for c in staged)}")

    async def _read(self, category: HazardCategory) -> CategorySnapshot | None:
        return self._snapshots.get(category)

    def clear(self) -> None:
        self._snapshots.clear()


class RedisCategoryStore(CategoryStore):
    """
    Redis-backed store using ``redis.asyncio``.

    Each snapshot is stored as JSON under its category's storage key with an
    expiry equal to the snapshot TTL. Multi-category writes go through one
    MULTI/EXEC transaction.
    """

    def __init__(self, client, clock: Clock | None = None):
        """
        Args:
            client: ``redis.asyncio.Redis`` instance
            clock: Time source for expiry checks
        """
        super().__init__(clock)
        self.client = client

    @classmethod
    def from_url(cls, url: str, clock: Clock | None = None) -> "RedisCategoryStore":
        import redis.asyncio as aioredis

        return cls(aioredis.from_url(url), clock=clock)

    async def put_many(self, snapshots: Iterable[CategorySnapshot]) -> None:
        snapshots = list(snapshots)
        if not snapshots:
            return
        try:
            pipe = self.client.pipeline(transaction=True)
            for snapshot in snapshots:
                pipe.set(snapshot.category.storage_key, snapshot.to_json(), ex=snapshot.ttl_seconds)
            await pipe.execute()
        except RedisError as e:
            raise StoreWriteFailure(f"Redis write failed: {e}") from e
        logger.debug(f"Stored snapshots: {', '.join(s.category.plural for s in snapshots)}")

    async def _read(self, category: HazardCategory) -> CategorySnapshot | None:
        try:
            raw = await self.client.get(category.storage_key)
        except RedisError as e:
            raise StoreReadFailure(f"Redis read failed for {category.storage_key}: {e}") from e
        if raw is None:
            return None
        try:
            return CategorySnapshot.from_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding undecodable snapshot at {category.storage_key}: {e}")
            return None

    async def close(self) -> None:
        await self.client.aclose()
