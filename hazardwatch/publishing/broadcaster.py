"""
Fire-and-forget snapshot notifications.

Subscribers register a callback ``callback(event_name, payload)`` (plain
function or coroutine function), optionally restricted to some categories.
Publishing calls every matching subscriber once. There are no
acknowledgements and no retries; a failing subscriber is logged and
skipped. A coroutine subscriber gets ``delivery_timeout`` seconds before
it is cancelled and counted as not notified.
"""

import asyncio
import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic_core import to_json

from hazardwatch.schemas.event import CategorySnapshot, HazardCategory

logger = logging.getLogger(__name__)

Callback = Callable[[str, dict[str, Any]], Awaitable[None] | None]


@dataclass(frozen=True)
class Subscription:
    id: int
    callback: Callback
    categories: frozenset[HazardCategory] | None = None

    def wants(self, category: HazardCategory) -> bool:
        return self.categories is None or category in self.categories


class Broadcaster:
    """In-process publish/subscribe hub keyed by category."""

    def __init__(self, delivery_timeout: float | None = 5.0):
        self.delivery_timeout = delivery_timeout
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        callback: Callback,
        categories: Iterable[HazardCategory] | None = None,
    ) -> Subscription:
        """
        Register a subscriber.

        Args:
            callback: Called with (event_name, payload) for each publish
            categories: Only notify for these; None means all

        Returns:
            Subscription handle for unsubscribe()
        """
        subscription = Subscription(
            id=next(self._ids),
            callback=callback,
            categories=frozenset(categories) if categories is not None else None,
        )
        self._subscriptions[subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self._subscriptions.pop(subscription.id, None) is not None

    async def publish(self, category: HazardCategory, snapshot: CategorySnapshot) -> int:
        """
        Notify subscribers that a category's snapshot changed.

        Returns:
            Number of subscribers notified without error
        """
        targets = [s for s in self._subscriptions.values() if s.wants(category)]
        if not targets:
            return 0

        event_name = category.channel
        payload = snapshot.to_payload()
        outcomes = await asyncio.gather(
            *(self._deliver(s, event_name, payload) for s in targets)
        )
        return sum(outcomes)

    async def publish_many(self, snapshots: Iterable[CategorySnapshot]) -> int:
        delivered = 0
        for snapshot in snapshots:
            delivered += await self.publish(snapshot.category, snapshot)
        return delivered

    async def replay(
        self,
        callback: Callback,
        store,
        categories: Iterable[HazardCategory] | None = None,
    ) -> int:
        """
        Send the currently stored snapshots to one (new) subscriber.

        Args:
            callback: Subscriber callback
            store: CategoryStore to read from
            categories: Categories to replay; None means all

        Returns:
            Number of snapshots sent
        """
        subscription = Subscription(id=0, callback=callback)
        sent = 0
        for category in categories if categories is not None else HazardCategory:
            snapshot = await store.get(category)
            if snapshot is None:
                continue
            if await self._deliver(subscription, category.channel, snapshot.to_payload()):
                sent += 1
        return sent

    async def _deliver(self, subscription: Subscription, event_name: str, payload: dict[str, Any]) -> bool:
        try:
            result = subscription.callback(event_name, payload)
            if inspect.isawaitable(result):
                await asyncio.wait_for(result, self.delivery_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                f"Subscriber {subscription.id} timed out on {event_name} "
                f"after {self.delivery_timeout:g}s"
            )
            return False
        except Exception as e:
            logger.warning(f"Subscriber {subscription.id} failed on {event_name}: {e}")
            return False


def redis_channel_publisher(client, prefix: str = "") -> Callback:
    """
    Subscriber callback that forwards notifications to Redis pub/sub.

    Args:
        client: ``redis.asyncio.Redis`` instance
        prefix: Prepended to the channel name (``update:floods``)
    """

    async def _publish(event_name: str, payload: dict[str, Any]) -> None:
        await client.publish(f"{prefix}{event_name}", to_json(payload))

    return _publish
