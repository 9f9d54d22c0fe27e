"""Change notification for category snapshots."""

from hazardwatch.publishing.broadcaster import Broadcaster, Subscription, redis_channel_publisher

__all__ = ["Broadcaster", "Subscription", "redis_channel_publisher"]
