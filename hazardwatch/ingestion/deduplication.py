"""
Module for raw event deduplication.

Several endpoints return overlapping results, so the same provider event
usually arrives more than once per run. Deduplication happens on raw events,
before classification, by provider identifier only.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from hazardwatch.schemas.event import RawEvent

logger = logging.getLogger(__name__)


@dataclass
class DeduplicationStats:
    """Counters for one deduplicate() call."""

    received: int = 0
    kept: int = 0
    duplicates: int = 0
    invalid_coordinates: int = 0


class EventDeduplicator(ABC):
    """Abstract base for deduplication strategies."""

    def __init__(self):
        self.last_stats = DeduplicationStats()

    @abstractmethod
    def deduplicate(self, events: list[RawEvent]) -> list[RawEvent]:
        """Deduplicate events and return unique set."""
        pass


class SourceIdDeduplicator(EventDeduplicator):
    """
    First occurrence wins, keyed by provider identifier.

    - Events without usable coordinates are dropped.
    - Later events with an already seen, non-empty ``source_id`` are dropped
      without merging any of their fields into the kept one.
    - Events with an empty identifier are always kept; they get a
      synthesized id at normalization time, which is never used here.
    """

    def deduplicate(self, events: list[RawEvent]) -> list[RawEvent]:
        """
        Returns:
            New list of unique events, in input order
        """
        stats = DeduplicationStats(received=len(events))
        seen: set[str] = set()
        unique_events: list[RawEvent] = []

        for event in events:
            if not event.has_valid_coordinates:
                stats.invalid_coordinates += 1
                continue

            if event.source_id:
                if event.source_id in seen:
                    stats.duplicates += 1
                    continue
                seen.add(event.source_id)

            unique_events.append(event)

        stats.kept = len(unique_events)
        self.last_stats = stats
        logger.debug(
            f"Deduplicated {stats.received} events: kept {stats.kept}, "
            f"{stats.duplicates} duplicates, {stats.invalid_coordinates} without coordinates"
        )
        return unique_events
