"""
Normalize classified raw events into HazardEvent objects.

Every field has an explicit default, so a sparse or oddly shaped provider
record still yields a complete event. Numeric parse failures become 0.
"""

import logging
import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from hazardwatch.schemas.event import (
    HazardCategory,
    HazardEvent,
    RawEvent,
    ensure_complete,
)

logger = logging.getLogger(__name__)


# ============================================================================
# EVENT STATUS
# ============================================================================


@dataclass(frozen=True)
class EventStatus:
    is_active: bool = True
    status: str = "active"
    freshness: str = "current"
    days_since_start: int | None = None
    days_since_end: int | None = None


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a provider timestamp.

    ISO-8601 strings (GDACS) and epoch milliseconds (USGS) are accepted;
    naive values are taken as UTC.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def compute_event_status(event: RawEvent, now: datetime) -> EventStatus:
    """
    Derive lifecycle status from the provider's dates.

    - An event whose ``todate`` is in the past has ended ("just_ended" for
      up to one day), unless the provider flags it ``iscurrent``.
    - Freshness grades the last update: current (<= 6h), recent (<= 24h),
      aging (<= 72h), stale beyond that.
    """
    from_date = parse_timestamp(event.get_raw("fromdate", "time"))
    to_date = parse_timestamp(event.get_raw("todate"))

    is_active = True
    status = "active"
    days_since_start = None
    days_since_end = None
    freshness = "current"

    if from_date is not None:
        days_since_start = int((now - from_date).total_seconds() // 86400)

    if to_date is not None and to_date < now:
        days_since_end = int((now - to_date).total_seconds() // 86400)
        is_active = False
        status = "just_ended" if days_since_end <= 1 else "ended"

    if event.get_bool("iscurrent"):
        is_active = True
        status = "active"

    last_update = parse_timestamp(event.get_raw("lastupdate", "modified", "updated"))
    if last_update is not None:
        hours = (now - last_update).total_seconds() / 3600
        if hours <= 6:
            freshness = "current"
        elif hours <= 24:
            freshness = "recent"
        elif hours <= 72:
            freshness = "aging"
        else:
            freshness = "stale"

    return EventStatus(
        is_active=is_active,
        status=status,
        freshness=freshness,
        days_since_start=days_since_start,
        days_since_end=days_since_end,
    )


def duration_days(event: RawEvent, now: datetime) -> int | None:
    """
    Length of the provider's event window in whole days, at least 1.

    Runs from ``fromdate`` to ``todate``, or to ``now`` for an open window.
    None when the event has no usable ``fromdate``.
    """
    from_date = parse_timestamp(event.get_raw("fromdate"))
    if from_date is None:
        return None
    to_date = parse_timestamp(event.get_raw("todate")) or now
    days = (to_date - from_date).total_seconds() / 86400
    return max(1, math.floor(days + 0.5))


def _timestamp_text(event: RawEvent, *keys: str) -> str | None:
    """Provider timestamp as text; epoch milliseconds become ISO-8601."""
    value = event.get_raw(*keys)
    if isinstance(value, str):
        return value.strip() or None
    parsed = parse_timestamp(value)
    return parsed.isoformat() if parsed is not None else None


# ============================================================================
# CATEGORY-SPECIFIC FIELDS
# ============================================================================


def _volcano_fields(event: RawEvent) -> dict[str, float]:
    return {"volcanic_index": event.get_float("vei", "alertscore")}


def _cyclone_fields(event: RawEvent) -> dict[str, float]:
    return {"wind_speed": event.get_float("windspeed", "wind_speed")}


def _area_fields(event: RawEvent) -> dict[str, float]:
    return {"affected_area": event.get_float("affectedarea", "affected_area")}


def _other_fields(event: RawEvent) -> dict[str, float]:
    return {
        "magnitude": event.get_float("magnitude", "mag"),
        "depth": event.get_float("depth", default=event.depth or 0.0),
    }


CATEGORY_FIELDS: dict[HazardCategory, Callable[[RawEvent], dict[str, float]]] = {
    HazardCategory.VOLCANO: _volcano_fields,
    HazardCategory.CYCLONE: _cyclone_fields,
    HazardCategory.FLOOD: _area_fields,
    HazardCategory.DROUGHT: _area_fields,
    HazardCategory.WILDFIRE: _area_fields,
    HazardCategory.OTHER: _other_fields,
}
ensure_complete(CATEGORY_FIELDS, "CATEGORY_FIELDS")


# ============================================================================
# NORMALIZER
# ============================================================================


def synthesize_id(category: HazardCategory, now: datetime) -> str:
    """
    Identifier for events the provider did not identify.

    Not stable across runs: the same physical event gets a new id each time.
    """
    epoch_ms = int(now.timestamp() * 1000)
    return f"{category.value}_{epoch_ms}_{uuid.uuid4().hex[:8]}"


class EventNormalizer:
    """
    Build HazardEvent objects from raw events and their resolved category.
    """

    def __init__(self, source_label: str | None = None):
        """
        Args:
            source_label: Value for HazardEvent.source; defaults to the
                raw event's provider
        """
        self.source_label = source_label

    def normalize(
        self,
        event: RawEvent,
        category: HazardCategory,
        now: datetime | None = None,
    ) -> HazardEvent:
        """
        Normalize one raw event.

        Args:
            event: Deduplicated raw event with valid coordinates
            category: Category resolved by the classifiers
            now: Reference time for status and defaults

        Returns:
            HazardEvent with every field populated or defaulted

        Raises:
            ValueError: If the event has no coordinates
        """
        if event.coordinates is None:
            raise ValueError(f"Event '{event.source_id}' has no coordinates")
        now = now or datetime.now(UTC)
        status = compute_event_status(event, now)

        return HazardEvent(
            id=event.source_id or synthesize_id(category, now),
            category=category,
            name=event.get_str("eventname", "name", "title", "place") or f"{category.label} Event",
            coordinates=event.coordinates,
            alert_level=event.get_raw("alertlevel", "alert"),
            alert_score=event.get_int("alertscore"),
            severity=(
                event.get_str("severity")
                or event.get_str("severitydata.severity")
                or "Unknown"
            ),
            country=event.get_str("country", "fromcountryiso", "countryname"),
            population=event.get_int("population", "affected_population.value"),
            from_date=_timestamp_text(event, "fromdate", "time"),
            to_date=event.get_str("todate") or None,
            duration=duration_days(event, now),
            last_update=_timestamp_text(event, "lastupdate", "modified", "updated") or now.isoformat(),
            description=event.get_str("description", "place"),
            url=self._url(event),
            source=self.source_label or event.provider,
            is_active=status.is_active,
            status=status.status,
            freshness=status.freshness,
            days_since_start=status.days_since_start,
            days_since_end=status.days_since_end,
            **CATEGORY_FIELDS[category](event),
        )

    def normalize_many(
        self,
        classified: list[tuple[RawEvent, HazardCategory]],
        now: datetime | None = None,
    ) -> list[HazardEvent]:
        """Normalize in order, skipping (and logging) events that cannot be built."""
        now = now or datetime.now(UTC)
        events: list[HazardEvent] = []
        for raw, category in classified:
            try:
                events.append(self.normalize(raw, category, now))
            except ValueError as e:
                logger.warning(f"Skipping event '{raw.source_id}' from {raw.endpoint}: {e}")
        return events

    @staticmethod
    def _url(event: RawEvent) -> str:
        url = event.get_raw("url", "link")
        # GDACS nests links as {"report": ..., "details": ...}
        if isinstance(url, dict):
            url = url.get("report") or url.get("details") or ""
        return url if isinstance(url, str) else ""
