# hazardwatch/schemas/event.py
"""
Canonical Hazard Event Schema.

Three shapes flow through the pipeline:

- RawEvent: one feature as received from one endpoint. Its provider
  property bag is never assumed to have any particular shape; all reads go
  through typed accessors that fall back to defaults.
- HazardEvent: the normalized event stored and published to consumers.
- CategorySnapshot: the unit of storage and publication, one per category,
  replaced wholesale on every run.

Serialized payloads use camelCase keys (``alertLevel``, ``windSpeed``) so
consumers see the same wire format regardless of which provider fed the run.
"""

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

MAX_FEATURES = 50


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


# ============================================================================
# ENUMS
# ============================================================================


class HazardCategory(str, Enum):
    """
    Fixed set of published hazard categories.

    Every per-category table below (storage plural, TTL) must cover all
    members; this is checked when the module is imported so that adding a
    category without filling in its tables fails immediately.
    """

    VOLCANO = "volcano"
    CYCLONE = "cyclone"
    FLOOD = "flood"
    DROUGHT = "drought"
    WILDFIRE = "wildfire"
    OTHER = "other"

    @property
    def plural(self) -> str:
        """Lowercase plural used in storage keys and channel names."""
        return _PLURALS[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def storage_key(self) -> str:
        """Key of this category's snapshot in the store (``data:floods``)."""
        return f"data:{self.plural}"

    @property
    def channel(self) -> str:
        """Event name published when the snapshot changes (``update:floods``)."""
        return f"update:{self.plural}"

    @property
    def ttl_seconds(self) -> int:
        """Snapshot expiry; volatile categories expire sooner."""
        return _TTL_SECONDS[self]

    @classmethod
    def from_label(cls, text: str | None) -> "HazardCategory | None":
        """
        Resolve a category from its value or plural, case-insensitively.

        Args:
            text: e.g. "Flood", "floods", " VOLCANO "

        Returns:
            Matching HazardCategory or None if nothing matches exactly
        """
        if not text:
            return None
        needle = text.strip().lower()
        for category in cls:
            if needle in (category.value, category.plural):
                return category
        return None


_PLURALS: dict[HazardCategory, str] = {
    HazardCategory.VOLCANO: "volcanoes",
    HazardCategory.CYCLONE: "cyclones",
    HazardCategory.FLOOD: "floods",
    HazardCategory.DROUGHT: "droughts",
    HazardCategory.WILDFIRE: "wildfires",
    HazardCategory.OTHER: "other",
}

_TTL_SECONDS: dict[HazardCategory, int] = {
    HazardCategory.CYCLONE: 600,
    HazardCategory.WILDFIRE: 600,
    HazardCategory.FLOOD: 900,
    HazardCategory.OTHER: 900,
    HazardCategory.VOLCANO: 1800,
    HazardCategory.DROUGHT: 1800,
}


def ensure_complete(table: Mapping[HazardCategory, Any], name: str) -> None:
    """Raise if a per-category table does not cover every category."""
    missing = [c.value for c in HazardCategory if c not in table]
    if missing:
        raise RuntimeError(f"{name} is missing categories: {missing}")


ensure_complete(_PLURALS, "_PLURALS")
ensure_complete(_TTL_SECONDS, "_TTL_SECONDS")


class AlertLevel(str, Enum):
    """Provider-assigned severity tier."""

    GREEN = "Green"
    ORANGE = "Orange"
    RED = "Red"

    @classmethod
    def parse(cls, value: Any) -> "AlertLevel":
        """Parse a provider value; absent or unrecognized values are GREEN."""
        if isinstance(value, str):
            needle = value.strip().lower()
            for level in cls:
                if level.value.lower() == needle:
                    return level
        return cls.GREEN


class SnapshotSource(str, Enum):
    """Where a snapshot's data came from; fallback data is tagged as such."""

    LIVE = "live"
    FALLBACK = "fallback"


# ============================================================================
# VALUE COERCION
# ============================================================================

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce a provider value to float without raising.

    Accepts numbers and numeric strings (a leading number is enough, so
    "120 km/h" reads as 120). Anything else, including NaN and infinities,
    becomes ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if not match:
            return default
        result = float(match.group(0))
    else:
        return default
    return result if math.isfinite(result) else default


def to_int(value: Any, default: int = 0) -> int:
    """Coerce a provider value to int (truncating), ``default`` on failure."""
    result = to_float(value, float("nan"))
    if math.isnan(result):
        return default
    return int(result)


def _lookup(properties: Mapping[str, Any], key: str) -> Any:
    """Resolve a possibly dotted key (``severitydata.severity``)."""
    current: Any = properties
    for part in key.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


# ============================================================================
# RAW EVENT
# ============================================================================

Coordinates = tuple[float, float]


def parse_point(geometry: Any) -> Coordinates | None:
    """Extract (lon, lat) from a GeoJSON Point geometry, None otherwise."""
    if not isinstance(geometry, Mapping):
        return None
    if geometry.get("type", "Point") != "Point":
        return None
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    lon, lat = coords[0], coords[1]
    if isinstance(lon, bool) or isinstance(lat, bool):
        return None
    if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
        return None
    return float(lon), float(lat)


def parse_depth(geometry: Any) -> float | None:
    """Third coordinate of a GeoJSON Point, if numeric."""
    if not isinstance(geometry, Mapping):
        return None
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 3:
        return None
    depth = coords[2]
    if isinstance(depth, bool) or not isinstance(depth, (int, float)):
        return None
    return float(depth) if math.isfinite(depth) else None


@dataclass(frozen=True)
class RawEvent:
    """
    One event as received from one endpoint.

    Created per fetch and discarded after normalization. ``properties`` is
    the provider bag and is only ever read through the accessors below.
    """

    source_id: str
    coordinates: Coordinates | None
    properties: Mapping[str, Any] = field(default_factory=dict)
    endpoint: str = ""
    provider: str = "gdacs"
    depth: float | None = None

    @classmethod
    def from_feature(
        cls,
        feature: Mapping[str, Any],
        endpoint: str = "",
        provider: str = "gdacs",
    ) -> "RawEvent":
        """
        Build a RawEvent from a GeoJSON feature.

        The identifier is ``properties.eventid``, falling back to the
        feature-level ``id``. A third Point coordinate (USGS) is the depth
        in km. Missing or malformed parts become empty values.
        """
        properties = feature.get("properties")
        if not isinstance(properties, Mapping):
            properties = {}

        source_id = properties.get("eventid")
        if source_id in (None, ""):
            source_id = feature.get("id")
        source_id = "" if source_id is None else str(source_id).strip()

        return cls(
            source_id=source_id,
            coordinates=parse_point(feature.get("geometry")),
            properties=dict(properties),
            endpoint=endpoint,
            provider=provider,
            depth=parse_depth(feature.get("geometry")),
        )

    @property
    def has_valid_coordinates(self) -> bool:
        """False for absent, non-finite, out-of-range or (0, 0) placeholders."""
        if self.coordinates is None:
            return False
        lon, lat = self.coordinates
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return False
        if lon == 0 and lat == 0:
            return False
        return -180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0

    def get_raw(self, *keys: str) -> Any:
        """Return the first present, non-empty value among ``keys``."""
        for key in keys:
            value = _lookup(self.properties, key)
            if value is not None and value != "":
                return value
        return None

    def get_str(self, *keys: str, default: str = "") -> str:
        value = self.get_raw(*keys)
        if value is None or isinstance(value, (Mapping, list)):
            return default
        return str(value).strip() or default

    def get_float(self, *keys: str, default: float = 0.0) -> float:
        return to_float(self.get_raw(*keys), default)

    def get_int(self, *keys: str, default: int = 0) -> int:
        return to_int(self.get_raw(*keys), default)

    def get_bool(self, *keys: str) -> bool:
        value = self.get_raw(*keys)
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return value is True


# ============================================================================
# NORMALIZED EVENT
# ============================================================================


class HazardEvent(BaseModel):
    """
    Canonical normalized hazard event.

    Descriptive fields are independently optional. Category-specific
    numerics (magnitude, wind_speed, volcanic_index, affected_area, depth)
    are only populated where they mean something for the category and are
    zero otherwise.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    category: HazardCategory
    name: str
    coordinates: Coordinates
    alert_level: AlertLevel = AlertLevel.GREEN
    alert_score: int = 0
    severity: str = "Unknown"
    country: str = ""
    population: int = 0
    from_date: str | None = None
    to_date: str | None = None
    duration: int | None = None
    last_update: str | None = None
    description: str = ""
    url: str = ""
    source: str = "gdacs"

    # Category-specific
    magnitude: float = 0.0
    wind_speed: float = 0.0
    volcanic_index: float = 0.0
    affected_area: float = 0.0
    depth: float = 0.0

    # Lifecycle status
    is_active: bool = True
    status: str = "active"
    freshness: str = "current"
    days_since_start: int | None = None
    days_since_end: int | None = None

    @field_validator("alert_level", mode="before")
    @classmethod
    def _parse_alert_level(cls, value: Any) -> AlertLevel:
        if isinstance(value, AlertLevel):
            return value
        return AlertLevel.parse(value)


# ============================================================================
# SNAPSHOT
# ============================================================================


class CategorySnapshot(BaseModel):
    """
    Full replacement value stored for one category at one point in time.

    Invariant: ``count == len(features) <= MAX_FEATURES``.
    ``total_available`` records how many events the run produced for the
    category before truncation.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category: HazardCategory
    timestamp: datetime
    count: int
    features: list[HazardEvent]
    ttl_seconds: int
    source: SnapshotSource = SnapshotSource.LIVE
    total_available: int = 0

    @computed_field
    @property
    def type(self) -> str:
        return self.category.plural

    @field_validator("timestamp")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_invariants(self) -> "CategorySnapshot":
        if self.count != len(self.features):
            raise ValueError(
                f"count ({self.count}) must equal len(features) ({len(self.features)})"
            )
        if len(self.features) > MAX_FEATURES:
            raise ValueError(
                f"snapshot holds {len(self.features)} features, max is {MAX_FEATURES}"
            )
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if self.total_available < self.count:
            self.total_available = self.count
        return self

    @classmethod
    def build(
        cls,
        category: HazardCategory,
        events: Iterable[HazardEvent],
        source: SnapshotSource = SnapshotSource.LIVE,
        now: datetime | None = None,
        ttl_seconds: int | None = None,
    ) -> "CategorySnapshot":
        """
        Build a snapshot from events in arrival order.

        Keeps the first MAX_FEATURES events; no severity ranking is applied.
        """
        events = list(events)
        features = events[:MAX_FEATURES]
        return cls(
            category=category,
            timestamp=now or _utc_now(),
            count=len(features),
            features=features,
            ttl_seconds=ttl_seconds or category.ttl_seconds,
            source=source,
            total_available=len(events),
        )

    @property
    def expires_at(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.ttl_seconds)

    def age_seconds(self, now: datetime | None = None) -> float:
        return ((now or _utc_now()) - self.timestamp).total_seconds()

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once the snapshot is older than its TTL."""
        return self.age_seconds(now) > self.ttl_seconds

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, as published to subscribers."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "CategorySnapshot":
        return cls.model_validate_json(data)
