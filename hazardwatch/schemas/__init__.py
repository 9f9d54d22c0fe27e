"""Data model shared by every pipeline stage."""

from hazardwatch.schemas.event import (
    MAX_FEATURES,
    AlertLevel,
    CategorySnapshot,
    HazardCategory,
    HazardEvent,
    RawEvent,
    SnapshotSource,
)

__all__ = [
    "MAX_FEATURES",
    "AlertLevel",
    "CategorySnapshot",
    "HazardCategory",
    "HazardEvent",
    "RawEvent",
    "SnapshotSource",
]
