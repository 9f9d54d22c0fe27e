"""
Static fallback snapshots.

Used only when every endpoint of a run failed, so that consumers see a small
set of plausible, well-known hazards instead of nothing during an upstream
outage. Fallback snapshots and their events are tagged as such, and they
bypass classification and normalization entirely.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from hazardwatch.schemas.event import (
    AlertLevel,
    CategorySnapshot,
    HazardCategory,
    HazardEvent,
    SnapshotSource,
    ensure_complete,
)

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "fallback"

# (id, name, (lon, lat), alert level, country)
FALLBACK_EVENTS: dict[HazardCategory, list[tuple[str, str, tuple[float, float], AlertLevel, str]]] = {
    HazardCategory.VOLCANO: [
        ("VO1", "Kilauea, Hawaii", (-155.287, 19.421), AlertLevel.ORANGE, "USA"),
        ("VO2", "Mount Etna, Italy", (14.999, 37.748), AlertLevel.RED, "Italy"),
        ("VO3", "Fuego, Guatemala", (-90.880, 14.473), AlertLevel.ORANGE, "Guatemala"),
        ("VO4", "Sakurajima, Japan", (130.657, 31.580), AlertLevel.ORANGE, "Japan"),
        ("VO5", "Popocatepetl, Mexico", (-98.628, 19.023), AlertLevel.GREEN, "Mexico"),
    ],
    HazardCategory.CYCLONE: [
        ("TC1", "Western Pacific Typhoon", (135.500, 18.200), AlertLevel.ORANGE, "Philippines"),
        ("TC2", "Bay of Bengal Cyclone", (88.900, 17.600), AlertLevel.RED, "India"),
        ("TC3", "Atlantic Hurricane", (-64.800, 24.300), AlertLevel.GREEN, "Bahamas"),
    ],
    HazardCategory.FLOOD: [
        ("FL1", "Queensland Flooding", (153.026, -27.469), AlertLevel.ORANGE, "Australia"),
        ("FL2", "Bangladesh Monsoon", (90.356, 23.684), AlertLevel.RED, "Bangladesh"),
        ("FL3", "Pakistan Floods", (69.345, 30.375), AlertLevel.ORANGE, "Pakistan"),
        ("FL4", "Kenya Flash Floods", (37.906, -0.023), AlertLevel.GREEN, "Kenya"),
        ("FL5", "Brazil Flooding", (-47.882, -15.826), AlertLevel.ORANGE, "Brazil"),
    ],
    HazardCategory.DROUGHT: [
        ("DR1", "East Africa Drought", (38.996, 8.997), AlertLevel.RED, "Ethiopia"),
        ("DR2", "Western US Drought", (-119.417, 36.778), AlertLevel.ORANGE, "USA"),
        ("DR3", "Northern China Drought", (116.407, 39.904), AlertLevel.GREEN, "China"),
    ],
    HazardCategory.WILDFIRE: [
        ("WF1", "California Wildfire", (-121.494, 38.581), AlertLevel.ORANGE, "USA"),
        ("WF2", "New South Wales Bushfire", (150.300, -33.700), AlertLevel.RED, "Australia"),
        ("WF3", "Mediterranean Forest Fire", (23.727, 37.984), AlertLevel.GREEN, "Greece"),
    ],
    HazardCategory.OTHER: [
        ("OT1", "Anatolian Earthquake", (37.032, 37.166), AlertLevel.ORANGE, "Turkey"),
        ("OT2", "Sumatra Earthquake", (97.000, 2.500), AlertLevel.GREEN, "Indonesia"),
        ("OT3", "Chilean Earthquake", (-72.600, -35.800), AlertLevel.GREEN, "Chile"),
    ],
}
ensure_complete(FALLBACK_EVENTS, "FALLBACK_EVENTS")


class FallbackGenerator:
    """Builds one FALLBACK-tagged snapshot per category from the table above."""

    def __init__(self, events: dict[HazardCategory, list] | None = None):
        self.events = events if events is not None else FALLBACK_EVENTS

    def generate(
        self,
        categories: Iterable[HazardCategory] | None = None,
        now: datetime | None = None,
    ) -> list[CategorySnapshot]:
        """
        Args:
            categories: Categories to generate; None means all
            now: Snapshot timestamp

        Returns:
            Snapshots in category order
        """
        now = now or datetime.now(UTC)
        snapshots = []
        for category in categories if categories is not None else HazardCategory:
            features = [
                HazardEvent(
                    id=f"fallback_{event_id}",
                    category=category,
                    name=name,
                    coordinates=coordinates,
                    alert_level=alert_level,
                    country=country,
                    last_update=now.isoformat(),
                    source=FALLBACK_SOURCE,
                )
                for event_id, name, coordinates, alert_level, country in self.events.get(category, [])
            ]
            snapshots.append(
                CategorySnapshot.build(category, features, source=SnapshotSource.FALLBACK, now=now)
            )
        logger.info(f"Generated fallback snapshots for {len(snapshots)} categories")
        return snapshots
