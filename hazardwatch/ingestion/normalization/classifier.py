"""
Rule-based hazard classification.

Maps a raw event to a category with a fixed cascade of rules. The cascade
is pure: the result depends only on the event's own properties, never on
other events in the run.

Stages, first match wins:
- Provider type code (GDACS ``eventtype``, USGS ``type``)
- Keywords in the event name
- Keywords in the description (a looser vocabulary)

Events no stage recognises come back unresolved and are handed to the
secondary classifier, or end up as OTHER.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from hazardwatch.schemas.event import HazardCategory, RawEvent

logger = logging.getLogger(__name__)


class MatchStage(str, Enum):
    """Which rule resolved the event."""

    TYPE_CODE = "type_code"
    NAME = "name"
    DESCRIPTION = "description"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class RuleMatch:
    category: HazardCategory | None
    stage: MatchStage

    @property
    def resolved(self) -> bool:
        return self.category is not None


DEFAULT_TYPE_CODES: dict[str, HazardCategory] = {
    "VO": HazardCategory.VOLCANO,
    "TC": HazardCategory.CYCLONE,
    "HU": HazardCategory.CYCLONE,
    "TY": HazardCategory.CYCLONE,
    "CY": HazardCategory.CYCLONE,
    "FL": HazardCategory.FLOOD,
    "DR": HazardCategory.DROUGHT,
    "WF": HazardCategory.WILDFIRE,
    # Earthquakes have no category of their own
    "EQ": HazardCategory.OTHER,
    "EARTHQUAKE": HazardCategory.OTHER,
}

# Order matters: "tropical storm flooding" is a cyclone, "dry fire season" a drought
DEFAULT_NAME_KEYWORDS: dict[HazardCategory, tuple[str, ...]] = {
    HazardCategory.VOLCANO: ("volcano", "eruption", "volcanic"),
    HazardCategory.CYCLONE: ("cyclone", "hurricane", "typhoon", "tropical storm"),
    HazardCategory.FLOOD: ("flood", "flooding", "inundation"),
    HazardCategory.DROUGHT: ("drought", "dry"),
    HazardCategory.WILDFIRE: ("fire", "wildfire", "bushfire"),
}

DEFAULT_DESCRIPTION_EXTRAS: dict[HazardCategory, tuple[str, ...]] = {
    HazardCategory.CYCLONE: ("tropical",),
    HazardCategory.FLOOD: ("water",),
    HazardCategory.WILDFIRE: ("burn",),
}


def _merge_keywords(
    base: Mapping[HazardCategory, Sequence[str]],
    extras: Mapping[HazardCategory, Sequence[str]],
) -> dict[HazardCategory, tuple[str, ...]]:
    merged = {category: tuple(words) for category, words in base.items()}
    for category, words in extras.items():
        merged[category] = merged.get(category, ()) + tuple(words)
    return merged


def _first_keyword_match(
    text: str,
    table: Mapping[HazardCategory, Sequence[str]],
) -> HazardCategory | None:
    if not text:
        return None
    for category, keywords in table.items():
        if any(keyword in text for keyword in keywords):
            return category
    return None


class RuleClassifier:
    """
    Deterministic rule cascade.

    Keyword tables can be overridden, e.g. from configuration; the tables are
    evaluated in their insertion order, so earlier categories win ties.
    """

    def __init__(
        self,
        type_codes: Mapping[str, HazardCategory] | None = None,
        name_keywords: Mapping[HazardCategory, Sequence[str]] | None = None,
        description_extras: Mapping[HazardCategory, Sequence[str]] | None = None,
    ):
        """
        Initialize the classifier.

        Args:
            type_codes: Provider type code -> category
            name_keywords: Category -> substrings matched against the name
            description_extras: Additional description-only substrings
        """
        codes = type_codes if type_codes is not None else DEFAULT_TYPE_CODES
        self.type_codes = {code.upper(): category for code, category in codes.items()}

        names = name_keywords if name_keywords is not None else DEFAULT_NAME_KEYWORDS
        self.name_keywords = {
            category: tuple(k.lower() for k in keywords) for category, keywords in names.items()
        }
        extras = description_extras if description_extras is not None else DEFAULT_DESCRIPTION_EXTRAS
        self.description_keywords = _merge_keywords(
            self.name_keywords,
            {category: tuple(k.lower() for k in keywords) for category, keywords in extras.items()},
        )

        for table in (self.name_keywords, self.description_keywords):
            if HazardCategory.OTHER in table:
                raise ValueError("OTHER is the default outcome and cannot be a keyword target")

    def classify(self, event: RawEvent) -> RuleMatch:
        """
        Classify one raw event.

        Args:
            event: Raw event from any provider

        Returns:
            RuleMatch with the category and the stage that produced it, or
            category None at stage UNRESOLVED
        """
        type_code = event.get_str("eventtype", "type").upper()
        if type_code in self.type_codes:
            return RuleMatch(self.type_codes[type_code], MatchStage.TYPE_CODE)

        name = event.get_str("eventname", "name").lower()
        category = _first_keyword_match(name, self.name_keywords)
        if category is not None:
            return RuleMatch(category, MatchStage.NAME)

        description = event.get_str("description").lower()
        category = _first_keyword_match(description, self.description_keywords)
        if category is not None:
            return RuleMatch(category, MatchStage.DESCRIPTION)

        return RuleMatch(None, MatchStage.UNRESOLVED)
