"""
Unit tests for the rule cascade classifier.
"""

import pytest

from hazardwatch.ingestion.normalization.classifier import (
    DEFAULT_NAME_KEYWORDS,
    MatchStage,
    RuleClassifier,
)
from hazardwatch.schemas.event import HazardCategory, RawEvent


@pytest.fixture
def classifier():
    return RuleClassifier()


# =============================================================================
# TYPE CODE STAGE
# =============================================================================


class TestTypeCodeStage:
    """Tests for provider type code matching."""

    def test_volcano_type_code(self, classifier, make_raw):
        raw = make_raw(eventtype="VO", name="Unnamed")
        match = classifier.classify(raw)
        assert match.category is HazardCategory.VOLCANO
        assert match.stage is MatchStage.TYPE_CODE

    def test_type_code_beats_name_and_wind_speed(self, classifier, make_raw):
        """A TC code wins even with zero wind speed and a flood-sounding name."""
        raw = make_raw(eventtype="TC", name="Flooding rains", windspeed=0)
        assert classifier.classify(raw).category is HazardCategory.CYCLONE

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("fl", HazardCategory.FLOOD),
            (" DR ", HazardCategory.DROUGHT),
            ("WF", HazardCategory.WILDFIRE),
            ("HU", HazardCategory.CYCLONE),
            ("TY", HazardCategory.CYCLONE),
        ],
    )
    def test_codes_are_case_insensitive(self, classifier, make_raw, code, expected):
        assert classifier.classify(make_raw(eventtype=code)).category is expected

    def test_earthquake_codes_resolve_to_other(self, classifier, make_raw):
        match = classifier.classify(make_raw(eventtype="EQ", name="Earthquake M6.1"))
        assert match.category is HazardCategory.OTHER
        assert match.stage is MatchStage.TYPE_CODE
        assert match.resolved

    def test_usgs_type_property(self, classifier):
        feature = {
            "type": "Feature",
            "id": "us7000abcd",
            "geometry": {"type": "Point", "coordinates": [142.1, 38.3, 35.5]},
            "properties": {"type": "earthquake", "title": "M 4.6 - 80 km E of Namie, Japan"},
        }
        match = classifier.classify(RawEvent.from_feature(feature, provider="usgs"))
        assert match.category is HazardCategory.OTHER
        assert match.stage is MatchStage.TYPE_CODE

    def test_unknown_code_falls_through(self, classifier, make_raw):
        raw = make_raw(eventtype="XX", name="Volcanic unrest")
        match = classifier.classify(raw)
        assert match.category is HazardCategory.VOLCANO
        assert match.stage is MatchStage.NAME


# =============================================================================
# KEYWORD STAGES
# =============================================================================


class TestKeywordStages:
    """Tests for name and description keyword matching."""

    def test_flood_by_name(self, classifier, make_raw):
        match = classifier.classify(make_raw(name="Severe Flooding in Region X"))
        assert match.category is HazardCategory.FLOOD
        assert match.stage is MatchStage.NAME

    def test_name_field_fallback(self, classifier):
        """The plain ``name`` property is used when ``eventname`` is absent."""
        raw = RawEvent.from_feature(
            {
                "geometry": {"type": "Point", "coordinates": [151.2, -33.8]},
                "properties": {"name": "Bushfire near Sydney"},
            }
        )
        assert classifier.classify(raw).category is HazardCategory.WILDFIRE

    def test_table_order_breaks_ties(self, classifier, make_raw):
        """Earlier categories win when a name matches several."""
        assert classifier.classify(make_raw(name="Tropical Storm flooding")).category is (
            HazardCategory.CYCLONE
        )
        assert classifier.classify(make_raw(name="Dry fire season")).category is (
            HazardCategory.DROUGHT
        )

    def test_description_stage(self, classifier, make_raw):
        raw = make_raw(name="Event 42", description="Rising water levels along the river")
        match = classifier.classify(raw)
        assert match.category is HazardCategory.FLOOD
        assert match.stage is MatchStage.DESCRIPTION

    def test_description_only_keyword_not_used_for_name(self, classifier, make_raw):
        """'burn' is a description keyword, not a name keyword."""
        assert classifier.classify(make_raw(name="Burn scars")).category is None
        raw = make_raw(name="Event", description="Controlled burn escaped")
        assert classifier.classify(raw).category is HazardCategory.WILDFIRE

    def test_unresolved(self, classifier, make_raw):
        match = classifier.classify(make_raw(name="Earthquake M6.2", description="Strong shaking"))
        assert match.category is None
        assert match.stage is MatchStage.UNRESOLVED
        assert not match.resolved


class TestClassifierConfiguration:
    """Tests for custom tables and purity."""

    def test_deterministic(self, classifier, make_raw):
        raw = make_raw(name="Major hurricane landfall")
        assert {classifier.classify(raw) for _ in range(5)} == {classifier.classify(raw)}

    def test_custom_tables(self, make_raw):
        classifier = RuleClassifier(
            type_codes={"ts": HazardCategory.CYCLONE},
            name_keywords={HazardCategory.FLOOD: ("Deluge",)},
            description_extras={},
        )
        assert classifier.classify(make_raw(eventtype="TS")).category is HazardCategory.CYCLONE
        assert classifier.classify(make_raw(name="The Great Deluge")).category is HazardCategory.FLOOD
        assert classifier.classify(make_raw(name="Volcano")).category is None

    def test_other_cannot_be_a_keyword_target(self):
        with pytest.raises(ValueError, match="OTHER"):
            RuleClassifier(description_extras={HazardCategory.OTHER: ("shaking",)})
        with pytest.raises(ValueError):
            RuleClassifier(name_keywords={**DEFAULT_NAME_KEYWORDS, HazardCategory.OTHER: ("quake",)})
