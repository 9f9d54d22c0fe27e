"""Classification and normalization of raw hazard events."""

from hazardwatch.ingestion.normalization.classifier import MatchStage, RuleClassifier, RuleMatch
from hazardwatch.ingestion.normalization.normalizer import EventNormalizer, compute_event_status
from hazardwatch.ingestion.normalization.secondary_classifier import (
    ClassificationError,
    ClassificationErrorKind,
    SecondaryClassifier,
    SecondaryResult,
    resolve_category,
)

__all__ = [
    "ClassificationError",
    "ClassificationErrorKind",
    "EventNormalizer",
    "MatchStage",
    "RuleClassifier",
    "RuleMatch",
    "SecondaryClassifier",
    "SecondaryResult",
    "compute_event_status",
    "resolve_category",
]
