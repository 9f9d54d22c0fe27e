"""
Unit tests for LLM-assisted secondary classification.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from hazardwatch.agents.llm.base_llm_client import BaseLLMClient
from hazardwatch.ingestion.normalization.secondary_classifier import (
    ClassificationErrorKind,
    SecondaryClassifier,
    SecondaryResult,
    build_prompt,
    parse_answer,
    resolve_category,
)
from hazardwatch.schemas.event import HazardCategory


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeLLMClient(BaseLLMClient):
    """Answers from a list; optionally advances a fake clock per call."""

    provider = "fake"

    def __init__(self, answers=None, available=True, clock=None, tick=0.0):
        self.answers = list(answers or [])
        self.available = available
        self.clock = clock
        self.tick = tick
        self.prompts: list[str] = []

    @property
    def is_available(self) -> bool:
        return self.available

    async def complete(self, system_prompt, user_prompt, temperature=None, max_tokens=None):
        self.prompts.append(user_prompt)
        if self.clock is not None:
            self.clock.now += self.tick
        return self.answers.pop(0) if self.answers else "flood"


# =============================================================================
# ANSWER PARSING
# =============================================================================


class TestParseAnswer:
    """Tests for mapping raw answers to categories."""

    @pytest.mark.parametrize(
        "answer,expected",
        [
            ("volcano", HazardCategory.VOLCANO),
            ("  Flood.\n", HazardCategory.FLOOD),
            ("WILDFIRE", HazardCategory.WILDFIRE),
        ],
    )
    def test_exact_matches(self, answer, expected):
        result = parse_answer(answer)
        assert result.ok
        assert result.category is expected

    @pytest.mark.parametrize(
        "answer,kind",
        [
            (None, ClassificationErrorKind.MALFORMED),
            ("   ", ClassificationErrorKind.MALFORMED),
            ("flood\ndrought", ClassificationErrorKind.MALFORMED),
            ("other", ClassificationErrorKind.UNMAPPED),
            ("earthquake", ClassificationErrorKind.UNMAPPED),
            ("It is a flood", ClassificationErrorKind.UNMAPPED),
        ],
    )
    def test_failures(self, answer, kind):
        result = parse_answer(answer)
        assert not result.ok
        assert result.error.kind is kind
        assert resolve_category(result) is HazardCategory.OTHER

    def test_result_needs_exactly_one_side(self):
        with pytest.raises(ValueError):
            SecondaryResult()

    def test_prompt_carries_event_fields(self, make_raw):
        raw = make_raw(name="Mystery event", description="Ash cloud", country="Iceland")
        prompt = build_prompt(raw)
        assert "Event: Mystery event" in prompt
        assert "Description: Ash cloud" in prompt
        assert "Country: Iceland" in prompt
        assert "Severity: " in prompt


# =============================================================================
# CLASSIFIER
# =============================================================================


class TestSecondaryClassifier:
    """Tests for per-request and aggregate limits."""

    def test_unavailable_without_client(self, make_raw):
        classifier = SecondaryClassifier(None)
        assert not classifier.is_available
        result = asyncio.run(classifier.classify(make_raw()))
        assert result.error.kind is ClassificationErrorKind.UNAVAILABLE

        results = asyncio.run(classifier.classify_all([make_raw(), make_raw()]))
        assert [r.error.kind for r in results] == [ClassificationErrorKind.UNAVAILABLE] * 2

    def test_success(self, make_raw):
        client = FakeLLMClient(answers=["Drought"])
        result = asyncio.run(SecondaryClassifier(client).classify(make_raw(name="Dust")))
        assert result.category is HazardCategory.DROUGHT
        assert result.answer == "Drought"
        assert "Event: Dust" in client.prompts[0]

    def test_timeout(self, make_raw):
        client = FakeLLMClient()

        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return "flood"

        client.complete = slow
        classifier = SecondaryClassifier(client, request_timeout=0.01)
        result = asyncio.run(classifier.classify(make_raw()))
        assert result.error.kind is ClassificationErrorKind.TIMEOUT

    def test_request_failure(self, make_raw):
        client = FakeLLMClient()
        client.complete = AsyncMock(side_effect=ConnectionError("refused"))
        result = asyncio.run(SecondaryClassifier(client).classify(make_raw()))
        assert result.error.kind is ClassificationErrorKind.REQUEST_FAILED
        assert "ConnectionError" in result.error.message

    def test_non_string_answer(self, make_raw):
        client = FakeLLMClient()
        client.complete = AsyncMock(return_value={"category": "flood"})
        result = asyncio.run(SecondaryClassifier(client).classify(make_raw()))
        assert result.error.kind is ClassificationErrorKind.MALFORMED

    def test_request_parameters(self, make_raw):
        client = FakeLLMClient()
        client.complete = AsyncMock(return_value="cyclone")
        asyncio.run(SecondaryClassifier(client).classify(make_raw()))
        kwargs = client.complete.await_args.kwargs
        assert kwargs == {"temperature": 0.0, "max_tokens": 10}

    def test_budget_exhaustion(self, make_raw):
        """Events left when the budget runs out are not sent."""
        clock = FakeClock()
        client = FakeLLMClient(answers=["flood", "volcano", "drought"], clock=clock, tick=20)
        classifier = SecondaryClassifier(client, request_timeout=5, budget_seconds=30, clock=clock)

        results = asyncio.run(classifier.classify_all([make_raw(), make_raw(), make_raw()]))

        assert [r.category for r in results[:2]] == [HazardCategory.FLOOD, HazardCategory.VOLCANO]
        assert results[2].error.kind is ClassificationErrorKind.BUDGET_EXHAUSTED
        assert len(client.prompts) == 2

    def test_classify_all_empty(self):
        assert asyncio.run(SecondaryClassifier(FakeLLMClient()).classify_all([])) == []

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            SecondaryClassifier(None, request_timeout=0)
