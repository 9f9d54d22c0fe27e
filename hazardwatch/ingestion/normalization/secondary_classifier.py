"""
LLM-assisted classification for events the rule cascade cannot place.

Every outcome is a SecondaryResult value: either a category or a
ClassificationError saying why none was produced. Nothing here raises or
retries; the caller decides what an error means (see resolve_category).
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from hazardwatch.agents.llm.base_llm_client import BaseLLMClient
from hazardwatch.schemas.event import HazardCategory, RawEvent

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You classify natural hazard events. Answer with a single lowercase word."

PROMPT_TEMPLATE = """Categorize this disaster event into one of: volcano, cyclone, flood, drought, wildfire, or other.
Event: {name}
Description: {description}
Country: {country}
Severity: {severity}

Respond with just the category name."""

# Categories the secondary classifier may assign; "other" is not a useful answer
ASSIGNABLE = tuple(c for c in HazardCategory if c is not HazardCategory.OTHER)


class ClassificationErrorKind(str, Enum):
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    REQUEST_FAILED = "request_failed"
    MALFORMED = "malformed"
    UNMAPPED = "unmapped"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class ClassificationError:
    kind: ClassificationErrorKind
    message: str = ""


@dataclass(frozen=True)
class SecondaryResult:
    """Either ``category`` or ``error`` is set, never both."""

    category: HazardCategory | None = None
    error: ClassificationError | None = None
    answer: str | None = None

    def __post_init__(self):
        if (self.category is None) == (self.error is None):
            raise ValueError("SecondaryResult needs exactly one of category or error")

    @property
    def ok(self) -> bool:
        return self.category is not None

    @classmethod
    def success(cls, category: HazardCategory, answer: str | None = None) -> "SecondaryResult":
        return cls(category=category, answer=answer)

    @classmethod
    def failure(
        cls,
        kind: ClassificationErrorKind,
        message: str = "",
        answer: str | None = None,
    ) -> "SecondaryResult":
        return cls(error=ClassificationError(kind, message), answer=answer)


def build_prompt(event: RawEvent) -> str:
    """User prompt carrying the fields a model needs to pick a category."""
    return PROMPT_TEMPLATE.format(
        name=event.get_str("eventname", "name"),
        description=event.get_str("description"),
        country=event.get_str("country", "fromcountryiso", "countryname"),
        severity=event.get_str("severity") or event.get_str("severitydata.severity"),
    )


def parse_answer(answer: str | None) -> SecondaryResult:
    """
    Map a raw model answer to a category.

    Only a case-insensitive exact match on one of the assignable category
    names counts; anything else is MALFORMED (empty or multi-line) or
    UNMAPPED (a word that is not a category, including "other").
    """
    if answer is None:
        return SecondaryResult.failure(ClassificationErrorKind.MALFORMED, "no answer")

    cleaned = answer.strip().strip(".").strip().lower()
    if not cleaned or "\n" in cleaned:
        return SecondaryResult.failure(
            ClassificationErrorKind.MALFORMED, "empty or multi-line answer", answer=answer
        )

    for category in ASSIGNABLE:
        if cleaned == category.value:
            return SecondaryResult.success(category, answer=answer)

    return SecondaryResult.failure(
        ClassificationErrorKind.UNMAPPED, f"'{cleaned}' is not an assignable category", answer=answer
    )


def resolve_category(result: SecondaryResult) -> HazardCategory:
    """Any secondary failure defaults the event to OTHER."""
    return result.category if result.category is not None else HazardCategory.OTHER


class SecondaryClassifier:
    """
    Escalates unresolved events to an LLM, one request per event.

    Each request has its own timeout and the whole phase has an aggregate
    budget. Events still waiting when the budget runs out are not sent.
    """

    def __init__(
        self,
        llm_client: BaseLLMClient | None,
        request_timeout: float = 5.0,
        budget_seconds: float = 30.0,
        clock: Callable[[], float] | None = None,
    ):
        if request_timeout <= 0 or budget_seconds <= 0:
            raise ValueError("request_timeout and budget_seconds must be positive")
        self.llm_client = llm_client
        self.request_timeout = request_timeout
        self.budget_seconds = budget_seconds
        self._clock = clock or time.monotonic

    @property
    def is_available(self) -> bool:
        return self.llm_client is not None and self.llm_client.is_available

    async def classify(self, event: RawEvent, timeout: float | None = None) -> SecondaryResult:
        """
        Ask the model for one event's category.

        Args:
            event: An event the rule cascade left unresolved
            timeout: Override of the per-request timeout

        Returns:
            SecondaryResult; never raises
        """
        if not self.is_available:
            return SecondaryResult.failure(
                ClassificationErrorKind.UNAVAILABLE, "no secondary classifier configured"
            )

        timeout = timeout if timeout is not None else self.request_timeout
        try:
            answer = await asyncio.wait_for(
                self.llm_client.complete(SYSTEM_PROMPT, build_prompt(event), temperature=0.0, max_tokens=10),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return SecondaryResult.failure(
                ClassificationErrorKind.TIMEOUT, f"no answer within {timeout:g}s"
            )
        except Exception as e:
            return SecondaryResult.failure(
                ClassificationErrorKind.REQUEST_FAILED, f"{type(e).__name__}: {e}"
            )

        if not isinstance(answer, str):
            return SecondaryResult.failure(
                ClassificationErrorKind.MALFORMED, f"answer of type {type(answer).__name__}"
            )
        return parse_answer(answer)

    async def classify_all(self, events: list[RawEvent]) -> list[SecondaryResult]:
        """
        Classify events sequentially within the aggregate budget.

        Returns:
            One result per input event, in input order
        """
        if not events:
            return []
        if not self.is_available:
            unavailable = SecondaryResult.failure(
                ClassificationErrorKind.UNAVAILABLE, "no secondary classifier configured"
            )
            return [unavailable] * len(events)

        deadline = self._clock() + self.budget_seconds
        results: list[SecondaryResult] = []

        for event in events:
            remaining = deadline - self._clock()
            if remaining <= 0:
                results.append(
                    SecondaryResult.failure(
                        ClassificationErrorKind.BUDGET_EXHAUSTED,
                        f"escalation budget of {self.budget_seconds:g}s used up",
                    )
                )
                continue
            results.append(await self.classify(event, timeout=min(self.request_timeout, remaining)))

        failed = [r for r in results if not r.ok]
        if failed:
            kinds = sorted({r.error.kind.value for r in failed})
            logger.warning(
                f"Secondary classification left {len(failed)}/{len(events)} events unresolved ({', '.join(kinds)})"
            )
        return results
