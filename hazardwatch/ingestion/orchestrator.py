"""
Pipeline Orchestrator.

Runs the hazard aggregation pipeline end to end:

    fetch -> dedup -> rule cascade -> secondary escalation -> normalize
          -> group by category -> store (all or nothing) -> publish

When every endpoint fails the fetched data is replaced by fallback
snapshots. Runs are serialized by a lock; the store is only ever written
by one run at a time.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from hazardwatch.exceptions import EndpointFailure, TotalFetchFailure
from hazardwatch.ingestion.deduplication import EventDeduplicator, SourceIdDeduplicator
from hazardwatch.ingestion.fallback import FallbackGenerator
from hazardwatch.ingestion.fetcher import FeedFetcher
from hazardwatch.ingestion.normalization.classifier import RuleClassifier
from hazardwatch.ingestion.normalization.normalizer import EventNormalizer
from hazardwatch.ingestion.normalization.secondary_classifier import (
    SecondaryClassifier,
    resolve_category,
)
from hazardwatch.ingestion.sources import SourceEndpoint, endpoints_for
from hazardwatch.monitoring.logging import emit_event, with_context
from hazardwatch.publishing.broadcaster import Broadcaster
from hazardwatch.schemas.event import (
    CategorySnapshot,
    HazardCategory,
    HazardEvent,
    RawEvent,
    SnapshotSource,
)
from hazardwatch.storage.category_store import CategoryStore

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Outcome of one pipeline run."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass
class PipelineRunResult:
    """Record of one pipeline run, kept in the execution history."""

    execution_id: str
    scope: str
    status: RunStatus
    started_at: datetime
    ended_at: datetime | None = None
    fetched: int = 0
    unique: int = 0
    unresolved: int = 0
    escalated: int = 0
    counts: dict[str, int] = field(default_factory=dict)
    endpoint_failures: list[EndpointFailure] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    published: int = 0

    @property
    def duration_seconds(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.status != RunStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "scope": self.scope,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "fetched": self.fetched,
            "unique": self.unique,
            "unresolved": self.unresolved,
            "escalated": self.escalated,
            "counts": dict(self.counts),
            "endpoint_failures": [str(f) for f in self.endpoint_failures],
            "errors": list(self.errors),
            "published": self.published,
        }


class HazardPipeline:
    """
    Coordinates one aggregation run at a time.

    Responsibilities:
    - Fetch the endpoint set (all of it, or the part relevant to a category),
      with each date window ending at the run's start time
    - Classify, normalize and bucket events per category
    - Replace stored snapshots and notify subscribers
    - Fall back to static data on total fetch failure
    - Track execution history
    """

    def __init__(
        self,
        endpoints: list[SourceEndpoint],
        fetcher: FeedFetcher,
        store: CategoryStore,
        broadcaster: Broadcaster | None = None,
        classifier: RuleClassifier | None = None,
        secondary: SecondaryClassifier | None = None,
        normalizer: EventNormalizer | None = None,
        deduplicator: EventDeduplicator | None = None,
        fallback: FallbackGenerator | None = None,
        clock: Callable[[], datetime] | None = None,
        history_limit: int = 100,
        lookback_days: int = 60,
    ):
        self.endpoints = list(endpoints)
        self.fetcher = fetcher
        self.store = store
        self.broadcaster = broadcaster or Broadcaster()
        self.classifier = classifier or RuleClassifier()
        self.secondary = secondary
        self.normalizer = normalizer or EventNormalizer()
        self.deduplicator = deduplicator or SourceIdDeduplicator()
        self.fallback = fallback or FallbackGenerator()
        self._clock = clock or (lambda: datetime.now(UTC))
        self.history_limit = history_limit
        self.lookback_days = lookback_days

        self.execution_history: list[PipelineRunResult] = []
        self._lock = asyncio.Lock()

    # ========================================================================
    # TRIGGERS
    # ========================================================================

    async def run(self) -> PipelineRunResult:
        """Run the full pipeline over every endpoint and category."""
        async with self._lock:
            return await self._execute(self.endpoints, list(HazardCategory), scope="all")

    async def refresh_category(self, category: HazardCategory) -> PipelineRunResult:
        """
        Force a refresh of one category.

        Only the general endpoints and those targeting ``category`` are
        fetched, and only that category's snapshot is written and published.
        """
        async with self._lock:
            return await self._execute(
                endpoints_for(self.endpoints, category), [category], scope=category.plural
            )

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    # ========================================================================
    # EXECUTION
    # ========================================================================

    async def _execute(
        self,
        endpoints: list[SourceEndpoint],
        categories: list[HazardCategory],
        scope: str,
    ) -> PipelineRunResult:
        now = self._clock()
        result = PipelineRunResult(
            execution_id=uuid.uuid4().hex[:12],
            scope=scope,
            status=RunStatus.SUCCESS,
            started_at=now,
        )
        log = with_context(logger, run_id=result.execution_id)
        log.info(f"Starting pipeline run ({scope}) over {len(endpoints)} endpoints")

        try:
            outcome = await self.fetcher.fetch_all(
                [e.resolved(now, self.lookback_days) for e in endpoints]
            )
            result.fetched = len(outcome.events)
            result.endpoint_failures = list(outcome.failures)

            try:
                outcome.raise_for_total_failure()
            except TotalFetchFailure as e:
                log.warning(f"{e}. Publishing fallback data")
                snapshots = self.fallback.generate(categories, now=now)
                result.status = RunStatus.FALLBACK
            else:
                snapshots = await self._build_snapshots(outcome.events, categories, now, result, log)
                result.status = RunStatus.PARTIAL_SUCCESS if outcome.failures else RunStatus.SUCCESS

            await self.store.put_many(snapshots)

        except Exception as e:
            result.status = RunStatus.FAILED
            result.errors.append(f"{type(e).__name__}: {e}")
            self._finish(result)
            log.error(f"Pipeline run failed: {e}", exc_info=True)
            raise

        result.counts = {s.category.plural: s.count for s in snapshots}
        result.published = await self.broadcaster.publish_many(snapshots)
        self._finish(result)

        emit_event(log, "pipeline_run_completed", result.to_dict(), stage="publish")
        log.info(
            f"Pipeline run {result.status.value} in {result.duration_seconds:.2f}s: "
            + ", ".join(f"{k}={v}" for k, v in result.counts.items())
        )
        return result

    async def _build_snapshots(
        self,
        events: list[RawEvent],
        categories: list[HazardCategory],
        now: datetime,
        result: PipelineRunResult,
        log: logging.LoggerAdapter,
    ) -> list[CategorySnapshot]:
        unique = self.deduplicator.deduplicate(events)
        result.unique = len(unique)

        classified = await self._classify(unique, result, log)
        wanted = set(categories)
        normalized = self.normalizer.normalize_many(
            [(raw, category) for raw, category in classified if category in wanted], now
        )

        buckets: dict[HazardCategory, list[HazardEvent]] = {c: [] for c in categories}
        for event in normalized:
            buckets[event.category].append(event)

        return [
            CategorySnapshot.build(category, buckets[category], source=SnapshotSource.LIVE, now=now)
            for category in categories
        ]

    async def _classify(
        self,
        events: list[RawEvent],
        result: PipelineRunResult,
        log: logging.LoggerAdapter,
    ) -> list[tuple[RawEvent, HazardCategory]]:
        """Resolve a category for every event, preserving input order."""
        categories: list[HazardCategory | None] = []
        pending: list[int] = []

        for position, raw in enumerate(events):
            match = self.classifier.classify(raw)
            categories.append(match.category)
            if not match.resolved:
                pending.append(position)

        result.unresolved = len(pending)
        if pending:
            if self.secondary is not None and self.secondary.is_available:
                log.info(f"Escalating {len(pending)} unresolved events to secondary classifier")
                outcomes = await self.secondary.classify_all([events[i] for i in pending])
                result.escalated = sum(1 for o in outcomes if o.ok)
                for position, outcome in zip(pending, outcomes):
                    categories[position] = resolve_category(outcome)
            else:
                for position in pending:
                    categories[position] = HazardCategory.OTHER

        return [
            (raw, category or HazardCategory.OTHER)
            for raw, category in zip(events, categories)
        ]

    def _finish(self, result: PipelineRunResult) -> None:
        result.ended_at = self._clock()
        self.execution_history.append(result)
        if len(self.execution_history) > self.history_limit:
            del self.execution_history[: -self.history_limit]

    # ========================================================================
    # HISTORY & STATS
    # ========================================================================

    def get_execution_history(self, limit: int = 10) -> list[PipelineRunResult]:
        return self.execution_history[-limit:]

    def get_execution_stats(self) -> dict[str, Any]:
        """Aggregate statistics about past runs."""
        results = self.execution_history
        if not results:
            return {"total_executions": 0}

        by_status = {status.value: 0 for status in RunStatus}
        for r in results:
            by_status[r.status.value] += 1
        succeeded = len(results) - by_status[RunStatus.FAILED.value]
        last = results[-1]

        return {
            "total_executions": len(results),
            "by_status": by_status,
            "success_rate": succeeded / len(results) * 100,
            "total_events_fetched": sum(r.fetched for r in results),
            "average_unique_per_run": sum(r.unique for r in results) / len(results),
            "last_execution": last.to_dict(),
        }

    def circuit_status(self) -> dict[str, dict[str, Any]]:
        breaker = self.fetcher.circuit_breaker
        return breaker.status() if breaker is not None else {}

    async def close(self) -> None:
        """Release the fetch adapter and store connections."""
        await self.fetcher.adapter.close()
        close_store = getattr(self.store, "close", None)
        if close_store is not None:
            await close_store()
