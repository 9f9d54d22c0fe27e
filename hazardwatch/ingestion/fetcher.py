"""
Concurrent fan-out over the endpoint set.

Every endpoint is fetched independently; one endpoint failing never affects
the others. Results are reassembled in endpoint-list order so that the
"first seen" event of a run does not depend on network timing.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from hazardwatch.exceptions import EndpointFailure, TotalFetchFailure
from hazardwatch.ingestion.adapters.base_adapter import BaseSourceAdapter, FetchResult
from hazardwatch.ingestion.resilience import CircuitBreaker
from hazardwatch.ingestion.sources import SourceEndpoint
from hazardwatch.schemas.event import RawEvent

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Aggregate of one fan-out."""

    events: list[RawEvent] = field(default_factory=list)
    failures: list[EndpointFailure] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)

    @property
    def total_failure(self) -> bool:
        """True when no endpoint succeeded (including an empty endpoint set)."""
        return not self.succeeded

    @property
    def partial_failure(self) -> bool:
        return bool(self.failures) and bool(self.succeeded)

    def raise_for_total_failure(self) -> None:
        """
        Raises:
            TotalFetchFailure: If every endpoint failed
        """
        if self.total_failure:
            raise TotalFetchFailure(self.failures)


class FeedFetcher:
    """
    Fetch many endpoints concurrently through one adapter.

    Concurrency is bounded by a semaphore; each request carries its own
    timeout inside the adapter.
    """

    def __init__(
        self,
        adapter: BaseSourceAdapter,
        max_concurrency: int = 4,
        circuit_breaker: CircuitBreaker | None = None,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.adapter = adapter
        self.max_concurrency = max_concurrency
        self.circuit_breaker = circuit_breaker

    async def fetch_all(self, endpoints: list[SourceEndpoint]) -> FetchOutcome:
        """
        Fetch every endpoint and merge their features.

        Args:
            endpoints: Endpoints in priority order

        Returns:
            FetchOutcome with raw events concatenated in endpoint order
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(endpoint: SourceEndpoint) -> FetchResult:
            async with semaphore:
                return await self._fetch_one(endpoint)

        results = await asyncio.gather(*(_bounded(e) for e in endpoints))

        outcome = FetchOutcome()
        for endpoint, result in zip(endpoints, results):
            if not result.success:
                outcome.failures.append(EndpointFailure(endpoint.name, result.error_message))
                continue
            outcome.succeeded.append(endpoint.name)
            outcome.events.extend(
                RawEvent.from_feature(feature, endpoint=endpoint.name, provider=endpoint.provider)
                for feature in result.raw_data
            )

        logger.info(
            f"Fetched {len(outcome.events)} features from {len(outcome.succeeded)}/"
            f"{len(endpoints)} endpoints"
        )
        for failure in outcome.failures:
            logger.warning(f"Endpoint failed: {failure}")
        return outcome

    async def _fetch_one(self, endpoint: SourceEndpoint) -> FetchResult:
        breaker = self.circuit_breaker
        if breaker is not None:
            decision = breaker.can_request(endpoint.name)
            if not decision.allowed:
                return FetchResult(success=False, endpoint=endpoint.name, errors=[decision.reason])

        try:
            result = await self.adapter.fetch(endpoint)
        except Exception as e:
            logger.error(f"Adapter raised for {endpoint.name}: {e}", exc_info=True)
            result = FetchResult(
                success=False,
                endpoint=endpoint.name,
                errors=[f"{type(e).__name__}: {e}"],
            )

        if breaker is not None:
            if result.success:
                breaker.on_success(endpoint.name)
            else:
                breaker.on_failure(endpoint.name)
        return result
