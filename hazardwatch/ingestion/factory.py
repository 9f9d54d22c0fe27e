"""
Pipeline factory.

Wires a HazardPipeline from settings and the endpoint configuration:

    from hazardwatch.ingestion.factory import build_pipeline

    pipeline = build_pipeline()
    result = await pipeline.run()

No REDIS_URL means an in-memory store; no secondary classifier provider (or
no API key for it) means rule-only classification.
"""

import logging

from hazardwatch.agents.llm.provider_router import get_llm_client
from hazardwatch.configs.config import Config
from hazardwatch.configs.settings import Settings, get_settings
from hazardwatch.ingestion.adapters.api_adapter import APIAdapter, APIAdapterConfig
from hazardwatch.ingestion.fetcher import FeedFetcher
from hazardwatch.ingestion.normalization.secondary_classifier import SecondaryClassifier
from hazardwatch.ingestion.orchestrator import HazardPipeline
from hazardwatch.ingestion.resilience import CircuitBreaker
from hazardwatch.ingestion.sources import load_endpoints
from hazardwatch.publishing.broadcaster import Broadcaster
from hazardwatch.storage.category_store import (
    CategoryStore,
    InMemoryCategoryStore,
    RedisCategoryStore,
)

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> CategoryStore:
    if settings.REDIS_URL:
        logger.info("Using Redis category store")
        return RedisCategoryStore.from_url(settings.REDIS_URL)
    logger.info("REDIS_URL not set, using in-memory category store")
    return InMemoryCategoryStore()


def build_secondary_classifier(settings: Settings) -> SecondaryClassifier | None:
    """Secondary classifier for the configured provider, or None for rule-only mode."""
    if not settings.secondary_classifier_enabled:
        return None

    provider = settings.SECONDARY_CLASSIFIER_PROVIDER
    client = get_llm_client(
        provider=provider,
        model_name=settings.SECONDARY_CLASSIFIER_MODEL,
        api_key=settings.api_key_for(provider),
    )
    if not client.is_available:
        logger.warning(f"No API key for secondary classifier provider '{provider}', using rules only")
        return None

    return SecondaryClassifier(
        client,
        request_timeout=settings.SECONDARY_REQUEST_TIMEOUT_SECONDS,
        budget_seconds=settings.SECONDARY_BUDGET_SECONDS,
    )


def build_pipeline(
    settings: Settings | None = None,
    store: CategoryStore | None = None,
) -> HazardPipeline:
    """
    Create a fully wired pipeline.

    Args:
        settings: Settings to use; defaults to the cached application settings
        store: Store override (otherwise chosen from REDIS_URL)

    Returns:
        HazardPipeline ready to run
    """
    settings = settings or get_settings()

    sources_config = Config.load_sources_config(settings.SOURCES_CONFIG_PATH)
    endpoints = load_endpoints(sources_config)
    logger.info(f"Loaded {len(endpoints)} endpoints from {settings.SOURCES_CONFIG_PATH}")

    adapter = APIAdapter(
        APIAdapterConfig(
            source_id="hazard_feeds",
            request_timeout=settings.FETCH_TIMEOUT_SECONDS,
            max_retries=settings.FETCH_MAX_RETRIES,
            user_agent=settings.USER_AGENT,
        )
    )
    breaker = CircuitBreaker(
        failure_threshold=settings.CIRCUIT_FAILURE_THRESHOLD,
        reset_timeout_s=settings.CIRCUIT_RESET_SECONDS,
        max_reset_s=settings.CIRCUIT_MAX_RESET_SECONDS,
    )
    fetcher = FeedFetcher(adapter, max_concurrency=settings.FETCH_MAX_CONCURRENCY, circuit_breaker=breaker)

    return HazardPipeline(
        endpoints=endpoints,
        fetcher=fetcher,
        store=store or build_store(settings),
        broadcaster=Broadcaster(delivery_timeout=settings.BROADCAST_DELIVERY_TIMEOUT_SECONDS),
        secondary=build_secondary_classifier(settings),
        lookback_days=settings.LOOKBACK_DAYS,
    )
