"""
API Source Adapter.

Adapter for HTTP endpoints that answer with a GeoJSON feature collection.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from hazardwatch.ingestion.sources import SourceEndpoint

from .base_adapter import AdapterConfig, BaseSourceAdapter, FetchResult

logger = logging.getLogger(__name__)


class MalformedResponse(ValueError):
    """The endpoint answered, but not with a usable feature collection."""


@dataclass
class APIAdapterConfig(AdapterConfig):
    """Configuration for HTTP feed adapters."""

    user_agent: str = "HazardWatch/1.0"
    headers: dict[str, str] = field(default_factory=dict)


class APIAdapter(BaseSourceAdapter):
    """
    Adapter for HTTP feature-collection feeds.

    Each fetch is one GET with its own wall-clock timeout. Timeouts, network errors,
    error statuses and unparseable bodies are all reported on the returned
    FetchResult rather than raised.
    """

    def __init__(
        self,
        config: APIAdapterConfig,
        response_parser: Callable[[Any], list[dict]] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the API adapter.

        Args:
            config: APIAdapterConfig with HTTP settings
            response_parser: Function to extract the feature list from a decoded body
            client: Pre-built async client (e.g. with a custom transport)
        """
        self.response_parser = response_parser
        self._client: httpx.AsyncClient | None = client
        super().__init__(config)

    @property
    def api_config(self) -> APIAdapterConfig:
        """Get typed config."""
        return self.config  # type: ignore[return-value]

    def _validate_config(self) -> None:
        """Validate API configuration."""
        if self.api_config.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.api_config.max_retries < 0:
            raise ValueError("max_retries cannot be negative")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            headers = {
                "User-Agent": self.api_config.user_agent,
                "Accept": "application/json",
                **self.api_config.headers,
            }
            self._client = httpx.AsyncClient(headers=headers, follow_redirects=True)
        return self._client

    async def fetch(self, endpoint: SourceEndpoint) -> FetchResult:
        """
        Fetch one endpoint's features.

        Args:
            endpoint: The query to issue

        Returns:
            FetchResult with raw features, or with errors on failure
        """
        fetch_started = datetime.now(UTC)
        features: list[dict[str, Any]] = []
        errors: list[str] = []
        timeout = endpoint.timeout_seconds or self.api_config.request_timeout

        try:
            body = await self._make_request(self._get_client(), endpoint, timeout)
            parser = self.response_parser or self._default_response_parser
            features = parser(body)
        except (httpx.TimeoutException, asyncio.TimeoutError):
            errors.append(f"timeout after {timeout:g}s")
        except httpx.HTTPStatusError as e:
            errors.append(f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            errors.append(f"{type(e).__name__}: {e}")
        except MalformedResponse as e:
            errors.append(f"malformed response: {e}")

        if errors:
            logger.warning(f"Endpoint {endpoint.name} failed: {'; '.join(errors)}")

        return FetchResult(
            success=not errors,
            endpoint=endpoint.name,
            raw_data=features,
            total_fetched=len(features),
            errors=errors,
            metadata={"url": endpoint.url, "timeout_seconds": timeout},
            fetch_started_at=fetch_started,
            fetch_ended_at=datetime.now(UTC),
        )

    async def _make_request(
        self,
        client: httpx.AsyncClient,
        endpoint: SourceEndpoint,
        timeout: float,
        retry_count: int = 0,
    ) -> Any:
        """
        Make HTTP request with retry logic.

        Args:
            client: Async HTTP client
            endpoint: Endpoint to query
            timeout: Wall-clock limit for each attempt, in seconds
            retry_count: Current retry attempt

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            httpx.HTTPError: When all attempts failed
            asyncio.TimeoutError: When the last attempt ran past ``timeout``
            MalformedResponse: When the body is not JSON
        """
        try:
            response = await asyncio.wait_for(
                client.get(endpoint.url, params=endpoint.params, timeout=timeout), timeout
            )
            response.raise_for_status()
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            if retry_count < self.api_config.max_retries:
                wait_time = 2**retry_count
                logger.warning(f"Request to {endpoint.name} failed, retrying in {wait_time}s: {e}")
                await asyncio.sleep(wait_time)
                return await self._make_request(client, endpoint, timeout, retry_count + 1)
            raise

        if response.status_code == 204 or not response.content.strip():
            return None

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"body is not JSON ({e})") from e

    def _default_response_parser(self, body: Any) -> list[dict[str, Any]]:
        """
        Extract features from a GeoJSON FeatureCollection.

        An empty body is an empty collection. Non-dict entries are dropped.
        """
        if body is None:
            return []
        if not isinstance(body, dict):
            raise MalformedResponse(f"expected an object, got {type(body).__name__}")

        features = body.get("features")
        if features is None:
            if body.get("type") == "FeatureCollection":
                return []
            raise MalformedResponse("no 'features' member")
        if not isinstance(features, list):
            raise MalformedResponse("'features' is not a list")

        return [f for f in features if isinstance(f, dict)]

    async def close(self) -> None:
        """Close async HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
