"""
Unit tests for the api_adapter module.

HTTP is stubbed with httpx.MockTransport.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from hazardwatch.ingestion.adapters.api_adapter import APIAdapter, APIAdapterConfig
from hazardwatch.ingestion.sources import SourceEndpoint

# =============================================================================
# TEST DATA
# =============================================================================

ENDPOINT = SourceEndpoint(
    name="gdacs_search_all",
    url="https://feeds.example.org/SEARCH",
    params={"alertlevel": "Green;Orange;Red"},
)

FEATURE_COLLECTION = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 2]}, "properties": {"eventid": 1}},
        {"type": "Feature", "geometry": {"type": "Point", "coordinates": [3, 4]}, "properties": {"eventid": 2}},
        "not-a-feature",
    ],
}


# =============================================================================
# HELPERS
# =============================================================================


def _adapter(handler, **config) -> APIAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return APIAdapter(APIAdapterConfig(source_id="gdacs", **config), client=client)


def _fetch(adapter: APIAdapter, endpoint: SourceEndpoint = ENDPOINT):
    async def _run():
        try:
            return await adapter.fetch(endpoint)
        finally:
            await adapter.close()

    return asyncio.run(_run())


# =============================================================================
# TEST CLASSES
# =============================================================================


class TestAPIAdapterConfig:
    """Tests for APIAdapterConfig validation."""

    def test_defaults(self):
        config = APIAdapterConfig(source_id="gdacs")
        assert config.request_timeout == 15.0
        assert config.max_retries == 0
        assert config.headers == {}

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            APIAdapter(APIAdapterConfig(source_id="gdacs", request_timeout=0))

    def test_negative_retries(self):
        with pytest.raises(ValueError):
            APIAdapter(APIAdapterConfig(source_id="gdacs", max_retries=-1))


class TestAPIAdapterFetch:
    """Tests for APIAdapter.fetch."""

    def test_success_parses_features(self):
        """Dict features are returned; junk entries are dropped."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=FEATURE_COLLECTION)

        result = _fetch(_adapter(handler))
        assert result.success
        assert result.total_fetched == 2
        assert result.endpoint == "gdacs_search_all"
        assert seen["params"] == {"alertlevel": "Green;Orange;Red"}
        assert result.duration_seconds >= 0

    def test_empty_body_is_empty_collection(self):
        result = _fetch(_adapter(lambda request: httpx.Response(204)))
        assert result.success
        assert result.raw_data == []

    def test_http_error_status(self):
        result = _fetch(_adapter(lambda request: httpx.Response(503)))
        assert not result.success
        assert result.errors == ["HTTP 503"]

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = _fetch(_adapter(handler))
        assert not result.success
        assert result.error_message.startswith("timeout")

    def test_stalled_response_is_bounded_by_endpoint_timeout(self):
        async def handler(request):
            await asyncio.Event().wait()

        endpoint = SourceEndpoint(name="slow", url="https://feeds.example.org/slow", timeout_seconds=0.05)
        result = _fetch(_adapter(handler), endpoint)

        assert not result.success
        assert result.errors == ["timeout after 0.05s"]
        assert result.metadata["timeout_seconds"] == 0.05

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _fetch(_adapter(handler))
        assert not result.success
        assert "ConnectError" in result.error_message

    def test_malformed_json(self):
        result = _fetch(_adapter(lambda request: httpx.Response(200, text="<html>oops</html>")))
        assert not result.success
        assert "malformed response" in result.error_message

    def test_missing_features_member(self):
        result = _fetch(_adapter(lambda request: httpx.Response(200, json={"error": "x"})))
        assert not result.success
        assert "features" in result.error_message

    def test_custom_response_parser(self):
        def handler(request):
            return httpx.Response(200, json={"items": [{"a": 1}]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        adapter = APIAdapter(
            APIAdapterConfig(source_id="custom"),
            response_parser=lambda body: body["items"],
            client=client,
        )
        result = _fetch(adapter)
        assert result.raw_data == [{"a": 1}]


class TestAPIAdapterRetries:
    """Tests for retry behavior."""

    def test_retries_then_succeeds(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            if attempts["count"] == 1:
                return httpx.Response(500)
            return httpx.Response(200, json=FEATURE_COLLECTION)

        with patch("hazardwatch.ingestion.adapters.api_adapter.asyncio.sleep", new=AsyncMock()) as sleep:
            result = _fetch(_adapter(handler, max_retries=2))

        assert result.success
        assert attempts["count"] == 2
        sleep.assert_awaited_once_with(1)

    def test_retries_after_stalled_attempt(self):
        attempts = {"count": 0}

        async def handler(request):
            attempts["count"] += 1
            if attempts["count"] == 1:
                await asyncio.Event().wait()
            return httpx.Response(200, json=FEATURE_COLLECTION)

        endpoint = SourceEndpoint(name="slow", url="https://feeds.example.org/slow", timeout_seconds=0.05)
        with patch("hazardwatch.ingestion.adapters.api_adapter.asyncio.sleep", new=AsyncMock()):
            result = _fetch(_adapter(handler, max_retries=1), endpoint)

        assert result.success
        assert attempts["count"] == 2

    def test_no_retries_by_default(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            return httpx.Response(500)

        result = _fetch(_adapter(handler))
        assert not result.success
        assert attempts["count"] == 1


class TestAPIAdapterClient:
    """Tests for client lifecycle."""

    def test_lazy_client_uses_user_agent(self):
        adapter = APIAdapter(APIAdapterConfig(source_id="gdacs", user_agent="HW-Test/1.0"))
        client = adapter._get_client()
        assert client.headers["User-Agent"] == "HW-Test/1.0"
        assert adapter._get_client() is client
        asyncio.run(adapter.close())
        assert adapter._client is None
