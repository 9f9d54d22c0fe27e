"""
Shared pytest fixtures for the hazardwatch test suite.

Provides factories for GeoJSON features, raw events and endpoints, plus a
stub adapter that answers from canned per-endpoint responses.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import pytest

from hazardwatch.ingestion.adapters.base_adapter import (
    AdapterConfig,
    BaseSourceAdapter,
    FetchResult,
)
from hazardwatch.ingestion.sources import SourceEndpoint
from hazardwatch.schemas.event import HazardCategory, RawEvent

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


def build_feature(
    eventid: Any = "1000",
    eventtype: str | None = None,
    name: str | None = None,
    coordinates: Any = (10.0, 20.0),
    **properties: Any,
) -> dict[str, Any]:
    """Build a GDACS-like GeoJSON feature."""
    props: dict[str, Any] = dict(properties)
    if eventid is not None:
        props["eventid"] = eventid
    if eventtype is not None:
        props["eventtype"] = eventtype
    if name is not None:
        props["eventname"] = name
    geometry = None if coordinates is None else {"type": "Point", "coordinates": list(coordinates)}
    return {"type": "Feature", "geometry": geometry, "properties": props}


class StubAdapter(BaseSourceAdapter):
    """
    Adapter answering from canned responses keyed by endpoint name.

    A list value is returned as features; a string value is reported as an
    error; an exception instance is raised.
    """

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses = responses or {}
        self.calls: list[str] = []
        self.closed = False
        super().__init__(AdapterConfig(source_id="stub"))

    def _validate_config(self) -> None:
        pass

    async def fetch(self, endpoint: SourceEndpoint) -> FetchResult:
        self.calls.append(endpoint.name)
        response = self.responses.get(endpoint.name, [])
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return FetchResult(success=False, endpoint=endpoint.name, errors=[response])
        return FetchResult(
            success=True,
            endpoint=endpoint.name,
            raw_data=list(response),
            total_fetched=len(response),
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_feature():
    """
    Return a function that creates GeoJSON features with sensible defaults.

    Example:
        feature = make_feature(eventid="EV1", eventtype="VO", name="Etna")
    """
    return build_feature


@pytest.fixture
def make_raw():
    """Return a function that creates RawEvent objects from feature arguments."""

    def _make_raw(endpoint: str = "test_endpoint", **kwargs: Any) -> RawEvent:
        return RawEvent.from_feature(build_feature(**kwargs), endpoint=endpoint)

    return _make_raw


@pytest.fixture
def make_endpoint():
    """Return a function that creates SourceEndpoint objects."""

    def _make_endpoint(
        name: str = "broad",
        categories: tuple[HazardCategory, ...] = (),
        **kwargs: Any,
    ) -> SourceEndpoint:
        return SourceEndpoint(
            name=name,
            url=kwargs.pop("url", f"https://feeds.example.org/{name}"),
            categories=categories,
            **kwargs,
        )

    return _make_endpoint


@pytest.fixture
def stub_adapter():
    """Return a function that creates a StubAdapter from canned responses."""

    def _stub_adapter(responses: dict[str, Any] | None = None) -> StubAdapter:
        return StubAdapter(responses)

    return _stub_adapter


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """setup_logging() replaces handlers and disables propagation; undo it after each test."""
    logger = logging.getLogger("hazardwatch")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
