"""
Base Source Adapter.

Abstract base class defining the interface for all source adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
import logging

from hazardwatch.ingestion.sources import SourceEndpoint


@dataclass
class FetchResult:
    """
    Result of fetching one endpoint.

    ``success`` means the endpoint answered with a parseable feature
    collection; an empty collection is still a success.
    """

    success: bool
    endpoint: str
    raw_data: list[dict[str, Any]] = field(default_factory=list)
    total_fetched: int = 0
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    fetch_started_at: datetime | None = None
    fetch_ended_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate fetch duration."""
        if self.fetch_started_at and self.fetch_ended_at:
            return (self.fetch_ended_at - self.fetch_started_at).total_seconds()
        return 0.0

    @property
    def error_message(self) -> str:
        return "; ".join(self.errors) if self.errors else ""


@dataclass
class AdapterConfig:
    """
    Base configuration for source adapters.
    """

    source_id: str
    request_timeout: float = 15.0
    max_retries: int = 0
    custom_config: dict[str, Any] = field(default_factory=dict)


class BaseSourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must implement:
        - fetch(): Fetch one endpoint's raw features
        - _validate_config(): Validate adapter-specific configuration
    """

    def __init__(self, config: AdapterConfig):
        """
        Initialize the adapter.

        Args:
            config: AdapterConfig with source-specific settings
        """
        self.config = config
        self.logger = logging.getLogger(f"adapter.{config.source_id}")
        self._validate_config()

    @property
    def source_id(self) -> str:
        """Get the source identifier."""
        return self.config.source_id

    @abstractmethod
    async def fetch(self, endpoint: SourceEndpoint) -> FetchResult:
        """
        Fetch raw features from one endpoint.

        Args:
            endpoint: The query to issue

        Returns:
            FetchResult with raw features or errors
        """
        pass

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate adapter-specific configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        pass

    async def close(self) -> None:
        """
        Release any resources held by the adapter.
        """
        pass

    async def __aenter__(self) -> "BaseSourceAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
