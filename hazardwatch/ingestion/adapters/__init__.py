"""
Source Adapters for hazard feed ingestion.

Adapters provide a unified interface for fetching one endpoint's feature
collection. Failures are reported on the FetchResult, never raised, so the
fetcher can fan out across endpoints without one failure aborting the rest.

Usage:
    from hazardwatch.ingestion.adapters import APIAdapter, APIAdapterConfig

    adapter = APIAdapter(APIAdapterConfig(source_id="gdacs"))
    result = await adapter.fetch(endpoint)
"""

from .api_adapter import APIAdapter, APIAdapterConfig
from .base_adapter import AdapterConfig, BaseSourceAdapter, FetchResult

__all__ = [
    "AdapterConfig",
    "BaseSourceAdapter",
    "FetchResult",
    "APIAdapter",
    "APIAdapterConfig",
]
