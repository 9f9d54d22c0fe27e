"""
Error taxonomy for the hazard pipeline.

Recoverable conditions (a single endpoint failing, a secondary classifier
answer that cannot be used) are modelled as values and handled where they
occur. Exceptions are reserved for conditions that end a run or a call.
"""

from dataclasses import dataclass


class HazardWatchError(Exception):
    """Base class for all hazardwatch errors."""


class ConfigError(HazardWatchError):
    """Raised when endpoint or pipeline configuration is malformed."""


@dataclass(frozen=True)
class EndpointFailure:
    """
    A single endpoint that could not be fetched during a run.

    Recorded, logged and excluded from aggregation. Never aborts a run.
    """

    endpoint: str
    error: str

    def __str__(self) -> str:
        return f"{self.endpoint}: {self.error}"


class TotalFetchFailure(HazardWatchError):
    """Raised when every endpoint of a fetch failed."""

    def __init__(self, failures: list[EndpointFailure]):
        self.failures = list(failures)
        summary = "; ".join(str(f) for f in self.failures) or "no endpoints configured"
        super().__init__(f"All endpoints failed: {summary}")


class StoreError(HazardWatchError):
    """Base class for category store errors."""


class StoreWriteFailure(StoreError):
    """The store could not be written. Fatal for the current run."""


class StoreReadFailure(StoreError):
    """The store could not be reached while reading."""
