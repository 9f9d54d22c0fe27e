"""
hazardwatch.ingestion.resilience

Per-endpoint circuit breaker for upstream feeds.

After ``failure_threshold`` consecutive failures an endpoint's circuit opens
and the endpoint is skipped. Once the reset timeout has elapsed one probe
request is let through: success closes the circuit, failure reopens it with
the timeout doubled (capped at ``max_reset_s``).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class _Circuit:
    reset_timeout_s: float
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    last_failure_s: float | None = None
    total_failures: int = 0
    total_successes: int = 0


@dataclass(frozen=True)
class CircuitDecision:
    allowed: bool
    reason: str


class CircuitBreaker:
    """
    Process-local circuit registry keyed by endpoint name.
    """

    def __init__(
        self,
        *,
        failure_threshold: int = 3,
        reset_timeout_s: float = 30.0,
        max_reset_s: float = 600.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.failure_threshold = failure_threshold
        self.reset_timeout_s = reset_timeout_s
        self.max_reset_s = max(max_reset_s, reset_timeout_s)
        self._clock = clock or time.monotonic
        self._circuits: dict[str, _Circuit] = {}

    def _get_circuit(self, name: str) -> _Circuit:
        circuit = self._circuits.get(name)
        if circuit is None:
            circuit = _Circuit(reset_timeout_s=self.reset_timeout_s)
            self._circuits[name] = circuit
        return circuit

    def state(self, name: str) -> CircuitState:
        return self._get_circuit(name).state

    def can_request(self, name: str) -> CircuitDecision:
        """Decide whether a request to ``name`` may be issued now."""
        circuit = self._get_circuit(name)

        if circuit.state == CircuitState.CLOSED:
            return CircuitDecision(True, "circuit closed")

        if circuit.state == CircuitState.OPEN:
            elapsed = self._clock() - (circuit.last_failure_s or 0.0)
            if elapsed >= circuit.reset_timeout_s:
                circuit.state = CircuitState.HALF_OPEN
                logger.info(f"Circuit {name}: half-open, allowing probe request")
                return CircuitDecision(True, "probe request")
            wait_s = round(circuit.reset_timeout_s - elapsed)
            return CircuitDecision(False, f"circuit open, retry in {wait_s}s")

        return CircuitDecision(True, "half-open probe")

    def on_success(self, name: str) -> None:
        circuit = self._get_circuit(name)
        circuit.failures = 0
        circuit.total_successes += 1
        if circuit.state != CircuitState.CLOSED:
            logger.info(f"Circuit {name}: closed, source recovered")
            circuit.state = CircuitState.CLOSED
            circuit.reset_timeout_s = self.reset_timeout_s

    def on_failure(self, name: str) -> None:
        circuit = self._get_circuit(name)
        circuit.failures += 1
        circuit.total_failures += 1
        circuit.last_failure_s = self._clock()

        if circuit.state == CircuitState.HALF_OPEN:
            circuit.state = CircuitState.OPEN
            circuit.reset_timeout_s = min(circuit.reset_timeout_s * 2, self.max_reset_s)
            logger.warning(
                f"Circuit {name}: open, probe failed, next retry in {circuit.reset_timeout_s:g}s"
            )
            return

        if circuit.state == CircuitState.CLOSED and circuit.failures >= self.failure_threshold:
            circuit.state = CircuitState.OPEN
            logger.warning(f"Circuit {name}: open after {circuit.failures} consecutive failures")

    def status(self) -> dict[str, dict[str, Any]]:
        """Snapshot of every known circuit, for health reporting."""
        now = self._clock()
        report: dict[str, dict[str, Any]] = {}
        for name, circuit in self._circuits.items():
            entry: dict[str, Any] = {
                "state": circuit.state.value,
                "consecutive_failures": circuit.failures,
                "total_failures": circuit.total_failures,
                "total_successes": circuit.total_successes,
            }
            if circuit.state == CircuitState.OPEN:
                elapsed = now - (circuit.last_failure_s or now)
                entry["retry_in_s"] = max(0.0, circuit.reset_timeout_s - elapsed)
            report[name] = entry
        return report

    def reset(self, name: str | None = None) -> None:
        """Forget one circuit, or all of them."""
        if name is None:
            self._circuits.clear()
        else:
            self._circuits.pop(name, None)
