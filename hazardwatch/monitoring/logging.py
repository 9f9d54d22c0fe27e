"""Structured logging with run context.

- console handler, text or JSON
- run/endpoint/stage context injected through a LoggerAdapter
- emit_event() for named pipeline events with a structured payload
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

ROOT_LOGGER = "hazardwatch"

_CONTEXT_KEYS = ("run_id", "endpoint", "category", "stage", "event")

# ---------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _CONTEXT_KEYS:
            if hasattr(record, key):
                base[key] = getattr(record, key)

        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)

        payload = getattr(record, "payload", None)
        if isinstance(payload, dict):
            base["payload"] = payload

        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines: ``LEVEL logger [run=.. stage=..] message``."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [record.levelname, record.name]

        ctx = []
        for key, label in (("run_id", "run"), ("endpoint", "endpoint"), ("category", "category"), ("stage", "stage")):
            value = getattr(record, key, None)
            if value:
                ctx.append(f"{label}={value}")
        if ctx:
            parts.append("[" + " ".join(ctx) + "]")

        parts.append(record.getMessage())
        s = " ".join(parts)

        if record.exc_info:
            s += "\n" + self.formatException(record.exc_info)

        return s


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------


def setup_logging(level: str = "INFO", json_logs: bool = False, stream=None) -> logging.Logger:
    """
    Configure the package logger with a single console handler.

    Safe to call repeatedly; previous handlers are replaced.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(logger.level)
    handler.setFormatter(JsonFormatter() if json_logs else TextFormatter())
    logger.addHandler(handler)
    return logger


# ---------------------------------------------------------------------
# Context injection
# ---------------------------------------------------------------------


class ContextAdapter(logging.LoggerAdapter):
    """Inject context fields into log records."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        merged = dict(self.extra)
        merged.update(extra)
        kwargs["extra"] = merged
        return msg, kwargs


def with_context(
    logger: logging.Logger | logging.LoggerAdapter,
    *,
    run_id: str | None = None,
    endpoint: str | None = None,
    category: str | None = None,
    stage: str | None = None,
) -> ContextAdapter:
    """Create a context adapter; an adapter passed in keeps its own context."""
    extra: dict[str, Any] = {}
    if isinstance(logger, logging.LoggerAdapter):
        extra.update(logger.extra or {})
        logger = logger.logger
    for key, value in (("run_id", run_id), ("endpoint", endpoint), ("category", category), ("stage", stage)):
        if value:
            extra[key] = value
    return ContextAdapter(logger, extra)


def emit_event(
    logger: logging.Logger | logging.LoggerAdapter,
    event: str,
    payload: dict[str, Any] | None = None,
    *,
    level: str = "info",
    stage: str | None = None,
) -> None:
    """Emit a named pipeline event with a structured payload."""
    lvl = getattr(logging, level.upper(), logging.INFO)
    extra: dict[str, Any] = {"event": event, "payload": payload or {}}
    if stage:
        extra["stage"] = stage
    logger.log(lvl, f"Event: {event}", extra=extra)
