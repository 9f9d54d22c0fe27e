"""
Source Endpoint Set.

Static, config-driven list of upstream queries. Each endpoint is plain
data: a URL, query parameters (with ``{{from_date}}`` / ``{{to_date}}``
placeholders for the lookback window) and the categories it targets.
Endpoints without ``categories`` are general queries that can contribute
events of any category.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any
import logging

from hazardwatch.exceptions import ConfigError
from hazardwatch.schemas.event import HazardCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceEndpoint:
    """One upstream query."""

    name: str
    url: str
    params: dict[str, Any] = field(default_factory=dict)
    provider: str = "gdacs"
    categories: tuple[HazardCategory, ...] = ()
    enabled: bool = True
    timeout_seconds: float | None = None

    @property
    def is_general(self) -> bool:
        """True if the endpoint is not restricted to specific categories."""
        return not self.categories

    def targets(self, category: HazardCategory) -> bool:
        return self.is_general or category in self.categories

    def resolved(self, now: datetime | None = None, lookback_days: int = 60) -> "SourceEndpoint":
        """Copy of the endpoint with the date placeholders filled for ``now``."""
        return replace(self, params=substitute_variables(self.params, date_window(now, lookback_days)))


def substitute_variables(template: Any, params: dict[str, Any]) -> Any:
    """
    Recursively substitute {{variable}} placeholders in template.

    Args:
        template: Template structure (dict, list, or string)
        params: Parameter values for substitution

    Returns:
        Template with substituted values
    """
    if isinstance(template, str):
        result = template
        for key, value in params.items():
            placeholder = f"{{{{{key}}}}}"
            if placeholder in result:
                result = result.replace(placeholder, str(value))
        return result

    elif isinstance(template, dict):
        return {k: substitute_variables(v, params) for k, v in template.items()}

    elif isinstance(template, list):
        return [substitute_variables(item, params) for item in template]

    return template


def date_window(now: datetime | None = None, lookback_days: int = 60) -> dict[str, str]:
    """Return the {{from_date}}/{{to_date}} values for a lookback window."""
    now = now or datetime.now(UTC)
    return {
        "from_date": (now - timedelta(days=lookback_days)).strftime("%Y-%m-%d"),
        "to_date": now.strftime("%Y-%m-%d"),
    }


def _parse_categories(raw: Any, endpoint_name: str) -> tuple[HazardCategory, ...]:
    if raw in (None, ""):
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise ConfigError(f"Endpoint '{endpoint_name}': categories must be a list")

    categories = []
    for label in raw:
        category = HazardCategory.from_label(str(label))
        if category is None:
            raise ConfigError(f"Endpoint '{endpoint_name}': unknown category '{label}'")
        categories.append(category)
    return tuple(categories)


def load_endpoints(
    config: dict[str, Any],
    include_disabled: bool = False,
) -> list[SourceEndpoint]:
    """
    Build the endpoint set from the ``sources.yaml`` structure.

    Params keep their ``{{from_date}}`` / ``{{to_date}}`` placeholders;
    callers fill them per run with ``SourceEndpoint.resolved``.

    Args:
        config: Parsed YAML with ``defaults`` and ``endpoints`` sections
        include_disabled: Keep endpoints marked ``enabled: false``

    Returns:
        Endpoints in configuration order

    Raises:
        ConfigError: If an endpoint entry is malformed
    """
    defaults = config.get("defaults") or {}
    entries = config.get("endpoints") or []
    if not isinstance(entries, list):
        raise ConfigError("'endpoints' must be a list")

    endpoints: list[SourceEndpoint] = []
    seen_names: set[str] = set()

    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigError(f"Endpoint #{position} must be a mapping")

        name = str(entry.get("name") or f"endpoint_{position}")
        url = entry.get("url")
        if not url:
            raise ConfigError(f"Endpoint '{name}' has no url")
        if name in seen_names:
            raise ConfigError(f"Duplicate endpoint name '{name}'")
        seen_names.add(name)

        params = entry.get("params") or {}
        if not isinstance(params, dict):
            raise ConfigError(f"Endpoint '{name}': params must be a mapping")

        timeout = entry.get("timeout_seconds", defaults.get("timeout_seconds"))

        endpoint = SourceEndpoint(
            name=name,
            url=str(url),
            params=dict(params),
            provider=str(entry.get("provider", defaults.get("provider", "gdacs"))),
            categories=_parse_categories(entry.get("categories"), name),
            enabled=bool(entry.get("enabled", True)),
            timeout_seconds=float(timeout) if timeout is not None else None,
        )

        if endpoint.enabled or include_disabled:
            endpoints.append(endpoint)
        else:
            logger.debug(f"Skipping disabled endpoint: {name}")

    return endpoints


def endpoints_for(
    endpoints: list[SourceEndpoint],
    category: HazardCategory,
) -> list[SourceEndpoint]:
    """Select the general endpoints plus those targeting ``category``."""
    return [e for e in endpoints if e.targets(category)]
