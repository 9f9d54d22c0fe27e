#!/usr/bin/env python3
"""Command-line interface for hazardwatch.

Commands:
  - hazardwatch run                 : Run the full pipeline once
  - hazardwatch refresh <category>  : Force-refresh one category
  - hazardwatch show <category>     : Print the current stored snapshot
  - hazardwatch stats               : Per-category store statistics
  - hazardwatch endpoints           : List the configured endpoint set

Typical usage:
  hazardwatch run --json-logs
  hazardwatch refresh floods
  REDIS_URL=redis://localhost:6379/0 hazardwatch show volcanoes
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from hazardwatch.configs.settings import Settings, get_settings
from hazardwatch.exceptions import HazardWatchError
from hazardwatch.monitoring.logging import setup_logging
from hazardwatch.schemas.event import HazardCategory

CATEGORY_CHOICES = sorted({c.value for c in HazardCategory} | {c.plural for c in HazardCategory})


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="hazardwatch", description="Hazard event aggregation pipeline")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("--json-logs", action="store_true", help="Emit JSON logs")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
    sub = p.add_subparsers(dest="cmd")

    sub.add_parser("run", help="Run the full pipeline once")

    pr = sub.add_parser("refresh", help="Force-refresh a single category")
    pr.add_argument("category", choices=CATEGORY_CHOICES, help="Category to refresh")

    ps = sub.add_parser("show", help="Print the current snapshot of a category")
    ps.add_argument("category", choices=CATEGORY_CHOICES, help="Category to show")

    sub.add_parser("stats", help="Show per-category store statistics")

    pe = sub.add_parser("endpoints", help="List configured upstream endpoints")
    pe.add_argument("--all", action="store_true", help="Include disabled endpoints")

    return p.parse_args(argv)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def main(argv: list[str] | None = None) -> int:
    """Run the CLI with the given arguments."""
    try:
        return _main_impl(argv)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except HazardWatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _main_impl(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    if args.version:
        from hazardwatch import __version__

        print(f"hazardwatch version {__version__}")
        return 0

    if not args.cmd:
        print("Error: Command required. Use --help for usage info.", file=sys.stderr)
        return 1

    settings = get_settings()
    setup_logging(
        level=args.log_level or ("DEBUG" if settings.DEBUG else settings.LOG_LEVEL),
        json_logs=args.json_logs or settings.JSON_LOGS,
    )

    if args.cmd == "endpoints":
        from hazardwatch.configs.config import Config
        from hazardwatch.ingestion.sources import load_endpoints

        config = Config.load_sources_config(settings.SOURCES_CONFIG_PATH)
        endpoints = load_endpoints(config, include_disabled=bool(args.all))
        print(f"{'NAME':<24} {'CATEGORIES':<20} {'ENABLED':<8} URL")
        print("-" * 80)
        for e in endpoints:
            categories = ",".join(c.value for c in e.categories) or "all"
            print(f"{e.name:<24} {categories:<20} {str(e.enabled):<8} {e.url}")
        return 0

    return asyncio.run(_run_command(args, settings))


async def _run_command(args: argparse.Namespace, settings: Settings) -> int:
    from hazardwatch.ingestion.factory import build_pipeline
    from hazardwatch.ingestion.orchestrator import RunStatus

    pipeline = build_pipeline(settings)
    try:
        if args.cmd == "run":
            result = await pipeline.run()
            _print_json({**result.to_dict(), "circuits": pipeline.circuit_status()})
            return 1 if result.status == RunStatus.FAILED else 0

        if args.cmd == "refresh":
            category = HazardCategory.from_label(args.category)
            result = await pipeline.refresh_category(category)
            _print_json(result.to_dict())
            return 1 if result.status == RunStatus.FAILED else 0

        if args.cmd == "show":
            category = HazardCategory.from_label(args.category)
            snapshot = await pipeline.store.get(category)
            if snapshot is None:
                print(f"No current snapshot for {category.plural}", file=sys.stderr)
                return 1
            _print_json(snapshot.to_payload())
            return 0

        if args.cmd == "stats":
            _print_json(await pipeline.store.stats())
            return 0

        print(f"Error: Unknown command '{args.cmd}'", file=sys.stderr)
        return 1
    finally:
        await pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
