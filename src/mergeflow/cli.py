"""mergeflow CLI - run duplicate resolution from the command line.

Usage:
    mergeflow resolve --key VALUE [--property NAME] [--dry-run]
    mergeflow providers

Configuration is read from MERGEFLOW_* environment variables.

Exit codes:
    0: Run finished (DONE) / command succeeded
    1: Internal or configuration error
    2: Run aborted (candidate lookup failed)
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from typing import Any

from mergeflow.config import (
    DEFAULT_DEDUP_PROPERTY,
    ENV_DEDUP_PROPERTY,
    ConfigError,
    load_resolution_config,
)
from mergeflow.services.resolution.models import RunState
from mergeflow.services.resolution.registry import ProviderNotRegisteredError
from mergeflow.services.resolution.service import (
    DuplicateResolutionService,
    build_validation_registry,
    create_default_resolution_service,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def cmd_resolve(args: argparse.Namespace) -> int:
    """Execute one resolution run and print its summary.

    Exit codes:
        0: state=DONE
        1: configuration error
        2: state=ABORTED
    """
    try:
        config = load_resolution_config()
        if args.property:
            config = dataclasses.replace(config, dedup_property=args.property)
        service = create_default_resolution_service(config)
    except (ConfigError, ProviderNotRegisteredError) as e:
        _output_json(_make_error_result("INVALID_CONFIG", str(e)))
        return 1

    return _run_and_report(service, args.key, dry_run=args.dry_run)


def _run_and_report(service: DuplicateResolutionService, key: str, *, dry_run: bool) -> int:
    run = service.run(key, dry_run=dry_run)
    _output_json(run.summary())
    return 2 if run.state == RunState.ABORTED else 0


def cmd_providers(args: argparse.Namespace) -> int:
    """List validation providers that have credentials configured."""
    try:
        config = load_resolution_config()
    except ConfigError as e:
        _output_json(_make_error_result("INVALID_CONFIG", str(e)))
        return 1

    registry = build_validation_registry(config)
    _output_json(
        {
            "configured": sorted(registry.provider_ids),
            "selected": config.validation_provider,
        }
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mergeflow",
        description="Find, rank and merge duplicate CRM records sharing a dedup key",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level written to stderr (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command")

    resolve_parser = subparsers.add_parser("resolve", help="Run duplicate resolution for a key")
    resolve_parser.add_argument("--key", required=True, help="Dedup key value, e.g. a phone number")
    resolve_parser.add_argument(
        "--property",
        metavar="NAME",
        help=f"Record property to match on (default: {ENV_DEDUP_PROPERTY} or "
        f"{DEFAULT_DEDUP_PROPERTY})",
    )
    resolve_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Rank candidates and report the target without merging",
    )

    subparsers.add_parser("providers", help="List configured validation providers")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "resolve":
            return cmd_resolve(args)
        if args.command == "providers":
            return cmd_providers(args)
        return 0
    except Exception as e:
        logger.exception("Unexpected error")
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
