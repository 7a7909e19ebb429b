# src/main.py
"""CLI entry point: parse and cache commands.

Usage:
    loadspec parse "<command>" [--json] [--no-cache]
    loadspec cache stats
    loadspec cache clear
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from loadspec.config.settings import ConfigurationError
from loadspec.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        _setup_logging(args.verbose)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="loadspec",
        description=f"loadspec v{__version__}: natural-language load test interpreter",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- parse ---
    p_parse = subparsers.add_parser(
        "parse", help="Interpret a load test command",
    )
    p_parse.add_argument("text", help="Natural-language command (quote it)")
    p_parse.add_argument(
        "--json", action="store_true",
        help="Print the full outcome as JSON",
    )
    p_parse.add_argument(
        "--no-cache", action="store_true",
        help="Bypass the result cache",
    )
    p_parse.set_defaults(func=_cmd_parse)

    # --- cache ---
    p_cache = subparsers.add_parser(
        "cache", help="Inspect or clear the result cache",
    )
    p_cache.add_argument("action", choices=["stats", "clear"])
    p_cache.set_defaults(func=_cmd_cache)

    return parser


async def _cmd_parse(args: argparse.Namespace) -> int:
    """Interpret one command and print the specification."""
    from loadspec.api.facade import build_coordinator
    from loadspec.config.settings import load_settings

    settings = load_settings()
    if args.no_cache:
        coordinator = build_coordinator(settings, cache=None)
    else:
        coordinator = build_coordinator(settings)

    outcome = await coordinator.parse(args.text)
    if args.json:
        print(json.dumps(outcome.to_wire(), indent=2))
    else:
        _print_outcome_summary(outcome)
    return 0 if outcome.can_proceed else 2


async def _cmd_cache(args: argparse.Namespace) -> int:
    """Show cache statistics or clear the cache."""
    from loadspec.cache.cache_factory import create_cache_store
    from loadspec.config.settings import load_settings

    cache = create_cache_store(load_settings())
    if cache is None:
        logger.error("Result cache is disabled (CACHE_ENABLED=false)")
        return 1

    if args.action == "clear":
        removed = cache.size()
        cache.clear()
        print(f"Cleared {removed} cache entries")
        return 0

    stats = cache.stats()
    print("\nCache statistics:")
    for key, value in stats.items():
        print(f"  {key + ':':<14}{value}")
    return 0


def _print_outcome_summary(outcome: object) -> None:
    """Print a human-readable summary of a ParseOutcome."""
    spec = outcome.spec
    print(f"\n{spec.name}")
    print(f"  ID:          {spec.id}")
    print(f"  Type:        {spec.test_type}")
    for request in spec.iter_requests():
        print(f"  Request:     {request.method} {request.url}")
    if spec.load_pattern is not None:
        pattern = spec.load_pattern
        load = (
            f"{pattern.virtual_users} users" if pattern.virtual_users is not None
            else f"{pattern.requests_per_second} req/s"
        )
        print(f"  Load:        {pattern.type}, {load}")
    if spec.duration is not None:
        print(f"  Duration:    {spec.duration.value:g} {spec.duration.unit}")
    print(f"  Source:      {outcome.source}" + (f" ({outcome.cache_hit} hit)" if outcome.cache_hit else ""))
    print(f"  Confidence:  {outcome.confidence:.2f}")
    for warning in outcome.warnings:
        print(f"  ! {warning}")
    for suggestion in outcome.suggestions[:5]:
        print(f"  - {suggestion}")


def _setup_logging(verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from loadspec.config.settings import load_settings
    from loadspec.logging.logger import setup_logging

    settings = load_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
