"""
Operator command line for envstack.

Usage examples:

  # Validate the configuration for the detected environment
  python -m envstack check

  # Validate production configuration from a specific directory, JSON output
  python -m envstack --base-dir deploy --env production check --format json

  # Show a redacted summary
  python -m envstack summary --format yaml

  # Which fields differ between two environments
  python -m envstack diff development production

  # Watch the layer files and log every reload until interrupted
  python -m envstack watch --debounce 0.5

Exit codes:
  0 = configuration loaded and validated
  1 = configuration is missing values or fails validation
  2 = internal error (unreadable file, bad arguments)
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from .framework.configuration import (
    ConfigurationLoader,
    Environment,
    HotReloadOptions,
    bootstrap,
    compare_environments,
    create_config_summary
)
from .framework.configuration.summary import render_summary
from .framework.events import ChangeEvent, ChangeEventType
from .infrastructure.exceptions import ConfigurationError, EnvStackError
from .infrastructure.logging_setup import setup_logging

logger = logging.getLogger("envstack.cli")


def _print_error(error: EnvStackError, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(error.to_dict(), indent=2, default=str))
    elif isinstance(error, ConfigurationError):
        print(error.get_detailed_message(), file=sys.stderr)
    else:
        print(f"ERROR: {error.message}", file=sys.stderr)


def cmd_check(args) -> int:
    loader = ConfigurationLoader(args.base_dir, args.env)
    result = loader.load()
    if args.format == "json":
        print(json.dumps({"environment": loader.environment.value, **result.validation.to_dict()}, indent=2))
    else:
        print(f"Environment: {loader.environment.value}")
        for path in result.raw.loaded_files:
            print(f"Loaded: {path}")
        print(result.validation.format_report())
    return 0


def cmd_summary(args) -> int:
    config = ConfigurationLoader(args.base_dir, args.env).load().config
    summary = create_config_summary(config, include_sensitive=args.include_sensitive)
    print(render_summary(summary, "json" if args.format == "json" else "yaml"))
    return 0


def cmd_diff(args) -> int:
    diff = compare_environments(args.base_dir, args.first, args.second)
    if args.format == "json":
        print(json.dumps(diff.to_dict(), indent=2))
        return 0

    print(f"{args.first} -> {args.second}")
    if not diff.has_changes:
        print("No differences")
    for path in diff.changed:
        print(f"  ~ {path}")
    for path in diff.added:
        print(f"  + {path}")
    for path in diff.removed:
        print(f"  - {path}")
    return 0


async def _watch(args) -> None:
    options = HotReloadOptions(debounce_seconds=args.debounce)
    context = bootstrap(args.base_dir, args.env, watch=True, options=options, log_stream=sys.stderr)

    def log_event(event: ChangeEvent) -> None:
        level = logging.INFO if event.type in (ChangeEventType.RELOAD, ChangeEventType.BACKUP) else logging.WARNING
        logger.log(level, event.message, extra={"event": event.to_dict()})

    for event_type in ChangeEventType:
        context.subscribe(event_type, log_event)

    try:
        await asyncio.Event().wait()
    finally:
        context.stop_watching()


def cmd_watch(args) -> int:
    try:
        asyncio.run(_watch(args))
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping watcher")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="envstack", description="Inspect and watch layered environment configuration")
    ap.add_argument("--base-dir", default=".", help="Directory holding the .env layer files")
    ap.add_argument("--env", choices=[e.value for e in Environment], default=None,
                    help="Environment to load (detected when omitted)")
    ap.add_argument("--log-level", default="warn", help="Log level for the CLI itself")

    sub = ap.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Load and validate configuration")
    check.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    check.set_defaults(func=cmd_check)

    summary = sub.add_parser("summary", help="Print a redacted configuration summary")
    summary.add_argument("--format", choices=["yaml", "json"], default="yaml", help="Output format")
    summary.add_argument("--include-sensitive", action="store_true", help="Do not mask secrets")
    summary.set_defaults(func=cmd_summary)

    diff = sub.add_parser("diff", help="Compare two environments")
    diff.add_argument("first", choices=[e.value for e in Environment])
    diff.add_argument("second", choices=[e.value for e in Environment])
    diff.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    diff.set_defaults(func=cmd_diff)

    watch = sub.add_parser("watch", help="Watch layer files and hot reload")
    watch.add_argument("--debounce", type=float, default=1.0, help="Debounce window in seconds")
    watch.add_argument("--format", choices=["text"], default="text", help=argparse.SUPPRESS)
    watch.set_defaults(func=cmd_watch)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, "pretty", stream=sys.stderr)

    try:
        return args.func(args)
    except ConfigurationError as e:
        _print_error(e, args.format)
        return 1
    except EnvStackError as e:
        _print_error(e, args.format)
        return 2
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
