"""
Command-line interface for Flow Bridge.

Provides commands for previewing and dispatching flow invocations.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

import structlog

from flowbridge import __version__
from flowbridge.config import BridgeConfig, set_config
from flowbridge.core.errors import ValidationError
from flowbridge.engine.aggregator import RequestAggregator
from flowbridge.service import FlowInvoker


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="flowbridge",
        description="Invoke server-side flows through the action API",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Preview command
    preview_parser = subparsers.add_parser("preview", help="Show the aggregated calls without sending them")
    preview_parser.add_argument(
        "requests_file",
        type=Path,
        help="JSON file with a list of invocation requests",
    )
    preview_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
    )

    # Invoke command
    invoke_parser = subparsers.add_parser("invoke", help="Aggregate and dispatch invocation requests")
    invoke_parser.add_argument(
        "requests_file",
        type=Path,
        help="JSON file with a list of invocation requests",
    )
    invoke_parser.add_argument(
        "--quota",
        type=int,
        help="Maximum calls per chunk (default: from configuration)",
    )
    invoke_parser.add_argument(
        "--timeout-ms",
        type=int,
        help="Per-call timeout in milliseconds (default: from configuration)",
    )
    invoke_parser.add_argument(
        "--concurrency",
        type=int,
        help="Number of chunks executed at the same time",
    )
    invoke_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    invoke_parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )

    return parser


def load_requests(path: Path) -> List[dict]:
    """Load a JSON list of requests from a file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a JSON list of requests")
    return data


def build_config(args: argparse.Namespace) -> BridgeConfig:
    """Create configuration from the environment plus command-line overrides."""
    overrides = {}
    if getattr(args, "quota", None) is not None:
        overrides["call_quota"] = args.quota
    if getattr(args, "timeout_ms", None) is not None:
        overrides["call_timeout_ms"] = args.timeout_ms
    if getattr(args, "concurrency", None) is not None:
        overrides["max_concurrent_chunks"] = args.concurrency
    return BridgeConfig(**overrides)


def preview(args: argparse.Namespace) -> int:
    """Print the calls the requests aggregate into."""
    config = build_config(args)
    calls = RequestAggregator(config).aggregate(load_requests(args.requests_file))

    print(json.dumps([c.to_dict() for c in calls], indent=2))
    return 0


async def invoke(args: argparse.Namespace) -> int:
    """Dispatch the requests and print the job report."""
    config = build_config(args)
    set_config(config)

    invoker = FlowInvoker(config)
    try:
        report = await invoker.invoke_and_wait(load_requests(args.requests_file))
    finally:
        await invoker.shutdown()

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.succeeded else 1


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Setup logging
    log_level = getattr(args, "log_level", "INFO")
    log_json = getattr(args, "log_json", False)
    setup_logging(log_level, log_json)

    try:
        if args.command == "preview":
            sys.exit(preview(args))
        elif args.command == "invoke":
            sys.exit(asyncio.run(invoke(args)))
    except ValidationError as e:
        print(f"Invalid requests: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
