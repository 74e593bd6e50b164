#!/usr/bin/env python3
"""Send a single alert through the OpsGenie sink.

Usage::

    # Error-level alert from the "svc.disk" logger
    python scripts/send_alert.py "disk full" --name svc.disk --level ERROR

    # Tags, fields and a responder team
    python scripts/send_alert.py "disk full" --tag host:db1 --field mount=/data \\
        --team ops

    # Custom config file / log level
    python scripts/send_alert.py "disk full" --config config/settings.yaml --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from src.core.config import load_settings
from src.core.logging import setup_logging
from src.core.types import HostRecord, LogLevel, parse_point_name
from src.opsgenie.exceptions import SinkError
from src.opsgenie.factory import create_sink
from src.opsgenie.types import Responder

logger = structlog.get_logger(__name__)


def _parse_fields(pairs: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {pair!r}")
        fields[key] = value
    return fields


def build_record(args: argparse.Namespace) -> HostRecord:
    fields = _parse_fields(args.field)
    if args.description:
        fields["description"] = args.description
    return HostRecord(
        value=args.message,
        name=parse_point_name(args.name),
        level=LogLevel[args.level.upper()],
        tags=frozenset(args.tag),
        fields=fields,
    )


async def run(args: argparse.Namespace) -> int:
    """Deliver one record, flush, and shut the sink down."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    if args.endpoint:
        settings.opsgenie.endpoint = args.endpoint

    teams = [Responder.team(t) for t in args.team]
    sink = create_sink(settings, get_responders=lambda _record: teams)

    record = build_record(args)
    code = 0
    try:
        async with sink:
            ack = await sink.log(record)
            await ack
            await sink.flush()
    except SinkError as exc:
        logger.error("send_alert_failed", error=str(exc))
        code = 1

    logger.info("send_alert_done", exit_code=code)
    return code


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Send one alert to OpsGenie.",
    )
    parser.add_argument("message", help="Alert message (record value)")
    parser.add_argument("--name", default="cli", help="Dotted source name")
    parser.add_argument(
        "--level",
        default="ERROR",
        choices=[lvl.name for lvl in LogLevel],
        type=str.upper,
        help="Record level; drives the alert priority",
    )
    parser.add_argument("--tag", action="append", default=[], help="Repeatable")
    parser.add_argument(
        "--field", action="append", default=[], help="KEY=VALUE detail, repeatable"
    )
    parser.add_argument("--description", default=None)
    parser.add_argument("--team", action="append", default=[], help="Responder team")
    parser.add_argument("--endpoint", default=None, help="Override API endpoint")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
