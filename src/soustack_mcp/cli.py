"""
soustack-mcp CLI - serve the ingestion tools over stdin/stdout.

Usage:
    soustack-mcp [--ingest-module NAME_OR_PATH] [--validator-module NAME_OR_PATH]
                 [--log-level LEVEL]
    python -m soustack_mcp ...

Requests are read one JSON document per line from stdin and responses are
written one per line to stdout. Logs go to stderr.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from soustack_mcp.config import GatewaySettings
from soustack_mcp.server import serve_stream

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="soustack-mcp",
        description="Line-oriented JSON gateway for soustack recipe ingestion.",
    )
    parser.add_argument(
        "--ingest-module",
        help="Ingest provider module name or .py path (env: SOUSTACK_INGEST_MODULE)",
    )
    parser.add_argument(
        "--validator-module",
        help="Validator provider module name or .py path (env: SOUSTACK_VALIDATOR_MODULE)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level for stderr output (env: SOUSTACK_LOG_LEVEL)",
    )
    return parser


def load_settings(args: argparse.Namespace) -> GatewaySettings:
    overrides = {
        "ingest_module": args.ingest_module,
        "validator_module": args.validator_module,
        "log_level": args.log_level,
    }
    return GatewaySettings(**{key: value for key, value in overrides.items() if value})


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args)

    # stdout carries the protocol, so logs must stay on stderr.
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    sys.stdin.reconfigure(encoding="utf-8", errors="replace")
    sys.stdout.reconfigure(encoding="utf-8", line_buffering=True)

    logger.info(
        "Serving soustack tools (ingest=%s, validator=%s)",
        settings.ingest_module,
        settings.validator_module,
    )
    try:
        asyncio.run(serve_stream(sys.stdin, sys.stdout, settings))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
