"""Command-line entry point for the invitation assistant."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

import structlog
import uvicorn

from .assistant import InvitationAssistant
from .config import Settings
from .ocr import TextExtractor


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.EventRenamer("event"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Turn event invitation text into calendar links.")
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level.")
    commands = parser.add_subparsers(dest="command", required=True)

    parse_cmd = commands.add_parser("parse", help="Parse an OCR transcript and print details and links as JSON.")
    parse_cmd.add_argument(
        "source",
        nargs="?",
        default="-",
        help="Text file to read, or '-' for standard input (default).",
    )

    serve_cmd = commands.add_parser("serve", help="Run the webhook API.")
    serve_cmd.add_argument("--host", default="0.0.0.0")
    serve_cmd.add_argument("--port", type=int, default=3000)
    return parser.parse_args(argv)


def read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, encoding="utf-8") as handle:
        return handle.read()


def run_parse(source: str) -> int:
    try:
        text = read_source(source)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    settings = Settings()
    assistant = InvitationAssistant(settings, TextExtractor(settings))
    analysis = assistant.analyse(text)
    print(json.dumps(analysis.as_dict(), indent=2, ensure_ascii=False))
    return 0 if analysis.result.ok else 1


def run_serve(host: str, port: int) -> int:
    LOGGER.info("server.start", host=host, port=port)
    uvicorn.run("kairos_agent.api:app", host=host, port=port, log_config=None)
    return 0


def cli(argv: Optional[Sequence[str]] = None) -> int:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    if args.command == "parse":
        return run_parse(args.source)
    return run_serve(args.host, args.port)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
