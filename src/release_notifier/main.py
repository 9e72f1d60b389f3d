"""
Main entry point for the release notifier.

This module parses command-line arguments, configures logging and runs the
polling daemon until it receives SIGINT or SIGTERM.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any

import structlog
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .app import ReleaseNotifierApp
from .config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(message)s",
        stream=sys.stdout,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="release-notifier",
        description="Watch GitHub repositories and post new releases to Slack",
    )
    parser.add_argument(
        "-r",
        "--repository",
        dest="repositories",
        action="append",
        default=[],
        metavar="OWNER/NAME",
        help="Repository to watch (repeatable)",
    )
    parser.add_argument(
        "-f",
        "--file",
        dest="repositories_file",
        help="File listing one repository per line",
    )
    parser.add_argument(
        "-i",
        "--interval",
        help="Polling interval, in seconds or as a duration such as 1h or 30m",
    )
    parser.add_argument(
        "--first-observation-policy",
        choices=["baseline", "latest", "all"],
        help="What to report the first time a repository is polled",
    )
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument(
        "--log-format", choices=["json", "console"], help="Log output format"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    """Create settings from the environment with command-line overrides."""
    overrides: dict[str, Any] = {}
    env_settings = Settings()

    if args.repositories:
        # Argument repositories come before environment ones.
        overrides["repositories"] = list(args.repositories) + list(
            env_settings.repository_list
        )
    if args.repositories_file:
        overrides["repositories_file"] = args.repositories_file
    if args.interval:
        overrides["interval_seconds"] = args.interval
    if args.first_observation_policy:
        overrides["first_observation_policy"] = args.first_observation_policy
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format

    if not overrides:
        return env_settings
    return Settings(**overrides)


async def run(settings: Settings) -> None:
    """Initialize and run the daemon."""
    app = ReleaseNotifierApp(settings)
    app.initialize()
    app.setup_signal_handlers()
    await app.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = build_settings(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(settings)
    logger = structlog.get_logger()
    logger.info(
        "Starting release notifier",
        version=__version__,
        interval_seconds=settings.interval_seconds,
        log_level=settings.log_level,
    )

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
