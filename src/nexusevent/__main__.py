"""CLI entry point for NexusEvent.

Sends one message through the senders configured in the environment.

Usage:
    python -m nexusevent --title TITLE [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from datetime import UTC, datetime
from typing import NoReturn

from pydantic import ValidationError

from nexusevent import __version__
from nexusevent.config import Settings, clear_settings_cache, get_settings
from nexusevent.errors import (
    InvalidInputError,
    NexusEventError,
    SenderNotFoundError,
    WebhookConfigError,
)
from nexusevent.models import EventMessage
from nexusevent.registry import NexusEvent

APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def _parse_color(value: str) -> int:
    """Parse a color given as decimal, 0x-hex or #hex."""
    if value.startswith("#"):
        value = "0x" + value[1:]
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid color: {value!r}") from None


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="nexusevent",
        description="Send a notification to the configured NexusEvent senders.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nexusevent --title "Deploy finished"                  Broadcast to all senders
  nexusevent --title "Build failed" --sender discord    Send through one sender
  nexusevent --config-check                             Validate config and senders
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and sender setup, then exit",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    message = parser.add_argument_group("message")
    message.add_argument("--title", default=None, help="Message title (required to send)")
    message.add_argument("--content", default=None, help="Message body")
    message.add_argument("--url", default=None, help="Related link")
    message.add_argument("--author", default=None, help="Message author")
    message.add_argument(
        "--color",
        type=_parse_color,
        default=None,
        help="Embed color, e.g. 0x33ccff",
    )

    delivery = parser.add_argument_group("delivery")
    delivery.add_argument(
        "--sender",
        default=None,
        help="Send through this sender only (default: broadcast to all)",
    )
    delivery.add_argument(
        "--fail-fast",
        action="store_true",
        help="Abort the broadcast on the first sender failure",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def print_config_summary(settings: Settings) -> None:
    """Print a summary of the configuration."""
    summary = settings.redacted_summary()
    delivery = settings.delivery
    discord = summary["discord"]
    webhook_url = discord["webhook_url"] if isinstance(discord, dict) else discord

    print("Configuration:")
    print(f"  Discord webhook: {webhook_url}")
    print(f"  Timeout: {delivery.timeout_seconds}s")
    print(f"  Max retries: {delivery.max_retries}")
    print(f"  Backoff: {delivery.initial_backoff_seconds}s up to {delivery.max_backoff_seconds}s")
    print(f"  Log Level: {summary['log_level']}")
    print()


def run_config_check(settings: Settings, registry: NexusEvent) -> int:
    """Validate every configured sender and report the results.

    Returns:
        EXIT_SUCCESS if at least one sender is configured and all are valid.
    """
    print_config_summary(settings)

    results = registry.validate_all_senders()
    if not results:
        print("No senders configured. Set DISCORD_WEBHOOK_URL to enable Discord.")
        return EXIT_CONFIG_ERROR

    print("Senders:")
    for name, valid in results.items():
        print(f"  {name}: {'valid' if valid else 'INVALID'}")
    print()

    if not all(results.values()):
        print("Some senders are misconfigured.")
        return EXIT_CONFIG_ERROR

    print("All checks passed. Ready to send.")
    return EXIT_SUCCESS


def build_message(args: argparse.Namespace) -> EventMessage:
    """Build the message described by the command-line arguments."""
    return EventMessage(
        title=args.title,
        content=args.content,
        url=args.url,
        author=args.author,
        color=args.color,
        timestamp=datetime.now(UTC),
    )


async def run_delivery(
    registry: NexusEvent,
    message: EventMessage,
    *,
    sender_name: str | None = None,
    fail_fast: bool = False,
) -> int:
    """Deliver a message and report the outcome.

    Args:
        registry: Registry holding the configured senders.
        message: Message to deliver.
        sender_name: Deliver through this sender only; broadcast if None.
        fail_fast: Abort the broadcast on the first failure.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        if sender_name:
            await registry.send(sender_name, message)
            print(f"Message sent via {sender_name}")
            return EXIT_SUCCESS

        result = await registry.broadcast(message, fail_fast=fail_fast)
        print(f"Broadcast: {result.successful}/{result.total} succeeded")
        for name, error in result.errors.items():
            print(f"  {name}: {error}", file=sys.stderr)
        return EXIT_SUCCESS if result.failed == 0 else EXIT_ERROR
    except (InvalidInputError, WebhookConfigError, SenderNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except NexusEventError as e:
        logger.debug("Delivery failed", exc_info=True)
        print(f"Delivery failed: {e}", file=sys.stderr)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    registry = NexusEvent.from_settings(settings)

    if args.config_check:
        sys.exit(run_config_check(settings, registry))

    if not args.title:
        parser.error("--title is required unless --config-check is given")

    if not registry.sender_names:
        print("No senders configured. Set DISCORD_WEBHOOK_URL.", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    message = build_message(args)
    try:
        exit_code = asyncio.run(
            run_delivery(
                registry,
                message,
                sender_name=args.sender,
                fail_fast=args.fail_fast,
            )
        )
    except KeyboardInterrupt:
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
