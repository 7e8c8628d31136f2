"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Sequence

from .core import ConfigError, ErrorChannel, load_config
from .core.config import resolve_config_dir
from .service import BotService

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_FILE_NAME = "slackbot.log"


def cli(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(
        prog="slackbot",
        description="Slack RTM bot that routes channel messages through pluggable sinks",
    )
    parser.add_argument(
        "--config-dir",
        help="Directory holding .env and bot.yaml (default: ~/.slackbot)",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Run interactively: log to stdout and echo errors to stderr",
    )
    args = parser.parse_args(argv)

    try:
        asyncio.run(_run_async(args.config_dir, args.console))
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return 1
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user")
        return 130
    return 0


def configure_logging(config_dir: Path, console: bool) -> None:
    handlers: list[logging.Handler] = [logging.FileHandler(config_dir / LOG_FILE_NAME, encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))

    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level_name, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


async def _run_async(config_dir: str | Path | None, console: bool) -> None:
    try:
        resolved_dir = resolve_config_dir(config_dir)
    except ConfigError:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        raise
    configure_logging(resolved_dir, console)
    LOGGER.info("Using config directory: %s", resolved_dir)

    config = load_config(resolved_dir)
    LOGGER.info("Loaded %s sink(s)", len(config.sinks))

    error_channel = ErrorChannel(console_stream=sys.stderr if console else None)
    service = BotService(config, error_channel=error_channel)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_shutdown() -> None:
        LOGGER.info("Shutdown requested")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown)
        except NotImplementedError:
            # Windows event loops do not support signal handlers.
            pass

    await service.start()
    LOGGER.info("Slack bot started")
    try:
        await stop_event.wait()
    finally:
        await service.stop()
    LOGGER.info("Shutdown complete")


if __name__ == "__main__":
    raise SystemExit(cli())
