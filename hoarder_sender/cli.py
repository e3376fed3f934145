"""Command-line interface for the hoarder_sender application."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import pprint
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import uvicorn

from .channels import build_channel
from .config import AppConfig, load_config
from .hoarder import HoarderClient
from .rss import FeedCache
from .runner import Dispatcher
from .scheduler import Schedule, SchedulerService
from .server import create_app

logger = logging.getLogger(__name__)

SECRET_FIELDS = {"api_key", "bot_token", "webhook_url"}


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Send random Hoarder bookmarks on a schedule."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Optional path to the main configuration XML file.",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional XML file of environment variables. Overrides config.",
    )

    # Overrides for logging/debugging
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )

    parser.add_argument(
        "--send-now",
        action="store_true",
        help="Send one batch of bookmarks immediately and exit.",
    )
    parser.add_argument("--host", default=None, help="Bind address. Overrides config.")
    parser.add_argument(
        "--port", type=int, default=None, help="HTTP port. Overrides config."
    )

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def masked_config(config: AppConfig) -> dict:
    """Return the config as a dict with credentials hidden."""

    def mask(value):
        if isinstance(value, dict):
            return {
                key: ("***MASKED***" if key in SECRET_FIELDS and item else mask(item))
                for key, item in value.items()
            }
        return value

    return mask(dataclasses.asdict(config))


@dataclass
class Components:
    """Everything needed to run the sender, wired from one config."""

    config: AppConfig
    feed_cache: FeedCache
    dispatcher: Dispatcher
    scheduler: SchedulerService


def build_components(config: AppConfig) -> Components:
    """Wire the client, channel, dispatcher and scheduler for ``config``."""
    schedule = Schedule.build(
        config.schedule.frequency,
        config.schedule.time_to_send,
        config.schedule.timezone,
    )
    client = HoarderClient(
        config.hoarder.server_url,
        config.hoarder.api_key,
        only_unarchived=config.hoarder.only_unarchived,
        timeout=config.server.http_timeout,
    )
    feed_cache = FeedCache()
    channel = build_channel(config, feed_cache)
    dispatcher = Dispatcher(
        client,
        channel,
        count=config.schedule.bookmarks_count,
        list_id=config.schedule.list_id,
    )
    scheduler = SchedulerService(schedule, dispatcher.run)
    return Components(config, feed_cache, dispatcher, scheduler)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, env_file=args.env_file)

        # CLI overrides config
        log_level = args.log_level or config.logging.level
        log_file = args.log_file or config.logging.file
        configure_logging(log_level, log_file)

        if args.host:
            config.server.host = args.host
        if args.port:
            config.server.port = args.port

        logger.info("Active Configuration:\n%s", pprint.pformat(masked_config(config)))

        components = build_components(config)

        if args.send_now:
            result = components.dispatcher.trigger_now()
            print(
                json.dumps(
                    {
                        "status": result.status,
                        "count": len(result.bookmarks),
                        "error": result.error,
                    }
                )
            )
            return 0 if result.ok else 1

        app = create_app(
            config,
            components.dispatcher,
            components.feed_cache,
            scheduler=components.scheduler,
        )
        logger.info("Server starting on port %d", config.server.port)
        uvicorn.run(
            app, host=config.server.host, port=config.server.port, log_config=None
        )
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    return 0
