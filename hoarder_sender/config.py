"""Configuration loading for the bookmark sender."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional
from xml.etree import ElementTree as ET

logger = logging.getLogger(__name__)

NOTIFICATION_METHODS = ("email", "discord", "mattermost", "telegram", "rss")


@dataclass
class HoarderConfig:
    server_url: Optional[str] = None
    api_key: Optional[str] = None
    only_unarchived: bool = False


@dataclass
class ScheduleConfig:
    frequency: str = "daily"
    time_to_send: str = "09:00"
    timezone: str = "UTC"
    bookmarks_count: int = 5
    list_id: Optional[str] = None


@dataclass
class EmailConfig:
    api_key: Optional[str] = None
    from_addr: Optional[str] = None
    to_addr: Optional[str] = None
    subject: Optional[str] = None


@dataclass
class DiscordConfig:
    bot_token: Optional[str] = None
    channel_id: Optional[str] = None


@dataclass
class MattermostConfig:
    webhook_url: Optional[str] = None
    channel: Optional[str] = None
    username: str = "Hoarder Bookmarks"


@dataclass
class TelegramConfig:
    bot_token: Optional[str] = None
    chat_id: Optional[str] = None


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    public_url: Optional[str] = None
    http_timeout: float = 30.0

    @property
    def base_url(self) -> str:
        if self.public_url:
            return self.public_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def feed_url(self) -> str:
        return f"{self.base_url}/rss/feed"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    notification_method: str = "email"
    env_file: Optional[str] = None
    hoarder: HoarderConfig = field(default_factory=HoarderConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    discord: DiscordConfig = field(default_factory=DiscordConfig)
    mattermost: MattermostConfig = field(default_factory=MattermostConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def parse_env_config(path: str) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
        root = tree.getroot()
        for var in root.findall("variable"):
            name = var.attrib.get("name")
            value = var.text
            if name and value:
                env_vars[name] = value.strip()
    except Exception as exc:
        logger.warning("Failed to load environment config: %s", exc)
        raise

    return env_vars


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    tree = ET.parse(config_path)
    root = tree.getroot()

    config = AppConfig()
    config.notification_method = root.findtext(
        "notification-method", config.notification_method
    ).strip()

    env_node = root.find("env")
    if env_node is not None and env_node.text:
        config.env_file = _resolve_path(config_path, env_node.text.strip())

    hoarder_node = root.find("hoarder")
    if hoarder_node is not None:
        config.hoarder.server_url = hoarder_node.findtext("server-url")
        config.hoarder.only_unarchived = _parse_bool(
            hoarder_node.findtext("only-unarchived", "false")
        )

    schedule_node = root.find("schedule")
    if schedule_node is not None:
        schedule = config.schedule
        schedule.frequency = schedule_node.findtext("frequency", schedule.frequency)
        schedule.time_to_send = schedule_node.findtext("time", schedule.time_to_send)
        schedule.timezone = schedule_node.findtext("timezone", schedule.timezone)
        schedule.bookmarks_count = int(
            schedule_node.findtext("count", str(schedule.bookmarks_count))
        )
        schedule.list_id = schedule_node.findtext("list-id") or None

    email_node = root.find("email")
    if email_node is not None:
        config.email.to_addr = email_node.findtext("to")
        config.email.from_addr = email_node.findtext("from")
        config.email.subject = email_node.findtext("subject")

    discord_node = root.find("discord")
    if discord_node is not None:
        config.discord.channel_id = discord_node.findtext("channel-id")

    mattermost_node = root.find("mattermost")
    if mattermost_node is not None:
        config.mattermost.channel = mattermost_node.findtext("channel")
        config.mattermost.username = mattermost_node.findtext(
            "username", config.mattermost.username
        )

    telegram_node = root.find("telegram")
    if telegram_node is not None:
        config.telegram.chat_id = telegram_node.findtext("chat-id")

    server_node = root.find("server")
    if server_node is not None:
        config.server.host = server_node.findtext("host", config.server.host)
        config.server.port = int(server_node.findtext("port", str(config.server.port)))
        config.server.public_url = server_node.findtext("public-url")
        config.server.http_timeout = float(
            server_node.findtext("http-timeout", str(config.server.http_timeout))
        )

    log_node = root.find("logging")
    if log_node is not None:
        config.logging.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            config.logging.file = _resolve_path(config_path, log_file)

    return config


def apply_environment(
    config: AppConfig, environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """Overlay environment variables onto ``config`` in place."""
    env = os.environ if environ is None else environ

    def text(name: str) -> Optional[str]:
        value = env.get(name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def number(name: str, cast):
        value = text(name)
        if value is None:
            return None
        try:
            return cast(value)
        except ValueError:
            raise ValueError(f"{name} must be a number, got {value!r}") from None

    config.notification_method = (
        text("NOTIFICATION_METHOD") or config.notification_method
    )

    config.hoarder.server_url = text("HOARDER_SERVER_URL") or config.hoarder.server_url
    config.hoarder.api_key = text("HOARDER_API_KEY") or config.hoarder.api_key
    if text("ONLY_UNARCHIVED") is not None:
        config.hoarder.only_unarchived = _parse_bool(text("ONLY_UNARCHIVED"))

    schedule = config.schedule
    schedule.frequency = text("NOTIFICATION_FREQUENCY") or schedule.frequency
    schedule.time_to_send = text("TIME_TO_SEND") or schedule.time_to_send
    schedule.timezone = text("TIMEZONE") or schedule.timezone
    count = number("BOOKMARKS_COUNT", int)
    if count is not None:
        schedule.bookmarks_count = count
    schedule.list_id = text("SPECIFIC_LIST_ID") or schedule.list_id

    config.email.api_key = text("RESEND_API_KEY") or config.email.api_key
    config.email.from_addr = text("EMAIL_FROM") or config.email.from_addr
    config.email.to_addr = text("EMAIL_RECIPIENT") or config.email.to_addr
    config.email.subject = text("EMAIL_SUBJECT") or config.email.subject

    config.discord.bot_token = text("DISCORD_BOT_TOKEN") or config.discord.bot_token
    config.discord.channel_id = text("DISCORD_CHANNEL_ID") or config.discord.channel_id

    config.mattermost.webhook_url = (
        text("MATTERMOST_WEBHOOK_URL") or config.mattermost.webhook_url
    )
    config.mattermost.channel = text("MATTERMOST_CHANNEL") or config.mattermost.channel
    config.mattermost.username = (
        text("MATTERMOST_USERNAME") or config.mattermost.username
    )

    config.telegram.bot_token = text("TELEGRAM_BOT_TOKEN") or config.telegram.bot_token
    config.telegram.chat_id = text("TELEGRAM_CHAT_ID") or config.telegram.chat_id

    config.server.host = text("HOST") or config.server.host
    port = number("PORT", int)
    if port is not None:
        config.server.port = port
    config.server.public_url = text("PUBLIC_URL") or config.server.public_url
    timeout = number("HTTP_TIMEOUT", float)
    if timeout is not None:
        config.server.http_timeout = timeout

    config.logging.level = text("LOG_LEVEL") or config.logging.level
    config.logging.file = text("LOG_FILE") or config.logging.file

    return config


def validate_config(config: AppConfig) -> AppConfig:
    """Reject configurations the sender cannot run with."""
    method = config.notification_method.strip().lower()
    if method not in NOTIFICATION_METHODS:
        raise ValueError(
            f"Invalid notification method: {config.notification_method!r} "
            f"(expected one of {', '.join(NOTIFICATION_METHODS)})"
        )
    config.notification_method = method

    if config.schedule.bookmarks_count <= 0:
        raise ValueError("BOOKMARKS_COUNT must be a positive integer.")

    if not config.hoarder.server_url or not config.hoarder.api_key:
        raise ValueError("HOARDER_SERVER_URL and HOARDER_API_KEY are required.")

    required = {
        "email": {
            "RESEND_API_KEY": config.email.api_key,
            "EMAIL_FROM": config.email.from_addr,
            "EMAIL_RECIPIENT": config.email.to_addr,
        },
        "discord": {
            "DISCORD_BOT_TOKEN": config.discord.bot_token,
            "DISCORD_CHANNEL_ID": config.discord.channel_id,
        },
        "mattermost": {"MATTERMOST_WEBHOOK_URL": config.mattermost.webhook_url},
        "telegram": {
            "TELEGRAM_BOT_TOKEN": config.telegram.bot_token,
            "TELEGRAM_CHAT_ID": config.telegram.chat_id,
        },
        "rss": {},
    }[method]
    missing = sorted(name for name, value in required.items() if not value)
    if missing:
        raise ValueError(
            f"Missing required settings for {method}: {', '.join(missing)}"
        )

    return config


def load_config(
    path: Optional[str] = None,
    env_file: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> AppConfig:
    """Build the validated application config from XML files and the environment."""
    config = parse_app_config(path) if path else AppConfig()

    env = dict(os.environ if environ is None else environ)
    env_path = env_file or config.env_file
    if env_path:
        # Variables already present in the process environment win.
        for name, value in parse_env_config(env_path).items():
            env.setdefault(name, value)

    apply_environment(config, env)
    return validate_config(config)
