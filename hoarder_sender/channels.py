"""Delivery channels for selected bookmarks."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence

import requests

from .config import (
    AppConfig,
    DiscordConfig,
    EmailConfig,
    MattermostConfig,
    TelegramConfig,
)
from .emailing import send_bookmarks_email
from .models import Bookmark
from .renderers import (
    batch_discord_embeds,
    build_discord_embeds,
    build_mattermost_message,
    build_telegram_messages,
)
from .rss import FeedCache

logger = logging.getLogger(__name__)

DISCORD_API_URL = "https://discord.com/api/v10"
TELEGRAM_API_URL = "https://api.telegram.org"


class NotificationMethod(str, Enum):
    EMAIL = "email"
    DISCORD = "discord"
    MATTERMOST = "mattermost"
    TELEGRAM = "telegram"
    RSS = "rss"


class DeliveryError(RuntimeError):
    """Raised when a channel fails to deliver bookmarks."""


class Channel:
    """Base class for a single delivery mechanism."""

    method: NotificationMethod

    def deliver(self, bookmarks: Sequence[Bookmark]) -> None:
        raise NotImplementedError

    def describe(self) -> dict:
        """Extra details reported by the test endpoints."""
        return {}


class _HTTPChannel(Channel):
    def __init__(self, timeout: float, session: Optional[requests.Session]) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, url: str, label: str, **kwargs) -> requests.Response:
        try:
            response = self.session.post(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"Failed to send message via {label}: {exc}") from exc
        return response


class EmailChannel(Channel):
    method = NotificationMethod.EMAIL

    def __init__(self, config: EmailConfig) -> None:
        self.config = config

    def deliver(self, bookmarks: Sequence[Bookmark]) -> None:
        try:
            send_bookmarks_email(bookmarks, self.config)
        except Exception as exc:  # noqa: BLE001
            raise DeliveryError(f"Failed to send email: {exc}") from exc

    def describe(self) -> dict:
        return {"recipient": self.config.to_addr}


class DiscordChannel(_HTTPChannel):
    method = NotificationMethod.DISCORD

    def __init__(
        self,
        config: DiscordConfig,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(timeout, session)
        self.config = config

    def deliver(self, bookmarks: Sequence[Bookmark]) -> None:
        url = f"{DISCORD_API_URL}/channels/{self.config.channel_id}/messages"
        headers = {"Authorization": f"Bot {self.config.bot_token}"}
        batches = batch_discord_embeds(build_discord_embeds(bookmarks))
        for index, batch in enumerate(batches):
            payload = {"embeds": batch}
            if index == 0:
                payload["content"] = "**Your Random Bookmarks**"
            self._post(url, "Discord", json=payload, headers=headers)
        logger.info(
            "Sent %d bookmarks to Discord channel %s",
            len(bookmarks),
            self.config.channel_id,
        )

    def describe(self) -> dict:
        return {"channel_id": self.config.channel_id}


class MattermostChannel(_HTTPChannel):
    method = NotificationMethod.MATTERMOST

    def __init__(
        self,
        config: MattermostConfig,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(timeout, session)
        self.config = config

    def deliver(self, bookmarks: Sequence[Bookmark]) -> None:
        payload = {
            "text": build_mattermost_message(bookmarks),
            "username": self.config.username,
        }
        if self.config.channel:
            payload["channel"] = self.config.channel
        self._post(self.config.webhook_url, "Mattermost", json=payload)
        logger.info("Sent %d bookmarks to Mattermost", len(bookmarks))

    def describe(self) -> dict:
        return {"channel": self.config.channel}


class TelegramChannel(_HTTPChannel):
    method = NotificationMethod.TELEGRAM

    def __init__(
        self,
        config: TelegramConfig,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(timeout, session)
        self.config = config

    def deliver(self, bookmarks: Sequence[Bookmark]) -> None:
        url = f"{TELEGRAM_API_URL}/bot{self.config.bot_token}/sendMessage"
        for text in build_telegram_messages(bookmarks):
            payload = {
                "chat_id": self.config.chat_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": len(bookmarks) > 1,
            }
            self._post(url, "Telegram", json=payload)
        logger.info(
            "Sent %d bookmarks to Telegram chat %s", len(bookmarks), self.config.chat_id
        )

    def describe(self) -> dict:
        return {"chat_id": self.config.chat_id}


class FeedChannel(Channel):
    """Publishes bookmarks to the feed cache instead of pushing them anywhere."""

    method = NotificationMethod.RSS

    def __init__(self, cache: FeedCache, feed_url: str) -> None:
        self.cache = cache
        self.feed_url = feed_url

    def deliver(self, bookmarks: Sequence[Bookmark]) -> None:
        self.cache.publish(bookmarks)
        logger.info("RSS feed cache updated - available at %s", self.feed_url)

    def describe(self) -> dict:
        return {"feed_url": self.feed_url}


def build_channel(
    config: AppConfig,
    feed_cache: FeedCache,
    session: Optional[requests.Session] = None,
) -> Channel:
    """Create the channel selected by ``config.notification_method``."""
    try:
        method = NotificationMethod(config.notification_method)
    except ValueError:
        raise ValueError(
            f"Invalid notification method: {config.notification_method!r}"
        ) from None

    timeout = config.server.http_timeout
    if method is NotificationMethod.EMAIL:
        channel: Channel = EmailChannel(config.email)
    elif method is NotificationMethod.DISCORD:
        channel = DiscordChannel(config.discord, timeout, session)
    elif method is NotificationMethod.MATTERMOST:
        channel = MattermostChannel(config.mattermost, timeout, session)
    elif method is NotificationMethod.TELEGRAM:
        channel = TelegramChannel(config.telegram, timeout, session)
    else:
        channel = FeedChannel(feed_cache, config.server.feed_url)

    logger.info("Using notification method: %s", method.value)
    return channel
