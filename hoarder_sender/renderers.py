"""Rendering helpers for notification bodies."""

from __future__ import annotations

import datetime
from typing import Sequence

from .models import Bookmark
from .templating import get_environment

TELEGRAM_MAX_LENGTH = 4096
DISCORD_MAX_EMBEDS = 10
DISCORD_MAX_EMBED_CHARS = 6000


def build_email_html(bookmarks: Sequence[Bookmark], subject: str = "") -> str:
    """Render the HTML email body using the Jinja2 template."""
    env = get_environment()
    template = env.get_template("email.html.j2")
    today = datetime.date.today().strftime("%B %d, %Y")
    return template.render(bookmarks=bookmarks, subject=subject, date=today)


def build_email_text(bookmarks: Sequence[Bookmark]) -> str:
    """Render the plain-text email body using the Jinja2 template."""
    env = get_environment()
    template = env.get_template("email.txt.j2")
    today = datetime.date.today().strftime("%B %d, %Y")
    return template.render(bookmarks=bookmarks, date=today)


def _render_telegram(bookmarks: Sequence[Bookmark], start: int, header: bool) -> str:
    template = get_environment().get_template("telegram.html.j2")
    return template.render(bookmarks=bookmarks, start=start, header=header).strip()


def build_telegram_messages(
    bookmarks: Sequence[Bookmark], limit: int = TELEGRAM_MAX_LENGTH
) -> list[str]:
    """Render Telegram messages using the Bot API HTML subset.

    Bookmarks are packed in order into as few messages as fit within
    ``limit`` characters. Numbering continues across messages and only the
    first one carries the header.
    """
    messages: list[str] = []
    chunk: list[Bookmark] = []
    rendered = ""
    for position, bookmark in enumerate(bookmarks):
        candidate = _render_telegram(
            chunk + [bookmark], position - len(chunk), not messages
        )
        if len(candidate) > limit and chunk:
            messages.append(rendered)
            chunk = []
            candidate = _render_telegram([bookmark], position, False)
        chunk.append(bookmark)
        rendered = candidate
    if chunk:
        messages.append(rendered)
    return messages


def build_mattermost_message(bookmarks: Sequence[Bookmark]) -> str:
    """Render a Mattermost markdown message."""
    template = get_environment().get_template("mattermost.md.j2")
    return template.render(bookmarks=bookmarks).strip()


def build_discord_embeds(bookmarks: Sequence[Bookmark]) -> list[dict]:
    """Build one Discord embed per bookmark."""
    embeds = []
    for bookmark in bookmarks:
        embed = {
            "title": bookmark.title[:256],
            "color": 0x5865F2,
        }
        if bookmark.description:
            embed["description"] = bookmark.description[:4096]
        if bookmark.url:
            embed["url"] = bookmark.url
        if bookmark.tags:
            embed["fields"] = [
                {"name": "Tags", "value": ", ".join(bookmark.tags)[:1024]}
            ]
        embeds.append(embed)
    return embeds


def embed_size(embed: dict) -> int:
    """Characters Discord counts towards the per-message embed total."""
    size = len(embed.get("title", "")) + len(embed.get("description", ""))
    for field in embed.get("fields", ()):
        size += len(field["name"]) + len(field["value"])
    return size


def batch_discord_embeds(
    embeds: Sequence[dict],
    max_count: int = DISCORD_MAX_EMBEDS,
    max_chars: int = DISCORD_MAX_EMBED_CHARS,
) -> list[list[dict]]:
    """Split embeds into per-message batches within Discord's limits."""
    batches: list[list[dict]] = []
    current: list[dict] = []
    current_size = 0
    for embed in embeds:
        size = embed_size(embed)
        if current and (
            len(current) >= max_count or current_size + size > max_chars
        ):
            batches.append(current)
            current, current_size = [], 0
        current.append(embed)
        current_size += size
    if current:
        batches.append(current)
    return batches
