"""Jinja2 environment for hoarder_sender templates."""

from __future__ import annotations

from datetime import datetime
from email.utils import format_datetime
from importlib import resources

import bleach
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markdown_it import MarkdownIt
from markupsafe import Markup

_ENV: Environment | None = None

# Bookmark summaries are short prose; headings, images and tables are dropped.
SUMMARY_TAGS = ["p", "br", "strong", "em", "code", "a", "ul", "ol", "li"]
SUMMARY_ATTRIBUTES = {"a": ["href", "title"]}

_MARKDOWN = MarkdownIt("commonmark", {"breaks": True, "html": False})


def _render_summary(value: str | None) -> Markup:
    """Render a bookmark summary from markdown into sanitized email HTML."""
    if not value:
        return Markup("")
    html = bleach.clean(
        _MARKDOWN.render(value),
        tags=SUMMARY_TAGS,
        attributes=SUMMARY_ATTRIBUTES,
        strip=True,
    )
    return Markup(html.replace("<p>", '<p style="margin: 0 0 8px 0;">'))


def _rfc822(value: datetime) -> str:
    """Format an aware datetime the way RSS 2.0 expects."""
    return format_datetime(value)


def get_environment() -> Environment:
    """Return a cached Jinja environment configured for package templates."""
    global _ENV
    if _ENV is None:
        template_dir = resources.files(__package__) / "templates"
        _ENV = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml", "html.j2", "xml.j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _ENV.filters["markdown"] = _render_summary
        _ENV.filters["rfc822"] = _rfc822
    return _ENV
