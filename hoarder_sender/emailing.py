"""Email delivery via Resend."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

import resend

from .config import EmailConfig
from .models import Bookmark
from .renderers import build_email_html, build_email_text

logger = logging.getLogger(__name__)


def build_default_subject(now: Optional[datetime] = None) -> str:
    timestamp = now or datetime.now()
    return "Your Random Bookmarks for " + timestamp.strftime("%Y-%m-%d")


def send_bookmarks_email(bookmarks: Sequence[Bookmark], config: EmailConfig) -> str:
    """Send the bookmarks to the configured recipient and return the Resend id."""
    if not config.api_key:
        raise ValueError("RESEND_API_KEY is not set; cannot send email.")
    if not config.from_addr:
        raise ValueError("Sender email is not configured. Set EMAIL_FROM.")
    if not config.to_addr:
        raise ValueError("Recipient email is not configured. Set EMAIL_RECIPIENT.")

    subject = config.subject or build_default_subject()
    html_content = build_email_html(bookmarks, subject=subject)
    text_content = build_email_text(bookmarks)

    resend.api_key = config.api_key
    response = resend.Emails.send(
        {
            "from": config.from_addr,
            "to": [config.to_addr],
            "subject": subject,
            "html": html_content,
            "text": text_content,
        }
    )
    if isinstance(response, dict):
        email_id = response.get("id", "unknown")
    else:
        email_id = getattr(response, "id", "unknown")
    logger.info("Sent email to %s via Resend (id %s)", config.to_addr, email_id)
    return email_id
