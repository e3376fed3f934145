"""FastAPI front door: status, manual trigger, channel tests and the RSS feed."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from .channels import NotificationMethod
from .config import AppConfig
from .models import Bookmark
from .rss import FeedCache, build_feed_xml
from .runner import STATUS_SKIPPED, Dispatcher
from .scheduler import SchedulerService

logger = logging.getLogger(__name__)


def _test_bookmark(label: str, tag: str) -> Bookmark:
    now = datetime.now(timezone.utc).isoformat()
    return Bookmark(
        id="test-id",
        url="https://example.com",
        title=f"Test {label} Bookmark",
        description=f"This is a test bookmark to verify {label} integration",
        tags=("test", tag),
        created_at=now,
        updated_at=now,
    )


def create_app(
    config: AppConfig,
    dispatcher: Dispatcher,
    feed_cache: FeedCache,
    scheduler: Optional[SchedulerService] = None,
) -> FastAPI:
    """Build the HTTP application around an already wired dispatcher."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            scheduler.start()
        if config.notification_method == NotificationMethod.RSS.value:
            logger.info("RSS feed is ready! Feed URL: %s", config.server.feed_url)
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    app = FastAPI(title="Hoarder Random Bookmark Sender", lifespan=lifespan)
    method = config.notification_method
    is_rss = method == NotificationMethod.RSS.value

    @app.get("/")
    def status():
        next_run = scheduler.next_run if scheduler is not None else None
        return {
            "status": "ok",
            "notification_method": method,
            "frequency": config.schedule.frequency,
            "count": config.schedule.bookmarks_count,
            "timezone": config.schedule.timezone,
            "time_to_send": config.schedule.time_to_send,
            "specific_list": bool(config.schedule.list_id),
            "rss_feed_url": config.server.feed_url if is_rss else None,
            "next_run": next_run.isoformat() if next_run else None,
        }

    @app.post("/send-now")
    def send_now():
        result = dispatcher.trigger_now()
        if result.ok:
            return {
                "success": True,
                "message": "Notification sent successfully",
                "count": len(result.bookmarks),
            }
        status_code = 409 if result.status == STATUS_SKIPPED else 500
        return JSONResponse(
            {"success": False, "error": f"Failed to send notification: {result.error}"},
            status_code=status_code,
        )

    def _channel_test(expected: NotificationMethod, label: str, message: str):
        if method != expected.value:
            return JSONResponse(
                {
                    "success": False,
                    "error": f"{label} is not configured as the notification method",
                },
                status_code=400,
            )
        try:
            dispatcher.channel.deliver([_test_bookmark(label, expected.value)])
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error sending test %s message", label)
            return JSONResponse(
                {"success": False, "error": f"Failed to send test message: {exc}"},
                status_code=500,
            )
        return {"success": True, "message": message, **dispatcher.channel.describe()}

    @app.get("/test-email")
    def test_email():
        return _channel_test(
            NotificationMethod.EMAIL, "Email", "Test email sent successfully"
        )

    @app.get("/test-discord")
    def test_discord():
        return _channel_test(
            NotificationMethod.DISCORD, "Discord", "Test message sent to Discord"
        )

    @app.get("/test-mattermost")
    def test_mattermost():
        return _channel_test(
            NotificationMethod.MATTERMOST,
            "Mattermost",
            "Test message sent to Mattermost",
        )

    @app.get("/test-telegram")
    def test_telegram():
        return _channel_test(
            NotificationMethod.TELEGRAM, "Telegram", "Test message sent to Telegram"
        )

    @app.get("/rss/feed")
    def rss_feed():
        if not is_rss:
            return JSONResponse(
                {
                    "success": False,
                    "error": "RSS is not configured as the notification method",
                },
                status_code=404,
            )
        try:
            snapshot = feed_cache.publish_if_empty(dispatcher.select_bookmarks)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error generating RSS feed")
            return JSONResponse(
                {"success": False, "error": f"Failed to generate RSS feed: {exc}"},
                status_code=500,
            )
        return Response(
            content=build_feed_xml(snapshot, config.server.feed_url),
            media_type="application/rss+xml",
        )

    return app
