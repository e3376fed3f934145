"""High-level orchestration: fetch, sample and deliver bookmarks."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .channels import Channel
from .hoarder import HoarderClient
from .models import Bookmark
from .sampling import sample

logger = logging.getLogger(__name__)

STATUS_SENT = "sent"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class DispatchResult:
    """Outcome of a single notification cycle."""

    status: str
    bookmarks: List[Bookmark] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (STATUS_SENT, STATUS_EMPTY)


class Dispatcher:
    """Runs the fetch → sample → deliver cycle for one channel.

    Only one cycle runs at a time; a trigger that arrives while a cycle is in
    progress is skipped rather than queued.
    """

    def __init__(
        self,
        client: HoarderClient,
        channel: Channel,
        count: int,
        list_id: Optional[str] = None,
        sampler: Callable[[Sequence[Bookmark], int], List[Bookmark]] = sample,
    ) -> None:
        self.client = client
        self.channel = channel
        self.count = count
        self.list_id = list_id
        self.sampler = sampler
        self._running = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def select_bookmarks(self) -> List[Bookmark]:
        """Fetch the configured collection and pick ``count`` at random."""
        logger.info(
            "Requesting %d random bookmarks%s",
            self.count,
            f" from list {self.list_id}" if self.list_id else "",
        )
        bookmarks = self.client.fetch_all(self.list_id)
        selected = self.sampler(bookmarks, self.count)
        logger.info("Retrieved %d bookmarks", len(selected))
        return selected

    def run(self) -> DispatchResult:
        """Execute one notification cycle; never raises."""
        if not self._running.acquire(blocking=False):
            logger.warning("Notification already in progress; skipping this trigger.")
            return DispatchResult(status=STATUS_SKIPPED, error="already running")

        try:
            logger.info(
                "Starting bookmark notification via %s", self.channel.method.value
            )
            try:
                bookmarks = self.select_bookmarks()
            except Exception as exc:  # noqa: BLE001
                logger.exception("Failed to fetch bookmarks from Hoarder.")
                return DispatchResult(status=STATUS_FAILED, error=str(exc))

            if not bookmarks:
                logger.info("No bookmarks available to send")
                return DispatchResult(status=STATUS_EMPTY)

            for index, bookmark in enumerate(bookmarks, start=1):
                logger.debug(
                    "Bookmark %d: id=%s title=%r url=%s tags=%s",
                    index,
                    bookmark.id,
                    bookmark.title,
                    bookmark.url or "No URL",
                    list(bookmark.tags),
                )

            try:
                self.channel.deliver(bookmarks)
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "Failed to deliver bookmarks via %s", self.channel.method.value
                )
                return DispatchResult(
                    status=STATUS_FAILED, bookmarks=bookmarks, error=str(exc)
                )

            logger.info(
                "Successfully sent %d bookmarks via %s",
                len(bookmarks),
                self.channel.method.value,
            )
            return DispatchResult(status=STATUS_SENT, bookmarks=bookmarks)
        finally:
            self._running.release()

    def trigger_now(self) -> DispatchResult:
        """Run a cycle immediately, outside the schedule."""
        logger.info("Triggering immediate notification send")
        return self.run()
