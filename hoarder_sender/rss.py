"""In-memory RSS feed of the most recently selected bookmarks."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Tuple

from .models import Bookmark
from .templating import get_environment

logger = logging.getLogger(__name__)

FEED_TITLE = "Hoarder Random RSS"
FEED_DESCRIPTION = "Your random bookmarks from Hoarder"
FEED_GENERATOR = "Hoarder Random Bookmark Sender"


@dataclass(frozen=True)
class FeedSnapshot:
    """Bookmarks selected by one run, stamped with the time they were chosen."""

    bookmarks: Tuple[Bookmark, ...]
    generated_at: datetime


class FeedCache:
    """Holds the current snapshot; writers swap in a whole new one."""

    def __init__(self) -> None:
        self._snapshot: Optional[FeedSnapshot] = None
        self._lock = threading.Lock()

    def current(self) -> Optional[FeedSnapshot]:
        return self._snapshot

    def publish(
        self, bookmarks: Iterable[Bookmark], generated_at: Optional[datetime] = None
    ) -> FeedSnapshot:
        snapshot = FeedSnapshot(
            bookmarks=tuple(bookmarks),
            generated_at=generated_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            "RSS cache updated with %d bookmarks at %s",
            len(snapshot.bookmarks),
            snapshot.generated_at.isoformat(),
        )
        return snapshot

    def publish_if_empty(
        self, factory: Callable[[], Iterable[Bookmark]]
    ) -> FeedSnapshot:
        """Return the current snapshot, building one from ``factory()`` if absent."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                logger.info("No RSS cache found, generating initial feed...")
                self._snapshot = FeedSnapshot(
                    bookmarks=tuple(factory()),
                    generated_at=datetime.now(timezone.utc),
                )
            return self._snapshot


def _item_description(bookmark: Bookmark) -> str:
    description = bookmark.description or ""
    if bookmark.tags:
        description += f"\n\nTags: {', '.join(bookmark.tags)}"
    return description


def build_feed_xml(snapshot: FeedSnapshot, feed_url: str) -> str:
    """Render ``snapshot`` as an RSS 2.0 document.

    Every date in the document is the snapshot's generation time, so the
    output only changes when a new snapshot is published. An empty snapshot
    renders a single "No Bookmarks Available" item rather than an empty
    channel, so readers show why nothing arrived.
    """
    if snapshot.bookmarks:
        items = [
            {
                "title": bookmark.title or "Untitled Bookmark",
                "link": bookmark.url or "No URL",
                "guid": bookmark.id,
                "description": _item_description(bookmark),
            }
            for bookmark in snapshot.bookmarks
        ]
    else:
        items = [
            {
                "title": "No Bookmarks Available",
                "link": feed_url.rsplit("/rss/", 1)[0],
                "guid": "no-bookmarks",
                "description": (
                    "No bookmarks found. Please check your Hoarder API configuration."
                ),
            }
        ]

    template = get_environment().get_template("feed.xml.j2")
    return template.render(
        title=FEED_TITLE,
        description=FEED_DESCRIPTION,
        generator=FEED_GENERATOR,
        feed_url=feed_url,
        generated_at=snapshot.generated_at,
        items=items,
    )
