"""Client for the Hoarder bookmark API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import requests

from .models import Bookmark, BookmarkList

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
UNTITLED = "Untitled Bookmark"


class HoarderAPIError(RuntimeError):
    """Raised when the Hoarder API cannot be reached or answers with an error."""


@dataclass
class Page:
    """One decoded response: raw records plus the cursor for the next request."""

    items: List[dict]
    next_cursor: Optional[str] = None


# Each decoder returns a Page when it recognises the payload shape, else None.
Decoder = Callable[[Any, str], Optional[Page]]


def _decode_array(data: Any, key: str) -> Optional[Page]:
    if isinstance(data, list):
        return Page(items=[item for item in data if isinstance(item, dict)])
    return None


def _decode_envelope(data: Any, key: str) -> Optional[Page]:
    if isinstance(data, dict) and isinstance(data.get(key), list):
        items = [item for item in data[key] if isinstance(item, dict)]
        return Page(items=items, next_cursor=data.get("nextCursor") or None)
    return None


def _decode_single(data: Any, key: str) -> Optional[Page]:
    if isinstance(data, dict) and data:
        return Page(items=[data])
    return None


DECODERS: Tuple[Decoder, ...] = (_decode_array, _decode_envelope, _decode_single)


def decode_page(data: Any, key: str = "bookmarks") -> Page:
    """Decode a bare array, an envelope keyed by ``key``, or a single object."""
    for decoder in DECODERS:
        page = decoder(data, key)
        if page is not None:
            return page
    return Page(items=[])


def _content_field(content: Any, name: str) -> Any:
    if isinstance(content, dict):
        return content.get(name)
    return None


def normalize_bookmark(raw: dict) -> Bookmark:
    """Convert an upstream bookmark record into a Bookmark."""
    content = raw.get("content") or {}

    url = _content_field(content, "url") or ""
    title = _content_field(content, "title") or raw.get("title") or UNTITLED
    description = (
        _content_field(content, "description")
        or raw.get("summary")
        or raw.get("note")
        or ""
    )

    tags = []
    for tag in raw.get("tags") or []:
        name = tag.get("name") if isinstance(tag, dict) else tag
        if name:
            tags.append(str(name))

    return Bookmark(
        id=str(raw.get("id", "")),
        url=url,
        title=title,
        description=description,
        tags=tuple(tags),
        created_at=raw.get("createdAt") or "",
        updated_at=raw.get("modifiedAt") or "",
    )


def normalize_list(raw: dict) -> BookmarkList:
    """Convert an upstream list record into a BookmarkList."""
    return BookmarkList(
        id=str(raw.get("id", "")),
        name=raw.get("name") or "",
        description=raw.get("description") or "",
        created_at=raw.get("createdAt") or "",
        updated_at=raw.get("modifiedAt") or "",
    )


class HoarderClient:
    """Synchronous client for the subset of the Hoarder API used here."""

    def __init__(
        self,
        server_url: str,
        api_key: str,
        *,
        only_unarchived: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = f"{server_url.rstrip('/')}/api/v1"
        self.only_unarchived = only_unarchived
        self.page_size = page_size
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise HoarderAPIError(f"Request to {path} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise HoarderAPIError(f"Response from {path} is not valid JSON") from exc

    def _paginate(self, path: str, extra_params: Optional[dict] = None) -> List[dict]:
        records: List[dict] = []
        cursor: Optional[str] = None
        while True:
            params = {"limit": self.page_size}
            if cursor:
                params["cursor"] = cursor
            if extra_params:
                params.update(extra_params)

            page = decode_page(self._get(path, params=params), key="bookmarks")
            records.extend(page.items)
            logger.debug("Fetched page of %d bookmarks from %s", len(page.items), path)

            if not page.next_cursor:
                break
            cursor = page.next_cursor
        return records

    def fetch_all(self, list_id: Optional[str] = None) -> List[Bookmark]:
        """Fetch every bookmark, or every bookmark in ``list_id``."""
        if list_id:
            records = self._paginate(f"/lists/{list_id}/bookmarks")
        else:
            extra = {"archived": "false"} if self.only_unarchived else None
            records = self._paginate("/bookmarks", extra)

        if self.only_unarchived:
            records = [record for record in records if not record.get("archived")]

        bookmarks = [normalize_bookmark(record) for record in records]
        if list_id:
            logger.info("Fetched %d bookmarks from list %s", len(bookmarks), list_id)
        else:
            logger.info("Fetched %d total bookmarks", len(bookmarks))
        return bookmarks

    def fetch_lists(self) -> List[BookmarkList]:
        """Return every list defined on the server."""
        page = decode_page(self._get("/lists"), key="lists")
        return [normalize_list(record) for record in page.items]

    def fetch_list(self, list_id: str) -> BookmarkList:
        """Return a single list by id."""
        data = self._get(f"/lists/{list_id}")
        if not isinstance(data, dict) or not data:
            raise HoarderAPIError(f"List not found: {list_id}")
        return normalize_list(data)
