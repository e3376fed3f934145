"""Shared data models for hoarder_sender."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class Bookmark:
    """Normalized bookmark used throughout the app."""

    id: str
    url: str
    title: str
    description: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class BookmarkList:
    """A named grouping of bookmarks on the Hoarder server."""

    id: str
    name: str
    description: str = ""
    created_at: str = ""
    updated_at: str = ""
