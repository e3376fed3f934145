"""Random selection of bookmarks."""

from __future__ import annotations

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def sample(items: Sequence[T], n: int, rng: Optional[random.Random] = None) -> List[T]:
    """Return ``min(n, len(items))`` distinct items in random order.

    The whole collection is shuffled with Fisher-Yates and truncated, so every
    subset of the requested size is equally likely. ``items`` is not modified.
    """
    if n <= 0 or not items:
        return []

    source = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = source.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[:n]
