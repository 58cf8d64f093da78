"""
Chunking utilities.

Goal: split a list of records into backend-sized batches so that one write
never exceeds the backend's request limits.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 30


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """
    Split `items` into consecutive, non-overlapping chunks of at most `size`.

    Order is preserved and every item lands in exactly one chunk; only the
    last chunk may be shorter than `size`.
    """
    if size <= 0:
        raise ValueError("size must be > 0")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
