"""
Pagination windows over ordered catalog results.

The paginator never orders anything itself; it slices whatever the catalog
returned and reports how the slice relates to the full result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from sonority.core import InvalidWindowError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Window:
    """A requested (index, count) slice. Both values must be >= 0."""

    index: int
    count: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise InvalidWindowError(f"index must be >= 0, got {self.index}")
        if self.count < 0:
            raise InvalidWindowError(f"count must be >= 0, got {self.count}")


@dataclass(frozen=True, slots=True)
class PageResult(Generic[T]):
    """
    One page of an ordered result.

    `offset` echoes the requested index; `total` is the size of the full
    result, independent of the window.
    """

    items: tuple[T, ...]
    offset: int
    total: int

    @property
    def returned_count(self) -> int:
        return len(self.items)


def window(items: Sequence[T], index: int, count: int) -> PageResult[T]:
    """
    Slice `items` to the requested window.

    An index past the end yields an empty page (not an error); the end bound
    is clamped to the sequence length.

    Raises:
        InvalidWindowError: if index or count is negative.
    """
    requested = Window(index, count)

    total = len(items)
    start = min(requested.index, total)
    end = min(start + requested.count, total)

    return PageResult(items=tuple(items[start:end]), offset=requested.index, total=total)
