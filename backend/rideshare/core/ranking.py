"""Deterministic ordering, capping and cursor pagination of search results."""

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


def rank(items: list[T], key: Callable[[T], float], tie_break: Callable[[T], str], limit: int) -> list[T]:
    """Sort ascending by key, equal keys by tie_break, and keep the first limit."""
    return sorted(items, key=lambda item: (key(item), tie_break(item)))[:limit]


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    next_cursor: str | None = None


def paginate(rows: list[T], limit: int, cursor_of: Callable[[T], str]) -> Page[T]:
    """Turn a fetch of up to limit + 1 rows into a page.

    The extra row, when present, is dropped and its cursor returned so the
    next page starts from it.
    """
    rows = list(rows)
    next_cursor = None
    if len(rows) > limit:
        extra = rows[limit]
        rows = rows[:limit]
        next_cursor = cursor_of(extra)
    return Page(items=rows, next_cursor=next_cursor)
