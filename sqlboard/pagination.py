from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


def _as_int(value: Any, default: int) -> int:
    """Lenient integer parse: 3, 3.7, "3" and " 3 " are all 3; junk -> default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(str(value).strip()))
        except (ValueError, OverflowError):
            return default


def normalize_page(page: Any) -> int:
    return max(1, _as_int(page, 1))


def normalize_page_size(
    page_size: Any,
    *,
    default: int = DEFAULT_PAGE_SIZE,
    max_size: int = MAX_PAGE_SIZE,
) -> int:
    return min(max_size, max(1, _as_int(page_size, default)))


@dataclass(frozen=True)
class PageWindow:
    """A clamped (page, page_size) pair and the row offset it starts at."""

    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @classmethod
    def from_request(
        cls,
        page: Any,
        page_size: Any,
        *,
        default_size: int = DEFAULT_PAGE_SIZE,
        max_size: int = MAX_PAGE_SIZE,
    ) -> "PageWindow":
        return cls(
            page=normalize_page(page),
            page_size=normalize_page_size(
                page_size, default=default_size, max_size=max_size
            ),
        )

    def slice(self, rows: list) -> list:
        return rows[self.offset : self.offset + self.page_size]
