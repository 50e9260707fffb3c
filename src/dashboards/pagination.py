"""Client-side pagination state for list views."""
from __future__ import annotations

import math
from dataclasses import dataclass

DEFAULT_LIMIT = 25
MAX_LIMIT = 200


def clamp_limit(limit, max_limit: int = MAX_LIMIT) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_LIMIT
    return max(1, min(value, max_limit))


@dataclass
class PaginationState:
    page: int = 1
    limit: int = DEFAULT_LIMIT
    total: int = 0
    loading: bool = False

    @property
    def total_pages(self) -> int:
        if self.total <= 0 or self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def reset(self) -> None:
        self.page = 1

    def set_limit(self, limit) -> None:
        self.limit = clamp_limit(limit)
        self.page = 1

    def go_to(self, page) -> None:
        try:
            page = int(page)
        except (TypeError, ValueError):
            page = 1
        self.page = max(1, page)

    def apply_meta(self, meta: dict | None) -> None:
        """Take ``page``, ``limit`` and ``total`` from a response envelope's meta.

        A malformed meta raises ``ValueError`` and leaves the state untouched.
        """
        if not meta:
            return
        if not isinstance(meta, dict):
            raise ValueError(f"Pagination meta must be an object, not {type(meta).__name__}")
        try:
            total = max(0, int(meta.get("total") or 0))
            page = max(1, int(meta["page"])) if meta.get("page") else self.page
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"Invalid pagination meta: {meta!r}") from exc
        self.total = total
        self.page = page
        if meta.get("limit"):
            self.limit = clamp_limit(meta["limit"])
