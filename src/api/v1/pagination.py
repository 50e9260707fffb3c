"""Pagination utilities for API v1.

``page``/``limit`` in, ``{page, limit, total, totalPages, hasNext, hasPrev}``
out. A page past the end yields an empty ``data`` list, never a 404.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from core.envelope import success_payload, total_pages


def _default_limit() -> int:
    return getattr(settings, "PAGINATION_DEFAULT_LIMIT", 25)


def _max_limit() -> int:
    return getattr(settings, "PAGINATION_MAX_LIMIT", 200)


def _to_int(value) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_page_params(page, limit, default_limit: int | None = None, max_limit: int | None = None) -> tuple[int, int]:
    """Return a valid ``(page, limit)`` pair from raw query values."""
    default_limit = default_limit or _default_limit()
    max_limit = max_limit or _max_limit()

    page_number = _to_int(page)
    if page_number is None or page_number < 1:
        page_number = 1

    size = _to_int(limit)
    if size is None:
        size = default_limit
    size = max(1, min(size, max_limit))
    return page_number, size


def compute_page_meta(page: int, limit: int, total: int) -> dict:
    pages = total_pages(total, limit)
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": pages,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


class EnvelopePagination(BasePagination):
    """Offset pagination rendered into the response envelope.

    Views may set ``envelope_key`` (e.g. ``"deals"``) to also expose the rows
    under that legacy top-level key alongside ``total``.
    """

    page_query_param = "page"
    limit_query_param = "limit"
    legacy_limit_query_param = "page_size"

    def paginate_queryset(self, queryset, request, view=None):
        params = request.query_params
        raw_limit = params.get(self.limit_query_param, params.get(self.legacy_limit_query_param))
        self.page, self.limit = parse_page_params(params.get(self.page_query_param), raw_limit)
        self.total = len(queryset) if isinstance(queryset, list) else queryset.count()
        self.envelope_key = getattr(view, "envelope_key", None)

        offset = (self.page - 1) * self.limit
        return list(queryset[offset:offset + self.limit])

    def get_meta(self) -> dict:
        return compute_page_meta(self.page, self.limit, self.total)

    def get_paginated_response(self, data):
        extra = {}
        if self.envelope_key:
            extra[self.envelope_key] = data
            extra["total"] = self.total
        return Response(success_payload(data, meta=self.get_meta(), **extra))

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "message": {"type": "string"},
                "data": schema,
                "meta": {"type": "object"},
            },
        }
