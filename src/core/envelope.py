"""Response envelope builders and fire-and-forget API call logging.

Every API response body has the shape::

    {"success": bool, "message": str, "data"?: ..., "meta"?: {...}, "error"?: {...}}

``meta`` carries pagination (page, limit, total, totalPages, hasNext, hasPrev)
and ``totalPages`` is always recomputed from ``total`` and ``limit``.
"""
from __future__ import annotations

import enum
import logging
import math
from typing import Any

from django.conf import settings
from django.db import transaction
from rest_framework import status as http_status
from rest_framework.response import Response

logger = logging.getLogger("vmax")


class ErrorCode(str, enum.Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    BAD_REQUEST = "BAD_REQUEST"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


ERROR_STATUS = {
    ErrorCode.VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,
    ErrorCode.BAD_REQUEST: http_status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    ErrorCode.RATE_LIMIT_EXCEEDED: http_status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.INTERNAL_SERVER_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}

DEFAULT_MESSAGES = {
    ErrorCode.VALIDATION_ERROR: "Validation failed",
    ErrorCode.BAD_REQUEST: "Bad request",
    ErrorCode.UNAUTHORIZED: "Authentication required",
    ErrorCode.FORBIDDEN: "You do not have permission to perform this action",
    ErrorCode.NOT_FOUND: "Resource not found",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many requests",
    ErrorCode.INTERNAL_SERVER_ERROR: "Internal server error",
}


def total_pages(total: int, limit: int) -> int:
    if limit <= 0 or total <= 0:
        return 0
    return math.ceil(total / limit)


def build_meta(meta: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return a copy of ``meta`` with ``totalPages`` derived from total/limit."""
    if meta is None:
        return None
    result = dict(meta)
    total = result.get("total")
    limit = result.get("limit")
    if total is not None and limit is not None:
        result["totalPages"] = total_pages(int(total), int(limit))
    return result


def success_payload(
    data: Any = None,
    message: str = "OK",
    meta: dict[str, Any] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": True, "message": message, "data": data}
    built = build_meta(meta)
    if built is not None:
        payload["meta"] = built
    payload.update(extra)
    return payload


def error_payload(
    code: ErrorCode,
    message: str | None = None,
    details: Any = None,
) -> dict[str, Any]:
    code = ErrorCode(code)
    text = message or DEFAULT_MESSAGES[code]
    error: dict[str, Any] = {"code": code.value, "message": text}
    if details is not None:
        error["details"] = details
    return {"success": False, "message": text, "error": error}


def success_response(data=None, message="OK", meta=None, status=http_status.HTTP_200_OK, **extra):
    return Response(success_payload(data, message=message, meta=meta, **extra), status=status)


def error_response(code, message=None, details=None, status=None, headers=None):
    code = ErrorCode(code)
    return Response(
        error_payload(code, message=message, details=details),
        status=status or ERROR_STATUS[code],
        headers=headers,
    )


# ---------------------------------------------------------------------------
# API call logging
# ---------------------------------------------------------------------------

def _client_ip(request) -> str | None:
    if request is None:
        return None
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


def _dispatch_audit(payload: dict[str, Any]) -> None:
    try:
        from core.tasks import record_api_call

        record_api_call.apply_async(kwargs=payload, retry=False)
    except Exception:
        logger.warning("Failed to queue audit log for %s", payload.get("action"), exc_info=True)


def log_api_call(action: str, status: int, resource_id=None, user=None, request=None) -> None:
    """Log an API call and queue its audit row; never raises."""
    try:
        if user is None:
            from core.middleware import get_current_user

            user = get_current_user()
        user_id = str(user.pk) if user is not None and getattr(user, "is_authenticated", False) else None
        logger.info(
            "api.%s status=%s",
            action,
            status,
            extra={
                "action": action,
                "status_code": status,
                "resource_id": str(resource_id) if resource_id is not None else None,
                "user_id": user_id,
            },
        )
        if not getattr(settings, "API_LOG_ACTIONS", True):
            return
        payload = {
            "action": action,
            "status_code": int(status),
            "entity_id": str(resource_id) if resource_id is not None else "",
            "actor_id": user_id,
            "ip_address": _client_ip(request),
        }
        transaction.on_commit(lambda: _dispatch_audit(payload))
    except Exception:
        logger.warning("API call logging failed for %s", action, exc_info=True)
