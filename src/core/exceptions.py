"""DRF exception handler producing error envelopes."""
from __future__ import annotations

import logging
import traceback

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import exceptions
from rest_framework.views import exception_handler as drf_exception_handler

from core.envelope import ErrorCode, error_response

logger = logging.getLogger("vmax")


def flatten_validation_errors(detail, prefix: str = "") -> list[dict[str, str]]:
    """Turn DRF's nested error detail into a list of ``{field, message}``."""
    errors: list[dict[str, str]] = []
    if isinstance(detail, dict):
        for key, value in detail.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            if key == "non_field_errors" and not prefix:
                field = "non_field_errors"
            errors.extend(flatten_validation_errors(value, field))
    elif isinstance(detail, (list, tuple)):
        for index, item in enumerate(detail):
            if isinstance(item, (dict, list, tuple)):
                errors.extend(flatten_validation_errors(item, f"{prefix}[{index}]" if prefix else str(index)))
            else:
                errors.append({"field": prefix or "non_field_errors", "message": str(item)})
    else:
        errors.append({"field": prefix or "non_field_errors", "message": str(detail)})
    return errors


def _first_message(details: list[dict[str, str]]) -> str:
    if not details:
        return "Validation failed"
    first = details[0]
    if first["field"] == "non_field_errors":
        return first["message"]
    return f"{first['field']}: {first['message']}"


def envelope_exception_handler(exc, context):
    """Map any exception raised in a view to the error envelope."""
    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(
            exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        )
    elif isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.error(
            "Unhandled error in %s",
            view.__class__.__name__ if view is not None else "view",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        details = None
        if settings.DEBUG:
            details = {"exception": repr(exc), "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__)}
        return error_response(ErrorCode.INTERNAL_SERVER_ERROR, details=details)

    headers = {}
    for header in ("WWW-Authenticate", "Retry-After"):
        if header in response:
            headers[header] = response[header]

    if isinstance(exc, exceptions.ValidationError):
        details = flatten_validation_errors(exc.detail)
        return error_response(
            ErrorCode.VALIDATION_ERROR,
            message=_first_message(details),
            details=details,
            headers=headers,
        )
    if isinstance(exc, exceptions.Throttled):
        return error_response(
            ErrorCode.RATE_LIMIT_EXCEEDED,
            message=str(exc.detail),
            details={"retryAfter": exc.wait and int(exc.wait)},
            headers=headers,
        )
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        code = ErrorCode.UNAUTHORIZED
    elif isinstance(exc, exceptions.PermissionDenied):
        code = ErrorCode.FORBIDDEN
    elif isinstance(exc, exceptions.NotFound):
        code = ErrorCode.NOT_FOUND
    elif response.status_code >= 500:
        code = ErrorCode.INTERNAL_SERVER_ERROR
    else:
        code = ErrorCode.BAD_REQUEST

    detail = getattr(exc, "detail", None)
    message = str(detail) if isinstance(detail, str) else None
    return error_response(code, message=message, status=response.status_code, headers=headers)
