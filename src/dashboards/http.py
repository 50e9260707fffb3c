"""HTTP client for the Vmax Sales API used by the dashboards."""
from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger("vmax.dashboards")

DEFAULT_TIMEOUT = 10.0


class ApiClientError(Exception):
    """A failed API call, carrying the envelope's error code when there is one."""

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None, details=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class VmaxApiClient:
    """Thin synchronous wrapper over :class:`httpx.Client`.

    Every call returns the decoded response envelope; ``success: false`` or
    a non-2xx status raises :class:`ApiClientError`.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, path: str, params=None, json: Any = None) -> dict[str, Any]:
        try:
            response = self._client.request(method, path.lstrip("/"), params=params, json=json)
        except httpx.TimeoutException as exc:
            raise ApiClientError("Request timed out", code="TIMEOUT") from exc
        except httpx.HTTPError as exc:
            raise ApiClientError(f"Connection error: {exc}", code="CONNECTION_ERROR") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiClientError(
                "Invalid response from server", code="BAD_RESPONSE", status_code=response.status_code
            ) from exc

        if response.is_error or not isinstance(payload, dict) or not payload.get("success", False):
            error = (payload.get("error") if isinstance(payload, dict) else None) or {}
            message = error.get("message") or (payload.get("message") if isinstance(payload, dict) else None)
            raise ApiClientError(
                message or f"Request failed with status {response.status_code}",
                code=error.get("code"),
                status_code=response.status_code,
                details=error.get("details"),
            )
        return payload

    def list(self, resource: str, params=None) -> dict[str, Any]:
        return self.request("GET", resource, params=params)

    def get(self, path: str, params=None) -> dict[str, Any]:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> dict[str, Any]:
        return self.request("POST", path, json=json)

    def patch(self, path: str, json: Any = None) -> dict[str, Any]:
        return self.request("PATCH", path, json=json)
