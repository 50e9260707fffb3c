"""List-view controller shared by the deals, callbacks and targets dashboards.

The controller owns one list's filters, pagination state and rows. Filter
and page-size changes reset the page before refetching, free-text search is
debounced, and every fetch carries a request token so a slow response to an
earlier request never overwrites a newer one.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from accounts.scoping import TEAM_KEY, Scope, build_query_params, policy_for
from dashboards.http import ApiClientError
from dashboards.pagination import DEFAULT_LIMIT, PaginationState
from dashboards.polling import DEFAULT_INTERVAL_SECONDS, Poller

logger = logging.getLogger("vmax.dashboards")

SEARCH_DEBOUNCE_MS = 300


def _thread_timer(interval: float, function: Callable[[], None]):
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class ListViewController:
    def __init__(
        self,
        client,
        resource: str,
        scope: Scope,
        *,
        limit: int = DEFAULT_LIMIT,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
        timer_factory: Callable[[float, Callable[[], None]], Any] = _thread_timer,
        rows_key: str | None = None,
    ):
        self.client = client
        self.resource = resource
        self.scope = scope
        self.policy = policy_for(scope.role)
        self.rows_key = rows_key or resource
        self.filters: dict[str, Any] = {}
        self.pagination = PaginationState()
        self.pagination.set_limit(limit)
        self.rows: list[dict[str, Any]] = []
        self.error: str | None = None

        self._debounce_seconds = debounce_ms / 1000.0
        self._timer_factory = timer_factory
        self._debounce_timer = None
        self._token = 0
        self._lock = threading.Lock()
        self._closed = False
        self._poller: Poller | None = None

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    @property
    def team_filter_locked(self) -> bool:
        return self.policy.team_filter_locked

    @property
    def shows_team_filter(self) -> bool:
        return self.policy.exposes_team_filter

    def query_params(self) -> list[tuple[str, str]]:
        return build_query_params(
            self.scope,
            self.filters,
            page=self.pagination.page,
            limit=self.pagination.limit,
        )

    # ------------------------------------------------------------------
    # Filter and page changes
    # ------------------------------------------------------------------

    def set_filter(self, name: str, value) -> None:
        """Change a filter, go back to page 1 and refetch."""
        if name == "search":
            self.set_search(value)
            return
        if name == TEAM_KEY and not self.policy.exposes_team_filter:
            logger.debug("Ignoring %s filter for role %s", TEAM_KEY, self.scope.role)
            return
        self.filters[name] = value
        self.pagination.reset()
        self.fetch()

    def set_search(self, text) -> None:
        """Update the search text; the refetch runs after the debounce delay."""
        self.filters["search"] = text
        self.pagination.reset()
        self._cancel_debounce()
        if self._closed:
            return
        self._debounce_timer = self._timer_factory(self._debounce_seconds, self._debounced_fetch)
        self._debounce_timer.start()

    def set_limit(self, limit) -> None:
        self.pagination.set_limit(limit)
        self.fetch()

    def go_to_page(self, page) -> None:
        self.pagination.go_to(page)
        self.fetch()

    def next_page(self) -> None:
        if self.pagination.has_next:
            self.go_to_page(self.pagination.page + 1)

    def prev_page(self) -> None:
        if self.pagination.has_prev:
            self.go_to_page(self.pagination.page - 1)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def begin_fetch(self) -> int:
        with self._lock:
            self._token += 1
            self.pagination.loading = True
            return self._token

    def is_current(self, token: int) -> bool:
        return not self._closed and token == self._token

    def _unpack(self, envelope) -> tuple[list[dict[str, Any]], dict | None]:
        if not isinstance(envelope, dict):
            raise ValueError(f"Expected a JSON object, got {type(envelope).__name__}")
        data = envelope.get("data")
        if data is None:
            data = envelope.get(self.rows_key) or []
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of {self.resource}, got {type(data).__name__}")
        meta = envelope.get("meta")
        if meta is None and "total" in envelope:
            meta = {"total": envelope["total"]}
        return data, meta

    def apply_response(self, token: int, envelope: dict[str, Any]) -> bool:
        """Apply a list envelope if ``token`` is still the latest request.

        A malformed envelope is recorded as an error and keeps the current rows.
        """
        with self._lock:
            if not self.is_current(token):
                return False
            try:
                rows, meta = self._unpack(envelope)
                self.pagination.apply_meta(meta)
            except ValueError as exc:
                logger.warning("Malformed %s response: %s", self.resource, exc)
                self.error = "Received an invalid response from the server"
                return True
            finally:
                self.pagination.loading = False
            self.rows = rows
            self.error = None
            return True

    def apply_error(self, token: int, exc: Exception) -> bool:
        """Record a failure; previously loaded rows stay in place."""
        with self._lock:
            if not self.is_current(token):
                return False
            self.error = getattr(exc, "message", None) or str(exc) or "Failed to load data"
            self.pagination.loading = False
            return True

    def fetch(self) -> bool:
        if self._closed:
            return False
        token = self.begin_fetch()
        try:
            envelope = self.client.list(self.resource, params=self.query_params())
        except ApiClientError as exc:
            logger.warning("Failed to load %s: %s", self.resource, exc.message)
            return self.apply_error(token, exc)
        return self.apply_response(token, envelope)

    def refresh(self) -> bool:
        return self.fetch()

    def start_polling(self, interval: float = DEFAULT_INTERVAL_SECONDS) -> Poller | None:
        """Refetch the current page every ``interval`` seconds until closed."""
        if self._closed:
            return None
        if self._poller is None:
            self._poller = Poller(self.refresh, interval, name=f"poll-{self.resource}")
        self._poller.start()
        return self._poller

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _debounced_fetch(self) -> None:
        self._debounce_timer = None
        self.fetch()

    def _cancel_debounce(self) -> None:
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None

    def close(self) -> None:
        """Cancel the pending search, stop polling and ignore any in-flight response."""
        with self._lock:
            self._closed = True
            self.pagination.loading = False
        self._cancel_debounce()
        if self._poller is not None:
            self._poller.stop(timeout=1.0)
