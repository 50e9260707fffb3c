"""Fixed-interval poller for dashboard and target refreshes."""
from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger("vmax.dashboards")

DEFAULT_INTERVAL_SECONDS = 30.0


class Poller:
    """Run ``task`` every ``interval`` seconds on one owned worker thread.

    ``start()`` is idempotent and ``stop()`` must be called on teardown.
    A failing run is logged and the next run keeps its schedule. Runs never
    overlap since a single thread executes them in sequence.
    """

    def __init__(self, task: Callable[[], object], interval: float = DEFAULT_INTERVAL_SECONDS, name: str = "poller"):
        if interval <= 0:
            raise ValueError("Polling interval must be positive.")
        self.task = task
        self.interval = interval
        self.name = name
        self.runs = 0
        self.failures = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, run_immediately: bool = False) -> None:
        with self._lock:
            if self.running:
                return
            self._stop = threading.Event()
            self._thread = threading.Thread(
                target=self._loop,
                args=(self._stop, run_immediately),
                name=self.name,
                daemon=True,
            )
            self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        with self._lock:
            thread = self._thread
            self._stop.set()
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def run_once(self) -> bool:
        """Run the task now; return False when it raised."""
        self.runs += 1
        try:
            self.task()
        except Exception:
            self.failures += 1
            logger.exception("Poll %s failed; retrying in %.0fs", self.name, self.interval)
            return False
        return True

    def _loop(self, stop: threading.Event, run_immediately: bool) -> None:
        if run_immediately and not stop.is_set():
            self.run_once()
        while not stop.wait(self.interval):
            self.run_once()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.stop()
