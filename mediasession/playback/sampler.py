"""
Cancellable periodic sampling of engine position and buffer level.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

LOG = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.5
JOIN_TIMEOUT = 1.0


class PositionSampler:
    """
    Run ``tick`` on a daemon thread every ``interval`` seconds.

    Each start gets its own stop event so a thread left over from a previous
    attachment can never outlive :meth:`stop`.  ``tick`` runs once immediately
    on start, then after every interval.
    """

    def __init__(
        self,
        tick: Callable[[], object],
        *,
        interval: float = DEFAULT_INTERVAL,
        name: str = "mediasession-sampler",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._tick = tick
        self.interval = float(interval)
        self.name = name
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop: Optional[threading.Event] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return False
            stop = threading.Event()
            thread = threading.Thread(target=self._run, args=(stop,), name=self.name, daemon=True)
            self._stop = stop
            self._thread = thread
        thread.start()
        LOG.debug("Sampler %s started (interval %.3fs).", self.name, self.interval)
        return True

    def stop(self) -> bool:
        with self._lock:
            thread, stop = self._thread, self._stop
            self._thread = None
            self._stop = None
        if stop is None:
            return False
        stop.set()
        if thread is not None and thread.is_alive() and threading.current_thread() is not thread:
            thread.join(timeout=JOIN_TIMEOUT)
            if thread.is_alive():
                LOG.warning("Sampler %s did not stop within %.1fs.", self.name, JOIN_TIMEOUT)
        LOG.debug("Sampler %s stopped.", self.name)
        return True

    def _run(self, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                self._tick()
            except Exception:
                LOG.exception("Sampler %s tick failed.", self.name)
            if stop.wait(self.interval):
                break
