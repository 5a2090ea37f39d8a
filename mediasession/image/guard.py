"""
Single-writer gate for buffer-mutating operations.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

LOG = logging.getLogger(__name__)


class ProcessingGuard:
    """
    Non-blocking exclusion around one in-flight buffer operation.

    ``hold`` yields ``True`` when the caller owns the guard and ``False`` when
    another operation is already running; the overlapping call is expected to
    return without touching any buffer.  ``on_change`` receives the new
    processing flag on every transition.
    """

    def __init__(self, on_change: Optional[Callable[[bool], None]] = None, *, name: str = "image") -> None:
        self._lock = threading.Lock()
        self._on_change = on_change
        self.name = name

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, operation: str) -> Iterator[bool]:
        if not self._lock.acquire(blocking=False):
            LOG.warning("Rejecting %s on %s: another buffer operation is in flight.", operation, self.name)
            yield False
            return
        self._changed(True)
        try:
            yield True
        finally:
            self._lock.release()
            self._changed(False)

    def _changed(self, processing: bool) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(processing)
        except Exception:  # pragma: no cover - observer failures must not leak into edits
            LOG.exception("Processing observer on %s failed.", self.name)
