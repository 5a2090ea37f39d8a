"""
Ownership of the original and working buffers of one edit session.
"""

from __future__ import annotations

import logging
import threading

from .buffer import PixelBuffer
from .filters import FilterKind

LOG = logging.getLogger(__name__)


class ImageBufferStore:
    """
    Hold the baseline (``original``) and displayed (``working``) buffers.

    Committed buffers are never mutated again; every edit builds a candidate
    buffer and swaps it in.  All commits check liveness first so results of an
    operation that finishes after :meth:`close` are dropped.
    """

    def __init__(self, source: PixelBuffer) -> None:
        self._lock = threading.RLock()
        self._original = source.copy()
        self._working = self._original.copy()
        self._active_filter = FilterKind.NONE
        self._generation = 0
        self._alive = True

    @property
    def original(self) -> PixelBuffer:
        with self._lock:
            return self._original

    @property
    def working(self) -> PixelBuffer:
        with self._lock:
            return self._working

    @property
    def active_filter(self) -> FilterKind:
        with self._lock:
            return self._active_filter

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def is_alive(self) -> bool:
        with self._lock:
            return self._alive

    def commit_working(self, buffer: PixelBuffer, *, active_filter: FilterKind | None = None) -> bool:
        with self._lock:
            if not self._alive:
                LOG.debug("Store closed; discarding working buffer %r.", buffer)
                return False
            self._working = buffer
            if active_filter is not None:
                self._active_filter = active_filter
            return True

    def commit_generation(self, buffer: PixelBuffer) -> bool:
        """
        Make ``buffer`` both the working buffer and the new baseline.
        """

        with self._lock:
            if not self._alive:
                LOG.debug("Store closed; discarding new generation %r.", buffer)
                return False
            self._working = buffer
            self._original = buffer.copy()
            self._generation += 1
            return True

    def restore_original(self) -> bool:
        with self._lock:
            if not self._alive:
                return False
            self._working = self._original.copy()
            self._active_filter = FilterKind.NONE
            return True

    def close(self) -> bool:
        with self._lock:
            if not self._alive:
                return False
            self._alive = False
            return True
