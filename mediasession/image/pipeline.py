"""
Buffer-mutating operations for one image edit session.

Filters always start from the original buffer, so applying a second filter
replaces the first.  Brightness and contrast start from the working buffer and
therefore compose.  Crop starts a new edit generation: the cropped buffer
becomes the new original.  Rotation replaces the working buffer only.

Every operation returns ``True`` when it changed state.  Preconditions raise
:class:`~mediasession.errors.InvalidArgumentError` before any backend call.
Backend failures, overlapping calls and calls on a closed store return
``False`` and leave everything as it was.
"""

from __future__ import annotations

import logging
import math
import numbers
from typing import Callable, Optional, Union

from ..errors import InvalidArgumentError
from .backend import FilterBackend
from .buffer import PixelBuffer, require_editable, validate_crop
from .filters import FilterKind
from .guard import ProcessingGuard
from .store import ImageBufferStore
from .transform import TransformStack

LOG = logging.getLogger(__name__)

MIN_BRIGHTNESS = -255
MAX_BRIGHTNESS = 255
MIN_CONTRAST = 0.0
MAX_CONTRAST = 2.0


class FilterPipeline:
    def __init__(
        self,
        store: ImageBufferStore,
        backend: FilterBackend,
        guard: ProcessingGuard,
        transform: TransformStack,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.backend = backend
        self.guard = guard
        self.transform = transform
        self.logger = logger or LOG

    # ------------------------------------------------------------------ helpers

    def _run(self, operation: str, call: Callable[..., object], *args) -> object:
        try:
            result = call(*args)
        except InvalidArgumentError:
            raise
        except Exception:
            self.logger.exception("Backend %s raised; keeping current buffers.", operation)
            return None
        if result is None or result is False:
            self.logger.warning("Backend %s failed; keeping current buffers.", operation)
            return None
        return result

    def _filter_call(self, kind: FilterKind) -> Callable[[PixelBuffer], bool]:
        return {
            FilterKind.GRAYSCALE: self.backend.apply_grayscale,
            FilterKind.SEPIA: self.backend.apply_sepia,
            FilterKind.INVERT: self.backend.apply_invert,
        }[kind]

    def _closed(self, operation: str) -> bool:
        if self.store.is_alive:
            return False
        self.logger.debug("Ignoring %s on closed session.", operation)
        return True

    # ------------------------------------------------------------------ filters

    def apply_filter(self, kind: Union[FilterKind, str]) -> bool:
        kind = FilterKind.parse(kind)
        if self._closed("apply_filter"):
            return False
        require_editable(self.store.working)
        with self.guard.hold(f"apply_filter({kind.value})") as acquired:
            if not acquired:
                return False
            candidate = self.store.original.copy()
            if kind is not FilterKind.NONE:
                if self._run(f"filter {kind.value}", self._filter_call(kind), candidate) is None:
                    return False
            return self.store.commit_working(candidate, active_filter=kind)

    def adjust_brightness(self, factor: int) -> bool:
        if isinstance(factor, bool) or not isinstance(factor, numbers.Integral):
            if isinstance(factor, float) and factor.is_integer():
                factor = int(factor)
            else:
                raise InvalidArgumentError(f"brightness factor must be an integer, got {factor!r}")
        factor = int(factor)
        if not MIN_BRIGHTNESS <= factor <= MAX_BRIGHTNESS:
            raise InvalidArgumentError(
                f"brightness factor {factor} outside [{MIN_BRIGHTNESS}, {MAX_BRIGHTNESS}]"
            )
        if self._closed("adjust_brightness"):
            return False
        require_editable(self.store.working)
        with self.guard.hold("adjust_brightness") as acquired:
            if not acquired:
                return False
            candidate = self.store.working.copy()
            if self._run("brightness", self.backend.adjust_brightness, candidate, factor) is None:
                return False
            return self.store.commit_working(candidate)

    def adjust_contrast(self, factor: float) -> bool:
        try:
            factor = float(factor)
        except (TypeError, ValueError):
            raise InvalidArgumentError(f"contrast factor must be a number, got {factor!r}") from None
        if math.isnan(factor) or not MIN_CONTRAST <= factor <= MAX_CONTRAST:
            raise InvalidArgumentError(f"contrast factor {factor} outside [{MIN_CONTRAST}, {MAX_CONTRAST}]")
        if self._closed("adjust_contrast"):
            return False
        require_editable(self.store.working)
        with self.guard.hold("adjust_contrast") as acquired:
            if not acquired:
                return False
            candidate = self.store.working.copy()
            if self._run("contrast", self.backend.adjust_contrast, candidate, factor) is None:
                return False
            return self.store.commit_working(candidate)

    # ------------------------------------------------------------------ geometry

    def _rotate_90(self, operation: str, call: Callable[[PixelBuffer], Optional[PixelBuffer]]) -> bool:
        if self._closed(operation):
            return False
        require_editable(self.store.working)
        with self.guard.hold(operation) as acquired:
            if not acquired:
                return False
            rotated = self._run(operation, call, self.store.working)
            if rotated is None:
                return False
            return self.store.commit_working(rotated)

    def rotate_90_cw(self) -> bool:
        return self._rotate_90("rotate_90_cw", self.backend.rotate_90_cw)

    def rotate_90_ccw(self) -> bool:
        return self._rotate_90("rotate_90_ccw", self.backend.rotate_90_ccw)

    def rotate_180(self) -> bool:
        if self._closed("rotate_180"):
            return False
        require_editable(self.store.working)
        with self.guard.hold("rotate_180") as acquired:
            if not acquired:
                return False
            candidate = self.store.working.copy()
            if self._run("rotate_180", self.backend.rotate_180, candidate) is None:
                return False
            return self.store.commit_working(candidate)

    def crop(self, x: int, y: int, width: int, height: int) -> bool:
        x, y, width, height = (int(value) for value in (x, y, width, height))
        working = self.store.working
        validate_crop(working, x, y, width, height)
        if self._closed("crop"):
            return False
        require_editable(working)
        with self.guard.hold("crop") as acquired:
            if not acquired:
                return False
            cropped = self._run("crop", self.backend.crop, self.store.working, x, y, width, height)
            if cropped is None:
                return False
            return self.store.commit_generation(cropped)

    def reset_to_original(self) -> bool:
        if self._closed("reset_to_original"):
            return False
        with self.guard.hold("reset_to_original") as acquired:
            if not acquired:
                return False
            if not self.store.restore_original():
                return False
            self.transform.reset()
            return True
