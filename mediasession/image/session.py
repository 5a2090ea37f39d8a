"""
Image edit sessions.

An :class:`ImageEditSession` owns the buffers of one edit, runs every
buffer-mutating operation through a :class:`FilterPipeline` and publishes an
immutable :class:`ImageSnapshot` after each change.  Observers use the same
token protocol as playback sessions.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import numpy as np
from PIL import Image

from ..config import SessionConfig
from ..lifecycle import HostLifecycle, LifecycleBinder, Subscription
from .backend import FilterBackend, NumpyFilterBackend
from .buffer import PixelBuffer
from .filters import FilterKind
from .guard import ProcessingGuard
from .pipeline import FilterPipeline
from .store import ImageBufferStore
from .transform import TransformStack, TransformState

LOG = logging.getLogger(__name__)

ImageSource = Union[PixelBuffer, Image.Image, np.ndarray]
ImageObserver = Callable[["ImageSnapshot"], None]


@dataclass(frozen=True)
class ImageSnapshot:
    rev: int
    generation: int
    width: int
    height: int
    active_filter: FilterKind
    transform: TransformState
    is_processing: bool
    closed: bool
    working: PixelBuffer

    def to_dict(self) -> Dict[str, object]:
        return {
            "rev": self.rev,
            "generation": self.generation,
            "width": self.width,
            "height": self.height,
            "activeFilter": self.active_filter.value,
            "transform": self.transform.to_dict(),
            "isProcessing": self.is_processing,
            "closed": self.closed,
        }


def _as_buffer(source: ImageSource) -> PixelBuffer:
    if isinstance(source, PixelBuffer):
        return source
    if isinstance(source, Image.Image):
        return PixelBuffer.from_image(source)
    return PixelBuffer(np.asarray(source))


class ImageEditSession:
    """
    One image under edit plus its viewer transform.
    """

    def __init__(
        self,
        source: ImageSource,
        *,
        backend: Optional[FilterBackend] = None,
        config: Optional[SessionConfig] = None,
        host: Optional[HostLifecycle] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.session_id = session_id or uuid.uuid4().hex
        self.logger = LOG.getChild(self.session_id[:8])
        self._lock = threading.RLock()
        self._rev = 0
        self._counter = 0
        self._observers: Dict[int, ImageObserver] = {}

        self._store = ImageBufferStore(_as_buffer(source))
        self._transform = TransformStack(
            min_scale=self.config.min_scale,
            max_scale=self.config.max_scale,
            double_tap_scale=self.config.double_tap_scale,
        )
        self._guard = ProcessingGuard(self._on_processing_changed, name=f"image {self.session_id[:8]}")
        self._pipeline = FilterPipeline(
            self._store,
            backend if backend is not None else NumpyFilterBackend(),
            self._guard,
            self._transform,
            logger=self.logger,
        )
        self._binder = LifecycleBinder(on_destroy=self.close, name=f"image {self.session_id[:8]}")
        self._snapshot = self._build_snapshot()
        if host is not None:
            self.bind_to_host(host)

    @classmethod
    def from_path(cls, path: Union[str, Path], **kwargs) -> "ImageEditSession":
        return cls(PixelBuffer.from_path(path), **kwargs)

    # ------------------------------------------------------------------ state

    @property
    def snapshot(self) -> ImageSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def working(self) -> PixelBuffer:
        return self._store.working.frozen()

    @property
    def original(self) -> PixelBuffer:
        return self._store.original.frozen()

    @property
    def active_filter(self) -> FilterKind:
        return self._store.active_filter

    @property
    def transform(self) -> TransformState:
        return self._transform.state

    @property
    def is_processing(self) -> bool:
        return self._guard.is_processing

    @property
    def is_closed(self) -> bool:
        return not self._store.is_alive

    def subscribe(self, callback: ImageObserver) -> int:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._counter += 1
            token = self._counter
            self._observers[token] = callback
            snapshot = self._snapshot
        self._deliver(token, callback, snapshot)
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._observers.pop(token, None)

    def _build_snapshot(self) -> ImageSnapshot:
        working = self._store.working
        return ImageSnapshot(
            rev=self._rev,
            generation=self._store.generation,
            width=working.width,
            height=working.height,
            active_filter=self._store.active_filter,
            transform=self._transform.state,
            is_processing=self._guard.is_processing,
            closed=not self._store.is_alive,
            working=working.frozen(),
        )

    def _publish(self) -> ImageSnapshot:
        with self._lock:
            self._rev += 1
            snapshot = self._build_snapshot()
            self._snapshot = snapshot
            observers = list(self._observers.items())
        for token, callback in observers:
            self._deliver(token, callback, snapshot)
        return snapshot

    def _deliver(self, token: int, callback: ImageObserver, snapshot: ImageSnapshot) -> None:
        try:
            callback(snapshot)
        except Exception:  # pragma: no cover - observer failures should not break edits
            self.logger.exception("Image observer %s failed.", token)

    def _on_processing_changed(self, processing: bool) -> None:
        self._publish()

    # ------------------------------------------------------------------ buffer operations

    def apply_filter(self, kind: Union[FilterKind, str]) -> bool:
        return self._pipeline.apply_filter(kind)

    def adjust_brightness(self, factor: int) -> bool:
        return self._pipeline.adjust_brightness(factor)

    def adjust_contrast(self, factor: float) -> bool:
        return self._pipeline.adjust_contrast(factor)

    def rotate_90_cw(self) -> bool:
        return self._pipeline.rotate_90_cw()

    def rotate_90_ccw(self) -> bool:
        return self._pipeline.rotate_90_ccw()

    def rotate_180(self) -> bool:
        return self._pipeline.rotate_180()

    def crop(self, x: int, y: int, width: int, height: int) -> bool:
        return self._pipeline.crop(x, y, width, height)

    def reset_to_original(self) -> bool:
        return self._pipeline.reset_to_original()

    # ------------------------------------------------------------------ viewer transform

    def _transform_op(self, operation: str, call: Callable[[], TransformState]) -> TransformState:
        if self.is_closed:
            self.logger.debug("Ignoring %s on closed session.", operation)
            return self._transform.state
        state = call()
        self._publish()
        return state

    def reset_transform(self) -> TransformState:
        return self._transform_op("reset_transform", self._transform.reset)

    def set_scale(self, scale: float) -> TransformState:
        return self._transform_op("set_scale", lambda: self._transform.set_scale(scale))

    def apply_gesture(
        self,
        pan_x: float = 0.0,
        pan_y: float = 0.0,
        zoom: float = 1.0,
        rotation: float = 0.0,
    ) -> TransformState:
        return self._transform_op(
            "apply_gesture",
            lambda: self._transform.apply_gesture(pan_x, pan_y, zoom, rotation),
        )

    def toggle_zoom(
        self,
        tap_x: float,
        tap_y: float,
        viewport_width: float,
        viewport_height: float,
    ) -> TransformState:
        return self._transform_op(
            "toggle_zoom",
            lambda: self._transform.toggle_zoom(tap_x, tap_y, viewport_width, viewport_height),
        )

    # ------------------------------------------------------------------ lifecycle

    def bind_to_host(self, host: HostLifecycle) -> Subscription:
        return self._binder.bind_to_host(host)

    def unbind(self) -> bool:
        return self._binder.unbind()

    def close(self) -> bool:
        """
        Close the session.  Operations still in flight finish but their results are discarded.
        """

        if not self._store.close():
            self.logger.debug("Image session already closed.")
            return False
        self.logger.info("Image session closed.")
        self._publish()
        self._binder.unbind()
        return True

    def __enter__(self) -> "ImageEditSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
