"""
Presentation transform for the image viewer.

The transform only affects how the working buffer is displayed; it never
touches pixels.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, replace
from typing import Dict

from ..errors import InvalidArgumentError

DEFAULT_MIN_SCALE = 0.5
DEFAULT_MAX_SCALE = 5.0
DEFAULT_DOUBLE_TAP_SCALE = 2.5
TAP_OFFSET_FACTOR = 1.5


@dataclass(frozen=True)
class TransformState:
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    rotation_deg: float = 0.0

    @property
    def is_identity(self) -> bool:
        return self == IDENTITY

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


IDENTITY = TransformState()


class TransformStack:
    """
    Scale, offset and rotation for one viewer, with scale kept in range.
    """

    def __init__(
        self,
        *,
        min_scale: float = DEFAULT_MIN_SCALE,
        max_scale: float = DEFAULT_MAX_SCALE,
        double_tap_scale: float = DEFAULT_DOUBLE_TAP_SCALE,
        allow_rotation: bool = False,
    ) -> None:
        if min_scale <= 0 or min_scale > max_scale:
            raise InvalidArgumentError(f"invalid scale limits [{min_scale}, {max_scale}]")
        self.min_scale = float(min_scale)
        self.max_scale = float(max_scale)
        self.double_tap_scale = self._clamp(float(double_tap_scale))
        self.allow_rotation = allow_rotation
        self._lock = threading.Lock()
        self._state = IDENTITY

    @property
    def state(self) -> TransformState:
        with self._lock:
            return self._state

    def _clamp(self, scale: float) -> float:
        return max(self.min_scale, min(scale, self.max_scale))

    def reset(self) -> TransformState:
        with self._lock:
            self._state = IDENTITY
            return self._state

    def set_scale(self, scale: float) -> TransformState:
        with self._lock:
            self._state = replace(self._state, scale=self._clamp(float(scale)))
            return self._state

    def set_offset(self, offset_x: float, offset_y: float) -> TransformState:
        with self._lock:
            self._state = replace(self._state, offset_x=float(offset_x), offset_y=float(offset_y))
            return self._state

    def apply_gesture(
        self,
        pan_x: float = 0.0,
        pan_y: float = 0.0,
        zoom: float = 1.0,
        rotation: float = 0.0,
    ) -> TransformState:
        """
        Fold one transform gesture step into the state.

        ``zoom`` multiplies the scale, pans accumulate into the offset.  The
        rotation delta is ignored unless the stack allows rotation.
        """

        if zoom <= 0:
            raise InvalidArgumentError("zoom must be positive")
        with self._lock:
            current = self._state
            rotation_deg = current.rotation_deg
            if self.allow_rotation:
                rotation_deg = (rotation_deg + float(rotation)) % 360.0
            self._state = TransformState(
                scale=self._clamp(current.scale * float(zoom)),
                offset_x=current.offset_x + float(pan_x),
                offset_y=current.offset_y + float(pan_y),
                rotation_deg=rotation_deg,
            )
            return self._state

    def toggle_zoom(
        self,
        tap_x: float,
        tap_y: float,
        viewport_width: float,
        viewport_height: float,
    ) -> TransformState:
        """
        Double-tap: zoom in around the tap point, or back out to identity.
        """

        with self._lock:
            if self._state.scale > 1.0:
                self._state = IDENTITY
            else:
                self._state = replace(
                    self._state,
                    scale=self.double_tap_scale,
                    offset_x=(viewport_width / 2.0 - tap_x) * TAP_OFFSET_FACTOR,
                    offset_y=(viewport_height / 2.0 - tap_y) * TAP_OFFSET_FACTOR,
                )
            return self._state
