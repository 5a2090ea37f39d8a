"""
Pixel buffers for image editing sessions.

A :class:`PixelBuffer` wraps a ``uint8`` numpy array of shape
``(height, width, channels)``.  Editing always happens on ``RGBA_8888``
buffers (straight, not premultiplied alpha); the other formats exist so that
sources can be described and converted.  The buffer's mutability flag is the
array's ``writeable`` flag.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
from PIL import Image, ImageOps

from ..errors import InvalidArgumentError


class PixelFormat(str, Enum):
    RGBA_8888 = "RGBA_8888"
    RGB_888 = "RGB_888"
    GRAY_8 = "GRAY_8"

    @property
    def channels(self) -> int:
        return _CHANNELS[self]


_CHANNELS = {
    PixelFormat.RGBA_8888: 4,
    PixelFormat.RGB_888: 3,
    PixelFormat.GRAY_8: 1,
}
_PIL_MODES = {
    PixelFormat.RGBA_8888: "RGBA",
    PixelFormat.RGB_888: "RGB",
    PixelFormat.GRAY_8: "L",
}
_FORMAT_BY_CHANNELS = {channels: fmt for fmt, channels in _CHANNELS.items()}
_FORMAT_BY_MODE = {mode: fmt for fmt, mode in _PIL_MODES.items()}

EDIT_FORMAT = PixelFormat.RGBA_8888


class PixelBuffer:
    """
    Image pixels plus format and mutability.
    """

    __slots__ = ("_pixels", "format")

    def __init__(self, pixels: np.ndarray, pixel_format: Optional[PixelFormat] = None) -> None:
        array = np.asarray(pixels)
        if array.dtype != np.uint8:
            raise InvalidArgumentError(f"pixel data must be uint8, got {array.dtype}")
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        if array.ndim != 3:
            raise InvalidArgumentError(f"pixel data must be HxWxC, got shape {array.shape}")
        height, width, channels = array.shape
        if height <= 0 or width <= 0:
            raise InvalidArgumentError("pixel buffers must not be empty")
        inferred = _FORMAT_BY_CHANNELS.get(channels)
        if inferred is None:
            raise InvalidArgumentError(f"unsupported channel count {channels}")
        if pixel_format is not None and PixelFormat(pixel_format) is not inferred:
            raise InvalidArgumentError(
                f"{channels} channel data does not match format {PixelFormat(pixel_format).value}"
            )
        self._pixels = array
        self.format = inferred

    # ------------------------------------------------------------------ constructors

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Sequence[int] = (0, 0, 0, 255),
    ) -> "PixelBuffer":
        if width <= 0 or height <= 0:
            raise InvalidArgumentError("width and height must be positive")
        pixels = np.empty((int(height), int(width), 4), dtype=np.uint8)
        pixels[...] = np.asarray(color, dtype=np.uint8)
        return cls(pixels, PixelFormat.RGBA_8888)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        fmt = _FORMAT_BY_MODE.get(image.mode)
        if fmt is None:
            image = image.convert("RGBA")
            fmt = PixelFormat.RGBA_8888
        return cls(np.array(image, dtype=np.uint8), fmt)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "PixelBuffer":
        with Image.open(path) as image:
            image = ImageOps.exif_transpose(image)
            return cls.from_image(image)

    # ------------------------------------------------------------------ properties

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def size(self) -> tuple:
        return (self.width, self.height)

    @property
    def is_mutable(self) -> bool:
        return bool(self._pixels.flags.writeable)

    # ------------------------------------------------------------------ conversions

    def copy(self, *, mutable: bool = True) -> "PixelBuffer":
        """
        Return an independent ``RGBA_8888`` copy of this buffer.
        """

        if self.format is PixelFormat.RGBA_8888:
            pixels = np.array(self._pixels, dtype=np.uint8, copy=True)
        else:
            height, width = self.height, self.width
            pixels = np.empty((height, width, 4), dtype=np.uint8)
            pixels[..., :3] = self._pixels[..., :3] if self.format is PixelFormat.RGB_888 else self._pixels
            pixels[..., 3] = 255
        pixels.flags.writeable = mutable
        return PixelBuffer(pixels, PixelFormat.RGBA_8888)

    def frozen(self) -> "PixelBuffer":
        """
        Return a read-only view sharing this buffer's memory.
        """

        view = self._pixels.view()
        view.flags.writeable = False
        return PixelBuffer(view, self.format)

    def to_image(self) -> Image.Image:
        pixels = self._pixels
        if self.format is PixelFormat.GRAY_8:
            pixels = pixels[:, :, 0]
        return Image.fromarray(np.ascontiguousarray(pixels))

    def same_pixels(self, other: "PixelBuffer") -> bool:
        return self.format is other.format and np.array_equal(self._pixels, other._pixels)

    def __repr__(self) -> str:
        flag = "mutable" if self.is_mutable else "read-only"
        return f"PixelBuffer({self.width}x{self.height}, {self.format.value}, {flag})"


def require_editable(buffer: PixelBuffer, *, mutable: bool = True) -> None:
    """
    Fail fast unless ``buffer`` is an ``RGBA_8888`` buffer (mutable by default).
    """

    if not isinstance(buffer, PixelBuffer):
        raise InvalidArgumentError(f"expected a PixelBuffer, got {type(buffer).__name__}")
    if buffer.format is not EDIT_FORMAT:
        raise InvalidArgumentError(f"buffer must be {EDIT_FORMAT.value}, got {buffer.format.value}")
    if mutable and not buffer.is_mutable:
        raise InvalidArgumentError("buffer must be mutable")


def validate_crop(buffer: PixelBuffer, x: int, y: int, width: int, height: int) -> None:
    if x < 0 or y < 0:
        raise InvalidArgumentError("crop coordinates must be non-negative")
    if width <= 0 or height <= 0:
        raise InvalidArgumentError("crop dimensions must be positive")
    if x + width > buffer.width or y + height > buffer.height:
        raise InvalidArgumentError(
            f"crop region ({x}, {y}, {width}, {height}) exceeds "
            f"{buffer.width}x{buffer.height} bounds"
        )
