"""
Pixel kernels used by :class:`~mediasession.image.pipeline.FilterPipeline`.

:class:`FilterBackend` describes the contract.  In-place operations mutate the
given ``RGBA_8888`` buffer and return ``True`` on success; geometry operations
read the buffer and return a new one, or ``None`` on failure.  Alpha is never
modified.

:class:`NumpyFilterBackend` is the default implementation.  Results are
truncated toward zero before clamping to ``[0, 255]``, matching the integer
kernels image editors traditionally ship.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .buffer import PixelBuffer, PixelFormat, require_editable, validate_crop

LOG = logging.getLogger(__name__)

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

# Rows produce R, G and B from the source (r, g, b).
SEPIA_MATRIX = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float64,
)


class FilterBackend:
    """
    Contract for pixel kernels.
    """

    def apply_grayscale(self, buffer: PixelBuffer) -> bool:
        raise NotImplementedError

    def apply_sepia(self, buffer: PixelBuffer) -> bool:
        raise NotImplementedError

    def apply_invert(self, buffer: PixelBuffer) -> bool:
        raise NotImplementedError

    def adjust_brightness(self, buffer: PixelBuffer, factor: int) -> bool:
        raise NotImplementedError

    def adjust_contrast(self, buffer: PixelBuffer, factor: float) -> bool:
        raise NotImplementedError

    def rotate_180(self, buffer: PixelBuffer) -> bool:
        raise NotImplementedError

    def rotate_90_cw(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        raise NotImplementedError

    def rotate_90_ccw(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        raise NotImplementedError

    def crop(self, buffer: PixelBuffer, x: int, y: int, width: int, height: int) -> Optional[PixelBuffer]:
        raise NotImplementedError


def _store_rgb(buffer: PixelBuffer, values: np.ndarray) -> None:
    buffer.pixels[..., :3] = np.clip(np.trunc(values), 0, 255).astype(np.uint8)


class NumpyFilterBackend(FilterBackend):
    """Vectorised kernels over the ``(H, W, 4)`` pixel array."""

    def apply_grayscale(self, buffer: PixelBuffer) -> bool:
        require_editable(buffer)
        rgb = buffer.pixels[..., :3].astype(np.float64)
        gray = rgb @ LUMA_WEIGHTS
        _store_rgb(buffer, np.repeat(gray[..., np.newaxis], 3, axis=2))
        return True

    def apply_sepia(self, buffer: PixelBuffer) -> bool:
        require_editable(buffer)
        rgb = buffer.pixels[..., :3].astype(np.float64)
        _store_rgb(buffer, rgb @ SEPIA_MATRIX.T)
        return True

    def apply_invert(self, buffer: PixelBuffer) -> bool:
        require_editable(buffer)
        rgb = buffer.pixels[..., :3]
        rgb[...] = 255 - rgb
        return True

    def adjust_brightness(self, buffer: PixelBuffer, factor: int) -> bool:
        require_editable(buffer)
        rgb = buffer.pixels[..., :3].astype(np.int32)
        _store_rgb(buffer, rgb + int(factor))
        return True

    def adjust_contrast(self, buffer: PixelBuffer, factor: float) -> bool:
        require_editable(buffer)
        rgb = buffer.pixels[..., :3].astype(np.float64)
        _store_rgb(buffer, (rgb - 128.0) * float(factor) + 128.0)
        return True

    def rotate_180(self, buffer: PixelBuffer) -> bool:
        require_editable(buffer)
        pixels = buffer.pixels
        pixels[...] = pixels[::-1, ::-1].copy()
        return True

    def rotate_90_cw(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        require_editable(buffer, mutable=False)
        return PixelBuffer(np.ascontiguousarray(np.rot90(buffer.pixels, k=-1)), PixelFormat.RGBA_8888)

    def rotate_90_ccw(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        require_editable(buffer, mutable=False)
        return PixelBuffer(np.ascontiguousarray(np.rot90(buffer.pixels, k=1)), PixelFormat.RGBA_8888)

    def crop(self, buffer: PixelBuffer, x: int, y: int, width: int, height: int) -> Optional[PixelBuffer]:
        require_editable(buffer, mutable=False)
        validate_crop(buffer, x, y, width, height)
        region = buffer.pixels[y : y + height, x : x + width]
        return PixelBuffer(np.array(region, dtype=np.uint8, copy=True), PixelFormat.RGBA_8888)
