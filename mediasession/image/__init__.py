"""Image buffers, filters and edit sessions."""

from .backend import FilterBackend, NumpyFilterBackend
from .buffer import PixelBuffer, PixelFormat, require_editable, validate_crop
from .filters import FilterKind
from .guard import ProcessingGuard
from .pipeline import FilterPipeline
from .session import ImageEditSession, ImageSnapshot
from .store import ImageBufferStore
from .transform import IDENTITY, TransformStack, TransformState

__all__ = [
    "FilterBackend",
    "FilterKind",
    "FilterPipeline",
    "IDENTITY",
    "ImageBufferStore",
    "ImageEditSession",
    "ImageSnapshot",
    "NumpyFilterBackend",
    "PixelBuffer",
    "PixelFormat",
    "ProcessingGuard",
    "TransformStack",
    "TransformState",
    "require_editable",
    "validate_crop",
]
