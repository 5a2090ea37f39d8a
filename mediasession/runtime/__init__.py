"""
Concrete media engines backing playback sessions.
"""

from __future__ import annotations

from .gst_engine import GstMediaEngine, is_available, resolve_uri

__all__ = [
    "GstMediaEngine",
    "is_available",
    "resolve_uri",
]
