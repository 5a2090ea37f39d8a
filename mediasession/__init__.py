"""
Media session core.

Two reusable session objects for media-heavy hosts:

* :class:`~mediasession.playback.PlaybackSession` reconciles a media engine's
  push events and pulled position into immutable playback snapshots, and binds
  pause/release to a host lifecycle.
* :class:`~mediasession.image.ImageEditSession` owns the original and working
  pixel buffers of an edit and applies filters, brightness/contrast, rotation
  and crop behind a single-writer guard.
"""

from __future__ import annotations

from .config import SessionConfig, load_profiles
from .errors import (
    EngineReleasedError,
    EngineUnavailableError,
    InvalidArgumentError,
    InvalidCommand,
    MediaSessionError,
    ProfileNotFoundError,
    SessionNotFoundError,
)
from .image import FilterKind, ImageEditSession, ImageSnapshot, PixelBuffer, PixelFormat
from .lifecycle import HostLifecycle, LifecycleBinder, LifecycleEvent, Subscription
from .playback import (
    MediaKind,
    PlaybackPhase,
    PlaybackSession,
    PlaybackSnapshot,
    open_audio_session,
    open_video_session,
)
from .utils import format_time

__all__ = [
    "EngineReleasedError",
    "EngineUnavailableError",
    "FilterKind",
    "HostLifecycle",
    "ImageEditSession",
    "ImageSnapshot",
    "InvalidArgumentError",
    "InvalidCommand",
    "LifecycleBinder",
    "LifecycleEvent",
    "MediaKind",
    "MediaSessionError",
    "PixelBuffer",
    "PixelFormat",
    "PlaybackPhase",
    "PlaybackSession",
    "PlaybackSnapshot",
    "ProfileNotFoundError",
    "SessionConfig",
    "SessionNotFoundError",
    "Subscription",
    "format_time",
    "load_profiles",
    "open_audio_session",
    "open_video_session",
]
