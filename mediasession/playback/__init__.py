"""
Playback session state engine.
"""

from __future__ import annotations

from .engine import EngineListener, EnginePlaybackState, MediaEngine, MediaMetadata
from .reconciler import PlaybackStateReconciler
from .sampler import PositionSampler
from .session import PlaybackSession, open_audio_session, open_video_session
from .snapshot import MediaKind, PlaybackPhase, PlaybackSnapshot

__all__ = [
    "EngineListener",
    "EnginePlaybackState",
    "MediaEngine",
    "MediaKind",
    "MediaMetadata",
    "PlaybackPhase",
    "PlaybackSession",
    "PlaybackSnapshot",
    "PlaybackStateReconciler",
    "PositionSampler",
    "open_audio_session",
    "open_video_session",
]
