"""
Immutable playback state snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MediaKind(str, Enum):
    """Kind of media a playback session plays."""

    AUDIO = "audio"
    VIDEO = "video"


class PlaybackPhase(str, Enum):
    """Session level playback state machine."""

    IDLE = "IDLE"
    PREPARING = "PREPARING"
    READY = "READY"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"
    ENDED = "ENDED"
    ERROR = "ERROR"
    RELEASED = "RELEASED"

    @property
    def is_terminal(self) -> bool:
        return self in (PlaybackPhase.ENDED, PlaybackPhase.ERROR, PlaybackPhase.RELEASED)


@dataclass(frozen=True, slots=True)
class PlaybackSnapshot:
    """
    Read of a playback session at one instant.

    ``volume`` is the level the user asked for; ``effective_volume`` is what
    the engine is actually outputting, which is zero while muted.
    """

    rev: int
    uri: str
    media_kind: MediaKind
    phase: PlaybackPhase
    is_playing: bool
    position_ms: int
    duration_ms: int
    buffered_fraction: float
    is_loading: bool
    volume: float
    is_muted: bool
    last_unmuted_volume: float
    title: Optional[str] = None
    artist: Optional[str] = None
    artwork_ref: Optional[str] = None
    error: Optional[str] = None

    @property
    def effective_volume(self) -> float:
        return 0.0 if self.is_muted else float(self.last_unmuted_volume)

    @property
    def is_released(self) -> bool:
        return self.phase is PlaybackPhase.RELEASED

    @property
    def progress(self) -> float:
        if self.duration_ms <= 0:
            return 0.0
        return max(0.0, min(1.0, self.position_ms / self.duration_ms))

    def to_dict(self) -> dict:
        return {
            "rev": int(self.rev),
            "uri": self.uri,
            "mediaKind": self.media_kind.value,
            "phase": self.phase.value,
            "isPlaying": bool(self.is_playing),
            "positionMs": int(self.position_ms),
            "durationMs": int(self.duration_ms),
            "bufferedFraction": float(self.buffered_fraction),
            "isLoading": bool(self.is_loading),
            "volume": float(self.volume),
            "isMuted": bool(self.is_muted),
            "effectiveVolume": float(self.effective_volume),
            "title": self.title,
            "artist": self.artist,
            "artworkRef": self.artwork_ref,
            "error": self.error,
        }
