"""
Contract between playback sessions and the media engine that decodes and
renders the stream.

The engine is opaque: sessions issue commands through :class:`MediaEngine` and
learn about state changes through :class:`EngineListener` callbacks, which the
engine may invoke from its own notification thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EnginePlaybackState(str, Enum):
    """Coarse playback states reported by the engine."""

    IDLE = "idle"
    BUFFERING = "buffering"
    READY = "ready"
    ENDED = "ended"
    ERROR = "error"


@dataclass(frozen=True)
class MediaMetadata:
    title: Optional[str] = None
    artist: Optional[str] = None
    artwork_ref: Optional[str] = None


class EngineListener:
    """
    Callback surface for engine notifications.

    Subclasses override the callbacks they care about; the defaults ignore the
    notification.
    """

    def on_is_playing_changed(self, is_playing: bool) -> None:
        pass

    def on_playback_state_changed(self, state: EnginePlaybackState) -> None:
        pass

    def on_media_metadata_changed(self, metadata: MediaMetadata) -> None:
        pass

    def on_player_error(self, message: str) -> None:
        pass


class MediaEngine:
    """
    Base class for media engines.

    ``release()`` must be safe to call once and must invalidate the handle; any
    later command raises :class:`~mediasession.errors.EngineReleasedError`.
    """

    def prepare(self, uri: str, metadata: Optional[MediaMetadata] = None) -> None:
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def seek_to(self, position_ms: int) -> None:
        raise NotImplementedError

    def set_volume(self, volume: float) -> None:
        raise NotImplementedError

    def current_position_ms(self) -> int:
        raise NotImplementedError

    def duration_ms(self) -> int:
        """Return the media duration, or a non-positive value while unknown."""

        raise NotImplementedError

    def buffered_fraction(self) -> float:
        raise NotImplementedError

    def add_listener(self, listener: EngineListener) -> None:
        raise NotImplementedError

    def remove_listener(self, listener: EngineListener) -> None:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError
