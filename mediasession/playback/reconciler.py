"""
Playback state reconciliation.

:class:`PlaybackStateReconciler` owns one :class:`MediaEngine` and folds the
engine's push notifications together with periodic position samples into a
single immutable :class:`PlaybackSnapshot`.  Every state affecting operation
commits a new snapshot (bumping ``rev``) and notifies subscribers outside the
lock, mirroring the transport timeline.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, Dict, Optional

from ..errors import EngineReleasedError, InvalidArgumentError
from .engine import EngineListener, EnginePlaybackState, MediaEngine, MediaMetadata
from .snapshot import MediaKind, PlaybackPhase, PlaybackSnapshot

LOG = logging.getLogger(__name__)

SnapshotObserver = Callable[[PlaybackSnapshot], None]


def clamp01(value: float) -> float:
    number = float(value)
    if math.isnan(number):
        return 0.0
    return max(0.0, min(1.0, number))


def _non_empty(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class PlaybackStateReconciler(EngineListener):
    """
    Translate engine events and samples into playback snapshots.

    The reconciler is the engine's only listener and the only component that
    issues engine commands.  Once :meth:`release` ran, every command is a
    no-op and late engine callbacks are dropped.
    """

    def __init__(
        self,
        engine: MediaEngine,
        *,
        uri: str,
        media_kind: MediaKind = MediaKind.VIDEO,
        default_skip_ms: int = 10_000,
        metadata: Optional[MediaMetadata] = None,
        initial_volume: float = 1.0,
        session_id: str = "playback",
    ) -> None:
        self._engine = engine
        self._lock = threading.RLock()
        self.logger = LOG.getChild(session_id[:8])

        self.uri = uri
        self.media_kind = MediaKind(media_kind)
        self.default_skip_ms = max(0, int(default_skip_ms))
        self._metadata = metadata or MediaMetadata()

        self._rev = 0
        self._phase = PlaybackPhase.IDLE
        self._is_playing = False
        self._has_played = False
        self._position_ms = 0
        self._duration_ms = 0
        self._buffered_fraction = 0.0
        self._is_loading = False
        self._volume = clamp01(initial_volume)
        self._last_unmuted_volume = self._volume
        self._is_muted = False
        self._title = _non_empty(self._metadata.title)
        self._artist = _non_empty(self._metadata.artist)
        self._artwork_ref = _non_empty(self._metadata.artwork_ref)
        self._error: Optional[str] = None
        self._released = False
        self._listening = False

        self._observer_counter = 0
        self._observers: Dict[int, SnapshotObserver] = {}
        self._snapshot = self._build_snapshot_locked()

    # ------------------------------------------------------------------ helpers

    def _build_snapshot_locked(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            rev=self._rev,
            uri=self.uri,
            media_kind=self.media_kind,
            phase=self._phase,
            is_playing=self._is_playing,
            position_ms=self._position_ms,
            duration_ms=self._duration_ms,
            buffered_fraction=self._buffered_fraction,
            is_loading=self._is_loading,
            volume=self._volume,
            is_muted=self._is_muted,
            last_unmuted_volume=self._last_unmuted_volume,
            title=self._title,
            artist=self._artist,
            artwork_ref=self._artwork_ref,
            error=self._error,
        )

    def _commit_locked(self) -> PlaybackSnapshot:
        self._rev += 1
        self._snapshot = self._build_snapshot_locked()
        return self._snapshot

    def _notify(self, snapshot: PlaybackSnapshot) -> None:
        with self._lock:
            observers = dict(self._observers)
        for token, callback in observers.items():
            try:
                callback(snapshot)
            except Exception:  # pragma: no cover - observer failures must not kill the session
                self.logger.exception("Playback observer %s failed.", token)

    def _clamp_position_locked(self, position_ms: int) -> int:
        position = max(0, int(position_ms))
        if self._duration_ms > 0:
            position = min(position, self._duration_ms)
        return position

    def _refresh_duration_locked(self) -> None:
        try:
            duration = int(self._engine.duration_ms())
        except EngineReleasedError:
            return
        if duration > 0:
            self._duration_ms = duration
            self._position_ms = self._clamp_position_locked(self._position_ms)

    def _settled_phase_locked(self) -> PlaybackPhase:
        if self._is_playing:
            return PlaybackPhase.PLAYING
        return PlaybackPhase.PAUSED if self._has_played else PlaybackPhase.READY

    def _ignore(self, operation: str) -> None:
        self.logger.debug("Ignoring %s on released session.", operation)

    def _dispatch_locked(self, operation: str, command: Callable[..., None], *args) -> bool:
        try:
            command(*args)
        except EngineReleasedError:
            self.logger.debug("Engine handle already invalidated; dropping %s.", operation)
            return False
        except Exception:
            self.logger.warning("Engine rejected %s; state left unchanged.", operation, exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------ public API

    @property
    def is_released(self) -> bool:
        with self._lock:
            return self._released

    def snapshot(self) -> PlaybackSnapshot:
        with self._lock:
            return self._snapshot

    def subscribe(self, callback: SnapshotObserver) -> int:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._observer_counter += 1
            token = self._observer_counter
            self._observers[token] = callback
            snapshot = self._snapshot
        try:
            callback(snapshot)
        except Exception:  # pragma: no cover - defensive
            self.logger.exception("Playback observer %s failed during initial snapshot.", token)
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._observers.pop(token, None)

    def prepare(self) -> PlaybackSnapshot:
        """
        Register as the engine listener and hand it the media to load.
        """

        with self._lock:
            if self._released:
                self._ignore("prepare")
                return self._snapshot
            if not self._listening:
                self._engine.add_listener(self)
                self._listening = True
            self._phase = PlaybackPhase.PREPARING
            self._is_loading = True
            try:
                self._engine.prepare(self.uri, self._metadata)
                self._engine.set_volume(0.0 if self._is_muted else self._last_unmuted_volume)
            except Exception as exc:
                self.logger.exception("Engine failed to prepare '%s'.", self.uri)
                self._phase = PlaybackPhase.ERROR
                self._is_loading = False
                self._error = str(exc) or exc.__class__.__name__
            snapshot = self._commit_locked()
        self._notify(snapshot)
        return snapshot

    def retry(self) -> bool:
        """
        Re-prepare after an engine error.  Only the host decides to retry.
        """

        with self._lock:
            if self._released:
                self._ignore("retry")
                return False
            if self._phase is not PlaybackPhase.ERROR:
                return False
            self._error = None
        self.prepare()
        return True

    def play(self) -> None:
        with self._lock:
            if self._released:
                self._ignore("play")
                return
            self._dispatch_locked("play", self._engine.play)

    def pause(self) -> None:
        with self._lock:
            if self._released:
                self._ignore("pause")
                return
            self._dispatch_locked("pause", self._engine.pause)

    def toggle_play_pause(self) -> None:
        with self._lock:
            playing = self._is_playing
        if playing:
            self.pause()
        else:
            self.play()

    def seek_to(self, position_ms: int) -> None:
        """
        Forward a seek to the engine.

        The engine clamps the request; the snapshot position follows on the
        next sample or engine event rather than optimistically.
        """

        with self._lock:
            if self._released:
                self._ignore("seek_to")
                return
            self._dispatch_locked("seek_to", self._engine.seek_to, int(position_ms))

    def skip_forward(self, ms: Optional[int] = None) -> Optional[int]:
        return self._skip(self.default_skip_ms if ms is None else int(ms))

    def skip_backward(self, ms: Optional[int] = None) -> Optional[int]:
        return self._skip(-(self.default_skip_ms if ms is None else int(ms)))

    def _skip(self, delta_ms: int) -> Optional[int]:
        with self._lock:
            if self._released:
                self._ignore("skip")
                return None
            target = max(0, min(self._position_ms + delta_ms, self._duration_ms))
            self._dispatch_locked("skip", self._engine.seek_to, target)
            return target

    def set_volume(self, volume: float) -> PlaybackSnapshot:
        with self._lock:
            if self._released:
                self._ignore("set_volume")
                return self._snapshot
            number = float(volume)
            if math.isnan(number):
                raise InvalidArgumentError("volume must be a number in [0, 1]")
            level = clamp01(number)
            output = 0.0 if self._is_muted else level
            if not self._dispatch_locked("set_volume", self._engine.set_volume, output):
                return self._snapshot
            self._volume = level
            self._last_unmuted_volume = level
            snapshot = self._commit_locked()
        self._notify(snapshot)
        return snapshot

    def toggle_mute(self) -> PlaybackSnapshot:
        with self._lock:
            if self._released:
                self._ignore("toggle_mute")
                return self._snapshot
            muted = not self._is_muted
            output = 0.0 if muted else self._last_unmuted_volume
            if not self._dispatch_locked("toggle_mute", self._engine.set_volume, output):
                return self._snapshot
            self._is_muted = muted
            snapshot = self._commit_locked()
        self._notify(snapshot)
        return snapshot

    def sample(self) -> bool:
        """
        Pull position and buffer level from the engine.

        Returns ``True`` when a new snapshot was published.
        """

        with self._lock:
            if self._released:
                return False
            if self._phase in (PlaybackPhase.IDLE, PlaybackPhase.ERROR):
                return False
            try:
                position = self._engine.current_position_ms()
                buffered = self._engine.buffered_fraction()
            except EngineReleasedError:
                self.logger.debug("Engine invalidated during sampling.")
                return False
            next_position = self._clamp_position_locked(position)
            next_buffered = clamp01(buffered)
            if next_position == self._position_ms and next_buffered == self._buffered_fraction:
                return False
            self._position_ms = next_position
            self._buffered_fraction = next_buffered
            snapshot = self._commit_locked()
        self._notify(snapshot)
        return True

    def release(self) -> bool:
        """
        Detach from the engine and release it.  Only the first call has effect.
        """

        with self._lock:
            if self._released:
                self._ignore("release")
                return False
            self._released = True
            self._phase = PlaybackPhase.RELEASED
            self._is_playing = False
            self._is_loading = False
            snapshot = self._commit_locked()
            listening = self._listening
            self._listening = False

        engine = self._engine
        if listening:
            try:
                engine.remove_listener(self)
            except Exception:  # pragma: no cover - defensive
                self.logger.debug("Failed to remove engine listener during release.", exc_info=True)
        try:
            engine.release()
        except Exception:  # pragma: no cover - defensive
            self.logger.exception("Engine release failed.")
        self.logger.info("Playback session for '%s' released.", self.uri)
        self._notify(snapshot)
        return True

    # ------------------------------------------------------------------ engine callbacks

    def on_is_playing_changed(self, is_playing: bool) -> None:
        with self._lock:
            if self._released:
                return
            playing = bool(is_playing)
            if playing == self._is_playing:
                return
            self._is_playing = playing
            if playing:
                self._has_played = True
            if self._phase in (PlaybackPhase.READY, PlaybackPhase.PLAYING, PlaybackPhase.PAUSED):
                self._phase = self._settled_phase_locked()
            snapshot = self._commit_locked()
        self._notify(snapshot)

    def on_playback_state_changed(self, state: EnginePlaybackState) -> None:
        state = EnginePlaybackState(state)
        with self._lock:
            if self._released:
                return
            if self._phase is PlaybackPhase.ERROR and state is not EnginePlaybackState.ERROR:
                self.logger.debug("Ignoring engine state %s while in ERROR.", state.value)
                return
            if state is EnginePlaybackState.IDLE:
                return
            if state is EnginePlaybackState.BUFFERING:
                self._phase = PlaybackPhase.PREPARING
                self._is_loading = True
            elif state is EnginePlaybackState.READY:
                self._is_loading = False
                self._refresh_duration_locked()
                self._phase = self._settled_phase_locked()
            elif state is EnginePlaybackState.ENDED:
                self._is_loading = False
                self._phase = PlaybackPhase.ENDED
                if self._duration_ms > 0:
                    self._position_ms = self._duration_ms
            elif state is EnginePlaybackState.ERROR:
                self._is_loading = False
                self._is_playing = False
                self._phase = PlaybackPhase.ERROR
                if self._error is None:
                    self._error = "engine error"
            snapshot = self._commit_locked()
        self.logger.debug("Engine state %s -> phase %s", state.value, snapshot.phase.value)
        self._notify(snapshot)

    def on_media_metadata_changed(self, metadata: MediaMetadata) -> None:
        with self._lock:
            if self._released:
                return
            changed = False
            # First writer wins: never clobber a caller supplied value.
            if self._title is None and _non_empty(metadata.title):
                self._title = _non_empty(metadata.title)
                changed = True
            if self._artist is None and _non_empty(metadata.artist):
                self._artist = _non_empty(metadata.artist)
                changed = True
            if self._artwork_ref is None and _non_empty(metadata.artwork_ref):
                self._artwork_ref = _non_empty(metadata.artwork_ref)
                changed = True
            if not changed:
                return
            snapshot = self._commit_locked()
        self._notify(snapshot)

    def on_player_error(self, message: str) -> None:
        with self._lock:
            if self._released:
                return
            self._error = str(message or "engine error")
            self._is_loading = False
            self._is_playing = False
            self._phase = PlaybackPhase.ERROR
            snapshot = self._commit_locked()
        self.logger.error("Playback error for '%s': %s", self.uri, snapshot.error)
        self._notify(snapshot)
