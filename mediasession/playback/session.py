"""
Playback sessions.

A :class:`PlaybackSession` ties together the engine reconciler, the position
sampler and the host lifecycle binder for one media URI.  Hosts interact with
the session only; the snapshot is the single source of truth for display.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Optional

from ..config import SessionConfig
from ..lifecycle import HostLifecycle, LifecycleBinder, Subscription
from .engine import MediaEngine, MediaMetadata
from .reconciler import PlaybackStateReconciler, SnapshotObserver
from .sampler import PositionSampler
from .snapshot import MediaKind, PlaybackSnapshot

LOG = logging.getLogger(__name__)


class PlaybackSession:
    """
    One audio or video playback unit with a defined teardown.

    The engine is prepared on construction.  Sampling runs while the session
    is attached (by default from construction until release).  ``release`` is
    idempotent; every control call afterwards is ignored.
    """

    def __init__(
        self,
        engine: MediaEngine,
        uri: str,
        *,
        media_kind: MediaKind = MediaKind.VIDEO,
        config: Optional[SessionConfig] = None,
        metadata: Optional[MediaMetadata] = None,
        host: Optional[HostLifecycle] = None,
        autostart: bool = True,
        session_id: Optional[str] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.session_id = session_id or uuid.uuid4().hex
        self.media_kind = MediaKind(media_kind)
        self.logger = LOG.getChild(self.session_id[:8])
        self._lock = threading.Lock()

        skip_ms = (
            self.config.audio_skip_ms
            if self.media_kind is MediaKind.AUDIO
            else self.config.video_skip_ms
        )
        self.reconciler = PlaybackStateReconciler(
            engine,
            uri=uri,
            media_kind=self.media_kind,
            default_skip_ms=skip_ms,
            metadata=metadata,
            initial_volume=self.config.initial_volume,
            session_id=self.session_id,
        )
        self._sampler = PositionSampler(
            self.reconciler.sample,
            interval=self.config.sample_interval,
            name=f"mediasession-sampler-{self.session_id[:8]}",
        )
        self._binder = LifecycleBinder(
            on_pause=self.pause,
            on_destroy=self.release,
            name=f"playback {self.session_id[:8]}",
        )

        self.reconciler.prepare()
        if host is not None:
            self.bind_to_host(host)
        if autostart:
            self.attach()

    # ------------------------------------------------------------------ state

    @property
    def uri(self) -> str:
        return self.reconciler.uri

    @property
    def snapshot(self) -> PlaybackSnapshot:
        return self.reconciler.snapshot()

    @property
    def is_released(self) -> bool:
        return self.reconciler.is_released

    @property
    def is_attached(self) -> bool:
        return self._sampler.is_running

    @property
    def is_bound(self) -> bool:
        return self._binder.is_bound

    def subscribe(self, callback: SnapshotObserver) -> int:
        return self.reconciler.subscribe(callback)

    def unsubscribe(self, token: int) -> None:
        self.reconciler.unsubscribe(token)

    # ------------------------------------------------------------------ controls

    def play(self) -> None:
        self.reconciler.play()

    def pause(self) -> None:
        self.reconciler.pause()

    def toggle_play_pause(self) -> None:
        self.reconciler.toggle_play_pause()

    def seek_to(self, position_ms: int) -> None:
        self.reconciler.seek_to(position_ms)

    def skip_forward(self, ms: Optional[int] = None) -> Optional[int]:
        return self.reconciler.skip_forward(ms)

    def skip_backward(self, ms: Optional[int] = None) -> Optional[int]:
        return self.reconciler.skip_backward(ms)

    def set_volume(self, volume: float) -> PlaybackSnapshot:
        return self.reconciler.set_volume(volume)

    def toggle_mute(self) -> PlaybackSnapshot:
        return self.reconciler.toggle_mute()

    def retry(self) -> bool:
        return self.reconciler.retry()

    # ------------------------------------------------------------------ lifecycle

    def attach(self) -> bool:
        """
        Start position sampling.  Has no effect on a released session.
        """

        with self._lock:
            if self.reconciler.is_released:
                self.logger.debug("Ignoring attach on released session.")
                return False
            return self._sampler.start()

    def detach(self) -> bool:
        with self._lock:
            return self._sampler.stop()

    def bind_to_host(self, host: HostLifecycle) -> Subscription:
        return self._binder.bind_to_host(host)

    def unbind(self) -> bool:
        return self._binder.unbind()

    def release(self) -> bool:
        """
        Stop sampling, detach from the engine and release it, exactly once.
        """

        with self._lock:
            self._sampler.stop()
            released = self.reconciler.release()
        self._binder.unbind()
        return released

    close = release

    def __enter__(self) -> "PlaybackSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


def _default_engine() -> MediaEngine:
    from ..runtime.gst_engine import GstMediaEngine

    return GstMediaEngine()


def open_audio_session(
    uri: str,
    engine: Optional[MediaEngine] = None,
    *,
    title: Optional[str] = None,
    artist: Optional[str] = None,
    artwork_ref: Optional[str] = None,
    config: Optional[SessionConfig] = None,
    host: Optional[HostLifecycle] = None,
    autostart: bool = True,
) -> PlaybackSession:
    """
    Open an audio session.  Caller supplied metadata wins over engine tags.
    """

    return PlaybackSession(
        engine if engine is not None else _default_engine(),
        uri,
        media_kind=MediaKind.AUDIO,
        config=config,
        metadata=MediaMetadata(title=title, artist=artist, artwork_ref=artwork_ref),
        host=host,
        autostart=autostart,
    )


def open_video_session(
    uri: str,
    engine: Optional[MediaEngine] = None,
    *,
    config: Optional[SessionConfig] = None,
    host: Optional[HostLifecycle] = None,
    autostart: bool = True,
) -> PlaybackSession:
    return PlaybackSession(
        engine if engine is not None else _default_engine(),
        uri,
        media_kind=MediaKind.VIDEO,
        config=config,
        host=host,
        autostart=autostart,
    )
