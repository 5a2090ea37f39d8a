"""
GStreamer-backed media engine.

:class:`GstMediaEngine` drives a single ``playbin`` and translates its bus
messages into :class:`~mediasession.playback.engine.EngineListener` callbacks.
Bus messages are drained on a dedicated thread; listeners are always invoked
without the engine lock held.  When the GStreamer runtime is not available the
constructor raises :class:`~mediasession.errors.EngineUnavailableError` so
hosts can fall back to another engine.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

from ..errors import EngineReleasedError, EngineUnavailableError
from ..playback.engine import EngineListener, EnginePlaybackState, MediaEngine, MediaMetadata

try:  # pragma: no cover - availability depends on host environment
    import gi  # type: ignore

    gi.require_version("Gst", "1.0")
    from gi.repository import Gst  # type: ignore
except (ImportError, ValueError) as exc:  # pragma: no cover
    Gst = None  # type: ignore[assignment]
    _GST_IMPORT_ERROR: Optional[BaseException] = exc
else:  # pragma: no cover - executed only when GStreamer is present
    _GST_IMPORT_ERROR = None

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from gi.repository import Gst as GstModule
else:
    GstModule = Any

LOG = logging.getLogger(__name__)

BUS_POLL_INTERVAL_NS = 100_000_000  # 100ms
INT64_MAX = (1 << 63) - 1

_INIT_LOCK = threading.Lock()
_GST_INITIALISED = False


def _macos_init_via_gst() -> None:
    try:
        import ctypes
        import ctypes.util

        library_path = ctypes.util.find_library("gstreamer-1.0")
        if not library_path:
            return
        gst_main = getattr(ctypes.CDLL(library_path), "gst_macos_main", None)
        if gst_main is None:
            return
        gst_main.restype = None
        gst_main.argtypes = []
        gst_main()
        LOG.info("Initialised macOS NSApplication via gst_macos_main().")
    except Exception:
        LOG.debug("gst_macos_main() initialisation failed.", exc_info=True)


def _require_gstreamer() -> None:
    if Gst is None:
        raise EngineUnavailableError(
            "GStreamer runtime is not available. Install PyGObject/GStreamer "
            "1.20+ to enable playback."
        ) from _GST_IMPORT_ERROR


def _ensure_gst_initialised() -> None:
    global _GST_INITIALISED
    with _INIT_LOCK:
        if _GST_INITIALISED:
            return
        if sys.platform == "darwin":
            _macos_init_via_gst()
        Gst.init(None)
        _GST_INITIALISED = True


def is_available() -> bool:
    return Gst is not None


def resolve_uri(candidate: Optional[str]) -> Optional[str]:
    """
    Turn a URI or a local path into a URI ``playbin`` accepts.
    """

    if candidate is None:
        return None
    trimmed = str(candidate).strip()
    if not trimmed:
        return None
    if "://" in trimmed or trimmed.startswith("file:"):
        return trimmed
    try:
        resolved = Path(trimmed).expanduser().resolve(strict=True)
    except (FileNotFoundError, RuntimeError):
        return None
    return resolved.as_uri()


class GstMediaEngine(MediaEngine):
    """
    ``playbin`` realisation of the media engine contract.

    Optional ``video_sink`` / ``audio_sink`` name GStreamer element factories
    (``fakesink`` for headless use).
    """

    def __init__(self, *, video_sink: Optional[str] = None, audio_sink: Optional[str] = None) -> None:
        _require_gstreamer()
        _ensure_gst_initialised()
        self._lock = threading.RLock()
        self._listeners: List[EngineListener] = []
        self._playbin: Optional[GstModule.Element] = None
        self._bus_thread: Optional[threading.Thread] = None
        self._bus_stop = threading.Event()
        self._video_sink = video_sink
        self._audio_sink = audio_sink
        self._uri: Optional[str] = None
        self._released = False
        self._target_playing = False
        self._is_playing = False
        self._buffering = False

    # ------------------------------------------------------------------ contract

    def prepare(self, uri: str, metadata: Optional[MediaMetadata] = None) -> None:
        resolved = resolve_uri(uri)
        if not resolved:
            raise FileNotFoundError(f"Media '{uri}' could not be resolved to a URI")

        with self._lock:
            self._check_alive()
            previous = self._detach_locked()
        self._shutdown(*previous)

        with self._lock:
            self._check_alive()
            playbin = self._make_element("playbin", "mediasession_playbin")
            playbin.set_property("uri", resolved)
            if self._video_sink:
                playbin.set_property("video-sink", self._make_element(self._video_sink))
            if self._audio_sink:
                playbin.set_property("audio-sink", self._make_element(self._audio_sink))
            self._playbin = playbin
            self._uri = resolved
            self._target_playing = False
            self._is_playing = False
            self._buffering = False
            self._start_bus_monitor(playbin)

        self._emit_state(EnginePlaybackState.BUFFERING)
        if playbin.set_state(Gst.State.PAUSED) == Gst.StateChangeReturn.FAILURE:
            self._emit_error(f"Failed to preroll '{resolved}'.")

    def play(self) -> None:
        with self._lock:
            playbin = self._loaded_playbin("play")
            if playbin is None:
                return
            self._target_playing = True
            if self._buffering:
                return
        playbin.set_state(Gst.State.PLAYING)

    def pause(self) -> None:
        with self._lock:
            playbin = self._loaded_playbin("pause")
            if playbin is None:
                return
            self._target_playing = False
        playbin.set_state(Gst.State.PAUSED)

    def seek_to(self, position_ms: int) -> None:
        with self._lock:
            playbin = self._loaded_playbin("seek_to")
        if playbin is None:
            return
        target = max(0, int(position_ms))
        duration = self.duration_ms()
        if duration > 0:
            target = min(target, duration)
        start_ns = min(target * Gst.MSECOND, INT64_MAX)
        flags = Gst.SeekFlags.FLUSH | Gst.SeekFlags.KEY_UNIT
        if not playbin.seek_simple(Gst.Format.TIME, flags, start_ns):
            LOG.warning("Pipeline rejected seek to %d ms.", target)

    def set_volume(self, volume: float) -> None:
        with self._lock:
            playbin = self._loaded_playbin("set_volume")
        if playbin is None:
            return
        playbin.set_property("volume", max(0.0, min(1.0, float(volume))))

    def current_position_ms(self) -> int:
        with self._lock:
            playbin = self._loaded_playbin()
        if playbin is None:
            return 0
        ok, position = playbin.query_position(Gst.Format.TIME)
        if not ok or position < 0:
            return 0
        return int(position // Gst.MSECOND)

    def duration_ms(self) -> int:
        with self._lock:
            playbin = self._loaded_playbin()
        if playbin is None:
            return -1
        ok, duration = playbin.query_duration(Gst.Format.TIME)
        if not ok or duration < 0:
            return -1
        return int(duration // Gst.MSECOND)

    def buffered_fraction(self) -> float:
        with self._lock:
            playbin = self._loaded_playbin()
            uri = self._uri or ""
        if playbin is None:
            return 0.0
        query = Gst.Query.new_buffering(Gst.Format.PERCENT)
        if not playbin.query(query):
            # Local files never buffer.
            return 1.0 if uri.startswith("file:") else 0.0
        _format, _start, stop, _total = query.parse_buffering_range()
        if stop < 0:
            return 0.0
        return max(0.0, min(1.0, stop / Gst.FORMAT_PERCENT_MAX))

    def add_listener(self, listener: EngineListener) -> None:
        with self._lock:
            self._check_alive()
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: EngineListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def release(self) -> None:
        with self._lock:
            if self._released:
                LOG.debug("Engine already released.")
                return
            self._released = True
            self._listeners.clear()
            detached = self._detach_locked()
        self._shutdown(*detached)

    # ------------------------------------------------------------------ internal

    def _check_alive(self) -> None:
        if self._released:
            raise EngineReleasedError("Engine handle has been released")

    def _loaded_playbin(self, operation: Optional[str] = None) -> Optional[GstModule.Element]:
        """Return the playbin, or ``None`` while no media is loaded."""

        self._check_alive()
        if self._playbin is None and operation:
            LOG.debug("No media loaded; ignoring %s.", operation)
        return self._playbin

    @staticmethod
    def _make_element(factory: str, name: Optional[str] = None) -> GstModule.Element:
        element = Gst.ElementFactory.make(factory, name)
        if not element:
            raise EngineUnavailableError(f"GStreamer element factory '{factory}' is not available.")
        return element

    def _detach_locked(self) -> Tuple[Optional[GstModule.Element], Optional[threading.Thread], threading.Event]:
        detached = (self._playbin, self._bus_thread, self._bus_stop)
        self._playbin = None
        self._bus_thread = None
        return detached

    @staticmethod
    def _shutdown(
        playbin: Optional[GstModule.Element],
        bus_thread: Optional[threading.Thread],
        bus_stop: threading.Event,
    ) -> None:
        bus_stop.set()
        if bus_thread and bus_thread.is_alive() and threading.current_thread() is not bus_thread:
            bus_thread.join(timeout=1.0)
        if playbin is None:
            return
        try:
            playbin.set_state(Gst.State.NULL)
        except Exception:  # pragma: no cover - defensive
            LOG.exception("Error while stopping playbin.")

    def _start_bus_monitor(self, playbin: GstModule.Element) -> None:
        bus = playbin.get_bus()
        if not bus:
            LOG.warning("Playbin bus is not available; engine events disabled.")
            return

        stop = threading.Event()
        self._bus_stop = stop
        mask = (
            Gst.MessageType.ERROR
            | Gst.MessageType.EOS
            | Gst.MessageType.WARNING
            | Gst.MessageType.BUFFERING
            | Gst.MessageType.ASYNC_DONE
            | Gst.MessageType.STATE_CHANGED
            | Gst.MessageType.TAG
            | Gst.MessageType.DURATION_CHANGED
        )

        def _loop() -> None:
            while not stop.is_set():
                message = bus.timed_pop_filtered(BUS_POLL_INTERVAL_NS, mask)
                if message is None:
                    continue
                try:
                    self._handle_bus_message(playbin, message)
                except Exception:
                    LOG.exception("Failed to handle bus message %s.", message.type)

        thread = threading.Thread(target=_loop, name="mediasession-gst-bus", daemon=True)
        thread.start()
        self._bus_thread = thread

    def _handle_bus_message(self, playbin: GstModule.Element, message: GstModule.Message) -> None:
        msg_type = message.type
        if msg_type == Gst.MessageType.ERROR:
            err, debug = message.parse_error()
            self._emit_error(f"{err} ({debug})")
        elif msg_type == Gst.MessageType.EOS:
            with self._lock:
                self._target_playing = False
            playbin.set_state(Gst.State.PAUSED)
            self._emit_state(EnginePlaybackState.ENDED)
        elif msg_type == Gst.MessageType.WARNING:
            warn, debug = message.parse_warning()
            LOG.warning("Playback warning: %s (%s)", warn, debug)
        elif msg_type == Gst.MessageType.BUFFERING:
            self._on_buffering(playbin, message.parse_buffering())
        elif msg_type in (Gst.MessageType.ASYNC_DONE, Gst.MessageType.DURATION_CHANGED):
            with self._lock:
                buffering = self._buffering
            if not buffering:
                self._emit_state(EnginePlaybackState.READY)
        elif msg_type == Gst.MessageType.STATE_CHANGED:
            if message.src != playbin:
                return
            _old, new, _pending = message.parse_state_changed()
            self._set_playing(new == Gst.State.PLAYING)
        elif msg_type == Gst.MessageType.TAG:
            self._on_tags(message.parse_tag())

    def _on_buffering(self, playbin: GstModule.Element, percent: int) -> None:
        with self._lock:
            was_buffering = self._buffering
            self._buffering = percent < 100
            resume = self._target_playing
        if percent < 100:
            if not was_buffering:
                LOG.debug("Playback buffering: %d%%", percent)
                playbin.set_state(Gst.State.PAUSED)
                self._emit_state(EnginePlaybackState.BUFFERING)
            return
        if was_buffering:
            LOG.debug("Playback buffering complete")
            self._emit_state(EnginePlaybackState.READY)
            if resume:
                playbin.set_state(Gst.State.PLAYING)

    def _on_tags(self, taglist: GstModule.TagList) -> None:
        def _read(tag: str) -> Optional[str]:
            ok, value = taglist.get_string(tag)
            return value if ok else None

        metadata = MediaMetadata(title=_read(Gst.TAG_TITLE), artist=_read(Gst.TAG_ARTIST))
        if metadata.title or metadata.artist:
            for listener in self._snapshot_listeners():
                listener.on_media_metadata_changed(metadata)

    def _set_playing(self, playing: bool) -> None:
        with self._lock:
            if self._is_playing == playing:
                return
            self._is_playing = playing
        for listener in self._snapshot_listeners():
            listener.on_is_playing_changed(playing)

    def _snapshot_listeners(self) -> List[EngineListener]:
        with self._lock:
            return list(self._listeners)

    def _emit_state(self, state: EnginePlaybackState) -> None:
        for listener in self._snapshot_listeners():
            listener.on_playback_state_changed(state)

    def _emit_error(self, message: str) -> None:
        LOG.error("Playback error: %s", message)
        self._set_playing(False)
        for listener in self._snapshot_listeners():
            listener.on_player_error(message)
            listener.on_playback_state_changed(EnginePlaybackState.ERROR)
