"""
Session registry backing the host control API.

The registry owns one :class:`HostLifecycle`; every session it opens is bound
to it, so shutting the registry down is a host ``DESTROYED`` signal that
releases every playback session and closes every image session exactly once.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Optional

from PIL import Image, UnidentifiedImageError

from ..config import SessionConfig
from ..errors import InvalidArgumentError, InvalidCommand, SessionNotFoundError
from ..image import FilterBackend, ImageEditSession, PixelBuffer
from ..lifecycle import HostLifecycle
from ..playback import MediaEngine, MediaKind, MediaMetadata, PlaybackSession

LOG = logging.getLogger(__name__)

EngineFactory = Callable[[], MediaEngine]
BackendFactory = Callable[[], FilterBackend]


def _default_engine_factory() -> MediaEngine:
    from ..runtime.gst_engine import GstMediaEngine

    return GstMediaEngine()


def decode_image(data: str) -> PixelBuffer:
    """Decode a base64 encoded image file into a pixel buffer."""

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidArgumentError(f"image data is not valid base64: {exc}") from exc
    try:
        with Image.open(io.BytesIO(raw)) as image:
            return PixelBuffer.from_image(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidArgumentError(f"image data could not be decoded: {exc}") from exc


def encode_png(buffer: PixelBuffer) -> bytes:
    out = io.BytesIO()
    buffer.to_image().save(out, format="PNG")
    return out.getvalue()


class SessionRegistry:
    def __init__(
        self,
        *,
        config: Optional[SessionConfig] = None,
        engine_factory: Optional[EngineFactory] = None,
        backend_factory: Optional[BackendFactory] = None,
    ) -> None:
        self.config = config or SessionConfig()
        self._engine_factory = engine_factory or _default_engine_factory
        self._backend_factory = backend_factory
        self._lock = threading.Lock()
        self._playback: Dict[str, PlaybackSession] = {}
        self._images: Dict[str, ImageEditSession] = {}
        self.host = HostLifecycle()

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {"playback": len(self._playback), "images": len(self._images)}

    # ------------------------------------------------------------------ playback

    def open_playback(
        self,
        uri: str,
        *,
        media_kind: str = "video",
        title: Optional[str] = None,
        artist: Optional[str] = None,
        artwork_ref: Optional[str] = None,
        autostart: bool = True,
    ) -> PlaybackSession:
        session = PlaybackSession(
            self._engine_factory(),
            uri,
            media_kind=MediaKind(media_kind),
            config=self.config,
            metadata=MediaMetadata(title=title, artist=artist, artwork_ref=artwork_ref),
            host=self.host,
            autostart=autostart,
        )
        with self._lock:
            self._playback[session.session_id] = session
        LOG.info("Opened %s session %s for '%s'.", session.media_kind.value, session.session_id, uri)
        return session

    def get_playback(self, session_id: str) -> PlaybackSession:
        with self._lock:
            session = self._playback.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Playback session '{session_id}' not found")
        return session

    def close_playback(self, session_id: str) -> bool:
        with self._lock:
            session = self._playback.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Playback session '{session_id}' not found")
        return session.release()

    def apply_playback_command(
        self,
        session_id: str,
        op: str,
        *,
        position_ms: Optional[int] = None,
        ms: Optional[int] = None,
        volume: Optional[float] = None,
    ) -> Dict[str, object]:
        session = self.get_playback(session_id)
        command = str(op or "").strip().lower()
        result: Dict[str, object] = {}
        if command == "play":
            session.play()
        elif command == "pause":
            session.pause()
        elif command in {"toggle", "toggle_play_pause"}:
            session.toggle_play_pause()
        elif command in {"seek", "seek_to"}:
            if position_ms is None:
                raise InvalidCommand("seek requires position_ms")
            session.seek_to(position_ms)
        elif command in {"skip_forward", "forward"}:
            result["targetMs"] = session.skip_forward(ms)
        elif command in {"skip_backward", "backward", "rewind"}:
            result["targetMs"] = session.skip_backward(ms)
        elif command in {"set_volume", "volume"}:
            if volume is None:
                raise InvalidCommand("set_volume requires volume")
            session.set_volume(volume)
        elif command in {"toggle_mute", "mute"}:
            session.toggle_mute()
        elif command == "retry":
            result["retried"] = session.retry()
        elif command == "attach":
            result["attached"] = session.attach()
        elif command == "detach":
            result["detached"] = session.detach()
        else:
            raise InvalidCommand(f"Unsupported playback op '{op}'")
        result["playback"] = session.snapshot.to_dict()
        return result

    # ------------------------------------------------------------------ images

    def open_image(
        self,
        *,
        path: Optional[str] = None,
        data: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        color=(0, 0, 0, 255),
    ) -> ImageEditSession:
        if path is not None:
            try:
                source = PixelBuffer.from_path(Path(path).expanduser())
            except (FileNotFoundError, UnidentifiedImageError, OSError) as exc:
                raise InvalidArgumentError(f"cannot open image '{path}': {exc}") from exc
        elif data is not None:
            source = decode_image(data)
        elif width and height:
            source = PixelBuffer.blank(width, height, color)
        else:
            raise InvalidArgumentError("an image source is required")

        backend = self._backend_factory() if self._backend_factory is not None else None
        session = ImageEditSession(source, backend=backend, config=self.config, host=self.host)
        with self._lock:
            self._images[session.session_id] = session
        LOG.info("Opened image session %s (%dx%d).", session.session_id, source.width, source.height)
        return session

    def get_image(self, session_id: str) -> ImageEditSession:
        with self._lock:
            session = self._images.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Image session '{session_id}' not found")
        return session

    def close_image(self, session_id: str) -> bool:
        with self._lock:
            session = self._images.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(f"Image session '{session_id}' not found")
        return session.close()

    def apply_image_command(self, session_id: str, op: str, **params) -> Dict[str, object]:
        session = self.get_image(session_id)
        command = str(op or "").strip().lower()

        def need(*names: str) -> list:
            missing = [name for name in names if params.get(name) is None]
            if missing:
                raise InvalidCommand(f"{command} requires {', '.join(missing)}")
            return [params[name] for name in names]

        changed = True
        if command in {"apply_filter", "filter"}:
            (kind,) = need("filter")
            changed = session.apply_filter(kind)
        elif command in {"adjust_brightness", "brightness"}:
            (factor,) = need("factor")
            changed = session.adjust_brightness(factor)
        elif command in {"adjust_contrast", "contrast"}:
            (factor,) = need("factor")
            changed = session.adjust_contrast(factor)
        elif command in {"rotate_90_cw", "rotate_cw"}:
            changed = session.rotate_90_cw()
        elif command in {"rotate_90_ccw", "rotate_ccw"}:
            changed = session.rotate_90_ccw()
        elif command == "rotate_180":
            changed = session.rotate_180()
        elif command == "crop":
            changed = session.crop(*need("x", "y", "width", "height"))
        elif command in {"reset_to_original", "reset"}:
            changed = session.reset_to_original()
        elif command == "reset_transform":
            session.reset_transform()
        elif command == "set_scale":
            (scale,) = need("scale")
            session.set_scale(scale)
        elif command in {"apply_gesture", "gesture"}:
            session.apply_gesture(
                params.get("pan_x", 0.0),
                params.get("pan_y", 0.0),
                params.get("zoom", 1.0),
                params.get("rotation", 0.0),
            )
        elif command in {"toggle_zoom", "double_tap"}:
            session.toggle_zoom(*need("tap_x", "tap_y", "viewport_width", "viewport_height"))
        else:
            raise InvalidCommand(f"Unsupported image op '{op}'")
        return {"changed": changed, "image": session.snapshot.to_dict()}

    def preview_png(self, session_id: str) -> bytes:
        return encode_png(self.get_image(session_id).working)

    # ------------------------------------------------------------------ shutdown

    def close_all(self) -> None:
        """
        Signal host destruction, releasing and closing every session.
        """

        host = self.host
        with self._lock:
            self._playback.clear()
            self._images.clear()
            self.host = HostLifecycle()
        host.destroy()
