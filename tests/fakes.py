from __future__ import annotations

import threading
from typing import List, Optional

from mediasession.errors import EngineReleasedError
from mediasession.image import NumpyFilterBackend, PixelBuffer
from mediasession.playback import EngineListener, EnginePlaybackState, MediaEngine, MediaMetadata


class FakeEngine(MediaEngine):
    def __init__(
        self,
        *,
        duration_ms: int = 100_000,
        fail_prepare: Optional[str] = None,
        fail_commands: Optional[str] = None,
    ) -> None:
        self.listeners: List[EngineListener] = []
        self.calls: List[str] = []
        self.seeks: List[int] = []
        self.volumes: List[float] = []
        self.prepared: List[str] = []
        self.position_ms = 0
        self.duration = duration_ms
        self.buffered = 0.0
        self.release_count = 0
        self.fail_prepare = fail_prepare
        self.fail_commands = fail_commands

    def _check(self) -> None:
        if self.release_count:
            raise EngineReleasedError("engine released")

    def _command(self) -> None:
        self._check()
        if self.fail_commands:
            raise RuntimeError(self.fail_commands)

    def prepare(self, uri: str, metadata: Optional[MediaMetadata] = None) -> None:
        self._check()
        if self.fail_prepare:
            raise RuntimeError(self.fail_prepare)
        self.prepared.append(uri)

    def play(self) -> None:
        self._command()
        self.calls.append("play")

    def pause(self) -> None:
        self._command()
        self.calls.append("pause")

    def seek_to(self, position_ms: int) -> None:
        self._command()
        self.seeks.append(position_ms)

    def set_volume(self, volume: float) -> None:
        self._command()
        self.volumes.append(volume)

    def current_position_ms(self) -> int:
        self._check()
        return self.position_ms

    def duration_ms(self) -> int:
        self._check()
        return self.duration

    def buffered_fraction(self) -> float:
        self._check()
        return self.buffered

    def add_listener(self, listener: EngineListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: EngineListener) -> None:
        self.listeners.remove(listener)

    def release(self) -> None:
        self.release_count += 1

    # Helpers driving the listener surface.

    def emit_state(self, state: EnginePlaybackState) -> None:
        for listener in list(self.listeners):
            listener.on_playback_state_changed(state)

    def emit_playing(self, playing: bool) -> None:
        for listener in list(self.listeners):
            listener.on_is_playing_changed(playing)

    def emit_metadata(self, metadata: MediaMetadata) -> None:
        for listener in list(self.listeners):
            listener.on_media_metadata_changed(metadata)

    def emit_error(self, message: str) -> None:
        for listener in list(self.listeners):
            listener.on_player_error(message)


class FakeBackend(NumpyFilterBackend):
    """Numpy kernels with switchable failures and an optional gate."""

    def __init__(self) -> None:
        self.fail: set = set()
        self.raise_on: set = set()
        self.calls: List[str] = []
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()

    def _enter(self, name: str) -> bool:
        self.calls.append(name)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if name in self.raise_on:
            raise RuntimeError(f"{name} exploded")
        return name not in self.fail

    def apply_grayscale(self, buffer: PixelBuffer) -> bool:
        return self._enter("grayscale") and super().apply_grayscale(buffer)

    def apply_sepia(self, buffer: PixelBuffer) -> bool:
        return self._enter("sepia") and super().apply_sepia(buffer)

    def apply_invert(self, buffer: PixelBuffer) -> bool:
        return self._enter("invert") and super().apply_invert(buffer)

    def adjust_brightness(self, buffer: PixelBuffer, factor: int) -> bool:
        return self._enter("brightness") and super().adjust_brightness(buffer, factor)

    def adjust_contrast(self, buffer: PixelBuffer, factor: float) -> bool:
        return self._enter("contrast") and super().adjust_contrast(buffer, factor)

    def rotate_180(self, buffer: PixelBuffer) -> bool:
        return self._enter("rotate_180") and super().rotate_180(buffer)

    def rotate_90_cw(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        return super().rotate_90_cw(buffer) if self._enter("rotate_90_cw") else None

    def rotate_90_ccw(self, buffer: PixelBuffer) -> Optional[PixelBuffer]:
        return super().rotate_90_ccw(buffer) if self._enter("rotate_90_ccw") else None

    def crop(self, buffer: PixelBuffer, x: int, y: int, width: int, height: int) -> Optional[PixelBuffer]:
        return super().crop(buffer, x, y, width, height) if self._enter("crop") else None
