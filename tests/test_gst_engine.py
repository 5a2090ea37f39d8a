from __future__ import annotations

from types import SimpleNamespace
from typing import List

import pytest

from mediasession import HostLifecycle
from mediasession.errors import EngineReleasedError, EngineUnavailableError
from mediasession.playback import (
    EngineListener,
    EnginePlaybackState,
    MediaKind,
    MediaMetadata,
    PlaybackPhase,
    PlaybackSession,
)
from mediasession.runtime import gst_engine
from mediasession.runtime.gst_engine import GstMediaEngine, is_available, resolve_uri


class FakePlaybin:
    def __init__(self) -> None:
        self.states: List[str] = []
        self.properties: dict = {}

    def set_property(self, name: str, value) -> None:
        self.properties[name] = value

    def set_state(self, state: str) -> str:
        self.states.append(state)
        return "success"

    def get_bus(self):
        return None


class RecordingListener(EngineListener):
    def __init__(self) -> None:
        self.events: list = []

    def on_is_playing_changed(self, is_playing: bool) -> None:
        self.events.append(("playing", is_playing))

    def on_playback_state_changed(self, state: EnginePlaybackState) -> None:
        self.events.append(("state", state))

    def on_media_metadata_changed(self, metadata: MediaMetadata) -> None:
        self.events.append(("metadata", metadata.title, metadata.artist))

    def on_player_error(self, message: str) -> None:
        self.events.append(("error", message))


def fake_gst(playbin: FakePlaybin) -> SimpleNamespace:
    return SimpleNamespace(
        MessageType=SimpleNamespace(
            ERROR="error",
            EOS="eos",
            WARNING="warning",
            BUFFERING="buffering",
            ASYNC_DONE="async-done",
            STATE_CHANGED="state-changed",
            TAG="tag",
            DURATION_CHANGED="duration-changed",
        ),
        State=SimpleNamespace(NULL="null", PAUSED="paused", PLAYING="playing"),
        StateChangeReturn=SimpleNamespace(FAILURE="failure"),
        ElementFactory=SimpleNamespace(make=lambda factory, name=None: playbin),
        TAG_TITLE="title",
        TAG_ARTIST="artist",
    )


def message(kind: str, src=None, **parsers) -> SimpleNamespace:
    return SimpleNamespace(type=kind, src=src, **parsers)


@pytest.fixture()
def playbin(monkeypatch) -> FakePlaybin:
    element = FakePlaybin()
    monkeypatch.setattr(gst_engine, "Gst", fake_gst(element))
    monkeypatch.setattr(gst_engine, "_ensure_gst_initialised", lambda: None)
    return element


def test_missing_runtime_raises_unavailable(monkeypatch) -> None:
    monkeypatch.setattr(gst_engine, "Gst", None)

    assert gst_engine.is_available() is False
    with pytest.raises(EngineUnavailableError):
        GstMediaEngine()


def test_resolve_uri_accepts_uris_and_existing_paths(tmp_path) -> None:
    sample = tmp_path / "clip.mp4"
    sample.write_text("media")

    assert resolve_uri("https://example.com/a.mp3") == "https://example.com/a.mp3"
    assert resolve_uri(str(sample)) == sample.resolve().as_uri()
    assert resolve_uri(str(tmp_path / "missing.mp4")) is None
    assert resolve_uri("   ") is None
    assert resolve_uri(None) is None


def test_commands_without_media_are_noops(playbin) -> None:
    engine = GstMediaEngine()

    engine.play()
    engine.pause()
    engine.seek_to(5_000)
    engine.set_volume(0.3)

    assert engine.current_position_ms() == 0
    assert engine.duration_ms() == -1
    assert engine.buffered_fraction() == 0.0
    assert playbin.states == []

    engine.release()
    with pytest.raises(EngineReleasedError):
        engine.play()


def test_session_on_missing_file_keeps_controls_usable(playbin) -> None:
    host = HostLifecycle()
    session = PlaybackSession(
        GstMediaEngine(),
        "/no/such/file.mp4",
        media_kind=MediaKind.AUDIO,
        host=host,
        autostart=False,
    )
    assert session.snapshot.phase is PlaybackPhase.ERROR
    assert "could not be resolved" in session.snapshot.error

    session.play()
    session.pause()
    session.toggle_play_pause()
    session.seek_to(1_000)
    assert session.skip_forward() == 0
    assert session.skip_backward() == 0
    session.set_volume(0.3)
    muted = session.toggle_mute()
    host.pause()

    assert muted.phase is PlaybackPhase.ERROR
    assert muted.volume == pytest.approx(0.3)
    assert muted.is_muted is True
    assert session.snapshot is muted
    assert playbin.states == []

    host.destroy()
    assert session.is_released is True


def test_bus_messages_translate_to_listener_events(playbin) -> None:
    engine = GstMediaEngine()
    listener = RecordingListener()
    engine.add_listener(listener)

    engine.prepare("https://example.com/clip.mp4")
    assert playbin.properties["uri"] == "https://example.com/clip.mp4"
    assert listener.events == [("state", EnginePlaybackState.BUFFERING)]
    assert playbin.states == ["paused"]

    engine._handle_bus_message(playbin, message("buffering", parse_buffering=lambda: 40))
    engine.play()
    assert playbin.states == ["paused", "paused"]

    engine._handle_bus_message(playbin, message("buffering", parse_buffering=lambda: 100))
    assert playbin.states[-1] == "playing"

    engine._handle_bus_message(
        playbin,
        message("state-changed", src=object(), parse_state_changed=lambda: ("paused", "playing", "null")),
    )
    engine._handle_bus_message(
        playbin,
        message("state-changed", src=playbin, parse_state_changed=lambda: ("paused", "playing", "null")),
    )
    tags = {"title": "Night Drive", "artist": "Kite"}
    engine._handle_bus_message(
        playbin,
        message("tag", parse_tag=lambda: SimpleNamespace(get_string=lambda tag: (tag in tags, tags.get(tag)))),
    )
    engine._handle_bus_message(playbin, message("eos"))
    engine._handle_bus_message(playbin, message("error", parse_error=lambda: ("decoder died", "dbg")))

    assert listener.events == [
        ("state", EnginePlaybackState.BUFFERING),
        ("state", EnginePlaybackState.BUFFERING),
        ("state", EnginePlaybackState.READY),
        ("playing", True),
        ("metadata", "Night Drive", "Kite"),
        ("state", EnginePlaybackState.ENDED),
        ("playing", False),
        ("error", "decoder died (dbg)"),
        ("state", EnginePlaybackState.ERROR),
    ]
    assert playbin.states[-1] == "paused"


def test_async_done_reports_ready_unless_buffering(playbin) -> None:
    engine = GstMediaEngine()
    listener = RecordingListener()
    engine.add_listener(listener)
    engine.prepare("https://example.com/clip.mp4")

    engine._handle_bus_message(playbin, message("async-done"))
    engine._handle_bus_message(playbin, message("buffering", parse_buffering=lambda: 10))
    engine._handle_bus_message(playbin, message("duration-changed"))

    assert listener.events[1:] == [
        ("state", EnginePlaybackState.READY),
        ("state", EnginePlaybackState.BUFFERING),
    ]


@pytest.mark.skipif(not is_available(), reason="GStreamer runtime not installed")
def test_release_invalidates_handle() -> None:
    engine = GstMediaEngine(video_sink="fakesink", audio_sink="fakesink")

    engine.release()
    engine.release()

    with pytest.raises(EngineReleasedError):
        engine.play()
