from __future__ import annotations

import pytest

from fakes import FakeEngine
from mediasession.errors import InvalidArgumentError
from mediasession.playback import (
    EnginePlaybackState,
    MediaKind,
    MediaMetadata,
    PlaybackPhase,
    PlaybackStateReconciler,
)
from mediasession.playback.reconciler import clamp01


def make_reconciler(engine: FakeEngine, **kwargs) -> PlaybackStateReconciler:
    kwargs.setdefault("uri", "file:///media/clip.mp4")
    reconciler = PlaybackStateReconciler(engine, **kwargs)
    reconciler.prepare()
    return reconciler


def ready(engine: FakeEngine, reconciler: PlaybackStateReconciler, position_ms: int = 0) -> None:
    engine.emit_state(EnginePlaybackState.READY)
    engine.position_ms = position_ms
    reconciler.sample()


def test_prepare_registers_listener_and_loads() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)

    snapshot = reconciler.snapshot()
    assert engine.prepared == ["file:///media/clip.mp4"]
    assert engine.listeners == [reconciler]
    assert engine.volumes == [1.0]
    assert snapshot.phase is PlaybackPhase.PREPARING
    assert snapshot.is_loading is True
    assert snapshot.duration_ms == 0


def test_ready_populates_duration() -> None:
    engine = FakeEngine(duration_ms=240_000)
    reconciler = make_reconciler(engine)

    engine.emit_state(EnginePlaybackState.READY)

    snapshot = reconciler.snapshot()
    assert snapshot.phase is PlaybackPhase.READY
    assert snapshot.is_loading is False
    assert snapshot.duration_ms == 240_000


def test_ready_with_unknown_duration_keeps_zero() -> None:
    engine = FakeEngine(duration_ms=-1)
    reconciler = make_reconciler(engine)

    engine.emit_state(EnginePlaybackState.READY)

    assert reconciler.snapshot().duration_ms == 0


def test_skip_forward_clamps_to_duration() -> None:
    engine = FakeEngine(duration_ms=100_000)
    reconciler = make_reconciler(engine, media_kind=MediaKind.AUDIO, default_skip_ms=15_000)
    ready(engine, reconciler, position_ms=95_000)

    target = reconciler.skip_forward()

    assert target == 100_000
    assert engine.seeks == [100_000]


def test_skip_backward_clamps_to_zero() -> None:
    engine = FakeEngine(duration_ms=100_000)
    reconciler = make_reconciler(engine, default_skip_ms=10_000)
    ready(engine, reconciler, position_ms=4_000)

    assert reconciler.skip_backward() == 0
    assert reconciler.skip_backward(2_000) == 2_000
    assert engine.seeks == [0, 2_000]


def test_skip_uses_explicit_magnitude() -> None:
    engine = FakeEngine(duration_ms=100_000)
    reconciler = make_reconciler(engine)
    ready(engine, reconciler, position_ms=50_000)

    assert reconciler.skip_forward(5_000) == 55_000
    assert reconciler.skip_backward(20_000) == 30_000


def test_skip_with_unknown_duration_targets_zero() -> None:
    engine = FakeEngine(duration_ms=0)
    reconciler = make_reconciler(engine)

    assert reconciler.skip_forward() == 0


def test_seek_is_forwarded_unclamped_without_publishing() -> None:
    engine = FakeEngine(duration_ms=100_000)
    reconciler = make_reconciler(engine)
    ready(engine, reconciler)
    before = reconciler.snapshot()

    reconciler.seek_to(250_000)

    assert engine.seeks == [250_000]
    assert reconciler.snapshot() is before


def test_set_volume_clamps() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)

    assert reconciler.set_volume(1.7).volume == 1.0
    assert reconciler.set_volume(-0.2).volume == 0.0
    assert engine.volumes[-2:] == [1.0, 0.0]


def test_mute_round_trip_restores_volume() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    reconciler.set_volume(0.6)

    muted = reconciler.toggle_mute()
    assert muted.is_muted is True
    assert muted.effective_volume == 0.0
    assert engine.volumes[-1] == 0.0

    unmuted = reconciler.toggle_mute()
    assert unmuted.is_muted is False
    assert unmuted.effective_volume == pytest.approx(0.6)
    assert engine.volumes[-1] == pytest.approx(0.6)


def test_set_volume_while_muted_stays_silent() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    reconciler.toggle_mute()

    snapshot = reconciler.set_volume(0.3)

    assert engine.volumes[-1] == 0.0
    assert snapshot.volume == pytest.approx(0.3)
    assert reconciler.toggle_mute().effective_volume == pytest.approx(0.3)


def test_metadata_first_writer_wins() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine, metadata=MediaMetadata(title="Caller Title"))

    engine.emit_metadata(MediaMetadata(title="Tag Title", artist="Tag Artist"))
    engine.emit_metadata(MediaMetadata(artist="Later Artist", artwork_ref="cover.png"))

    snapshot = reconciler.snapshot()
    assert snapshot.title == "Caller Title"
    assert snapshot.artist == "Tag Artist"
    assert snapshot.artwork_ref == "cover.png"


def test_empty_metadata_does_not_publish() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    rev = reconciler.snapshot().rev

    engine.emit_metadata(MediaMetadata(title="  "))

    assert reconciler.snapshot().rev == rev


def test_playing_transitions() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    engine.emit_state(EnginePlaybackState.READY)

    engine.emit_playing(True)
    assert reconciler.snapshot().phase is PlaybackPhase.PLAYING
    assert reconciler.snapshot().is_playing is True

    engine.emit_playing(False)
    assert reconciler.snapshot().phase is PlaybackPhase.PAUSED


def test_toggle_play_pause_follows_snapshot() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    engine.emit_state(EnginePlaybackState.READY)

    reconciler.toggle_play_pause()
    engine.emit_playing(True)
    reconciler.toggle_play_pause()

    assert engine.calls == ["play", "pause"]


def test_buffering_sets_loading() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    engine.emit_state(EnginePlaybackState.READY)

    engine.emit_state(EnginePlaybackState.BUFFERING)

    assert reconciler.snapshot().is_loading is True
    assert reconciler.snapshot().phase is PlaybackPhase.PREPARING


def test_ended_moves_position_to_duration() -> None:
    engine = FakeEngine(duration_ms=60_000)
    reconciler = make_reconciler(engine)
    ready(engine, reconciler, position_ms=59_500)

    engine.emit_state(EnginePlaybackState.ENDED)

    snapshot = reconciler.snapshot()
    assert snapshot.phase is PlaybackPhase.ENDED
    assert snapshot.position_ms == 60_000
    assert snapshot.progress == 1.0


def test_engine_error_is_sticky_until_retry() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)

    engine.emit_error("decoder missing")
    engine.emit_state(EnginePlaybackState.READY)

    snapshot = reconciler.snapshot()
    assert snapshot.phase is PlaybackPhase.ERROR
    assert snapshot.error == "decoder missing"
    assert engine.prepared == ["file:///media/clip.mp4"]

    assert reconciler.retry() is True
    snapshot = reconciler.snapshot()
    assert snapshot.phase is PlaybackPhase.PREPARING
    assert snapshot.error is None
    assert len(engine.prepared) == 2


def test_retry_outside_error_is_noop() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)

    assert reconciler.retry() is False
    assert len(engine.prepared) == 1


def test_prepare_failure_reports_error() -> None:
    engine = FakeEngine(fail_prepare="unsupported container")
    reconciler = make_reconciler(engine)

    snapshot = reconciler.snapshot()
    assert snapshot.phase is PlaybackPhase.ERROR
    assert snapshot.error == "unsupported container"
    assert snapshot.is_loading is False


def test_sample_publishes_only_on_change() -> None:
    engine = FakeEngine(duration_ms=10_000)
    reconciler = make_reconciler(engine)
    engine.emit_state(EnginePlaybackState.READY)

    engine.position_ms = 1_000
    engine.buffered = 0.25
    assert reconciler.sample() is True
    assert reconciler.sample() is False

    snapshot = reconciler.snapshot()
    assert snapshot.position_ms == 1_000
    assert snapshot.buffered_fraction == 0.25


def test_sample_clamps_position_into_duration() -> None:
    engine = FakeEngine(duration_ms=10_000)
    reconciler = make_reconciler(engine)
    engine.emit_state(EnginePlaybackState.READY)

    engine.position_ms = 12_000
    engine.buffered = 1.4
    reconciler.sample()

    snapshot = reconciler.snapshot()
    assert snapshot.position_ms == 10_000
    assert snapshot.buffered_fraction == 1.0


def test_subscribe_delivers_current_snapshot() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    received = []

    token = reconciler.subscribe(received.append)
    reconciler.set_volume(0.5)
    reconciler.unsubscribe(token)
    reconciler.set_volume(0.4)

    assert [snapshot.volume for snapshot in received] == [1.0, 0.5]
    assert received[1].rev == received[0].rev + 1


def test_release_is_idempotent_and_detaches() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)

    assert reconciler.release() is True
    assert reconciler.release() is False

    assert engine.release_count == 1
    assert engine.listeners == []
    assert reconciler.snapshot().phase is PlaybackPhase.RELEASED
    assert reconciler.snapshot().is_released is True


def test_controls_after_release_are_noops() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    reconciler.release()
    released = reconciler.snapshot()

    reconciler.play()
    reconciler.seek_to(1_000)
    assert reconciler.skip_forward() is None
    reconciler.set_volume(0.2)
    reconciler.on_player_error("late")
    reconciler.on_playback_state_changed(EnginePlaybackState.READY)

    assert engine.calls == []
    assert engine.seeks == []
    assert reconciler.sample() is False
    assert reconciler.snapshot() is released


def test_rejected_engine_commands_leave_state_untouched() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    ready(engine, reconciler, position_ms=5_000)
    before = reconciler.snapshot()
    engine.fail_commands = "no media loaded"

    reconciler.play()
    reconciler.pause()
    reconciler.toggle_play_pause()
    reconciler.seek_to(1_000)
    assert reconciler.skip_forward(2_000) == 7_000
    assert reconciler.set_volume(0.3) is before
    assert reconciler.toggle_mute() is before

    assert reconciler.snapshot() is before
    engine.fail_commands = None
    unmuted = reconciler.set_volume(0.3)
    assert unmuted.volume == pytest.approx(0.3)
    assert unmuted.is_muted is False
    assert engine.volumes[-1] == pytest.approx(0.3)


def test_nan_volume_is_rejected() -> None:
    engine = FakeEngine()
    reconciler = make_reconciler(engine)
    before = reconciler.snapshot()

    with pytest.raises(InvalidArgumentError):
        reconciler.set_volume(float("nan"))

    assert reconciler.snapshot() is before
    assert engine.volumes == [1.0]
    assert clamp01(float("nan")) == 0.0
