from __future__ import annotations

import pytest

from mediasession.errors import InvalidArgumentError
from mediasession.image import IDENTITY, TransformStack


def test_gesture_accumulates_and_clamps() -> None:
    stack = TransformStack()

    stack.apply_gesture(pan_x=10, pan_y=-5, zoom=2.0)
    state = stack.apply_gesture(pan_x=5, pan_y=5, zoom=4.0)

    assert state.scale == 5.0
    assert (state.offset_x, state.offset_y) == (15.0, 0.0)


def test_gesture_rotation_disabled_by_default() -> None:
    stack = TransformStack()
    assert stack.apply_gesture(rotation=45.0).rotation_deg == 0.0

    rotating = TransformStack(allow_rotation=True)
    rotating.apply_gesture(rotation=300.0)
    assert rotating.apply_gesture(rotation=90.0).rotation_deg == 30.0


def test_zoom_out_respects_minimum() -> None:
    stack = TransformStack(min_scale=0.5)
    assert stack.apply_gesture(zoom=0.1).scale == 0.5


def test_toggle_zoom_in_and_out() -> None:
    stack = TransformStack()

    zoomed = stack.toggle_zoom(tap_x=0, tap_y=0, viewport_width=200, viewport_height=100)
    assert zoomed.scale == 2.5
    assert (zoomed.offset_x, zoomed.offset_y) == (150.0, 75.0)

    assert stack.toggle_zoom(50, 50, 200, 100) == IDENTITY


def test_toggle_zoom_from_zoomed_out_zooms_in() -> None:
    stack = TransformStack()
    stack.set_scale(0.75)

    assert stack.toggle_zoom(100, 50, 200, 100).scale == 2.5


def test_reset_and_offsets() -> None:
    stack = TransformStack()
    stack.set_offset(3, 4)
    assert stack.state.offset_x == 3.0

    assert stack.reset() is IDENTITY
    assert stack.state.is_identity


@pytest.mark.parametrize("limits", [(0.0, 5.0), (-1.0, 5.0), (3.0, 2.0)])
def test_invalid_limits_raise(limits) -> None:
    with pytest.raises(InvalidArgumentError):
        TransformStack(min_scale=limits[0], max_scale=limits[1])


def test_zoom_must_be_positive() -> None:
    with pytest.raises(InvalidArgumentError):
        TransformStack().apply_gesture(zoom=0)
