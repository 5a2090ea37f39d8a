from __future__ import annotations

import pytest

from mediasession.image import ProcessingGuard


def test_guard_reports_transitions() -> None:
    changes = []
    guard = ProcessingGuard(changes.append)

    with guard.hold("edit") as acquired:
        assert acquired is True
        assert guard.is_processing is True

    assert guard.is_processing is False
    assert changes == [True, False]


def test_nested_hold_is_rejected() -> None:
    guard = ProcessingGuard()

    with guard.hold("outer") as outer:
        with guard.hold("inner") as inner:
            assert outer is True
            assert inner is False
        assert guard.is_processing is True


def test_guard_clears_on_exception() -> None:
    changes = []
    guard = ProcessingGuard(changes.append)

    with pytest.raises(RuntimeError):
        with guard.hold("edit"):
            raise RuntimeError("boom")

    assert guard.is_processing is False
    assert changes == [True, False]
