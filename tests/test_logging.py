from __future__ import annotations

import logging

import pytest

from mediasession.utils import configure_logging


@pytest.fixture()
def bare_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    try:
        yield root
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("uvicorn.access").setLevel(logging.NOTSET)


def test_configures_once_with_level_name(bare_root) -> None:
    assert configure_logging("debug") is True
    assert bare_root.level == logging.DEBUG
    assert logging.getLogger("uvicorn.access").level == logging.WARNING

    assert configure_logging(logging.ERROR) is False
    assert bare_root.level == logging.DEBUG


def test_unknown_level_name_raises(bare_root) -> None:
    with pytest.raises(ValueError):
        configure_logging("chatty")
    assert bare_root.handlers == []
