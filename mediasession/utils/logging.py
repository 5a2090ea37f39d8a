"""
Logging helpers for mediasession.

Sessions only ever call ``logging.getLogger(__name__)``; the host decides how
records are rendered by calling :func:`configure_logging` once at startup.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable, Optional, Union

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"

# Per-request access lines drown out session transitions at INFO.
NOISY_LOGGERS = ("uvicorn.access",)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level '{level}'")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.INFO,
    format: Optional[str] = None,
    *,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> bool:
    """
    Configure the root logger once; returns ``False`` if the host already did.

    ``level`` accepts a number or a name such as ``"debug"``.  Loggers listed in
    ``quiet`` are raised to WARNING.
    """

    numeric = _resolve_level(level)
    root = logging.getLogger()
    if root.handlers:
        return False

    logging.basicConfig(
        level=numeric,
        format=format or DEFAULT_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in quiet:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    return True
