"""Utility helpers for mediasession."""

from .logging import configure_logging
from .timefmt import format_time

__all__ = ["configure_logging", "format_time"]
