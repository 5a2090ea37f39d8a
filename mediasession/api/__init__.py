"""
Host control API.
"""

from .registry import SessionRegistry
from .server import create_app

__all__ = ["SessionRegistry", "create_app"]
