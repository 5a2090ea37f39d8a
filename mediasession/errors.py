"""
Exception hierarchy shared by the playback and image editing sessions.
"""

from __future__ import annotations


class MediaSessionError(RuntimeError):
    """Base class for media session related errors."""


class EngineUnavailableError(MediaSessionError):
    """Raised when a media engine cannot be created due to missing dependencies."""


class EngineReleasedError(MediaSessionError):
    """Raised when a released engine handle is used again."""


class InvalidArgumentError(MediaSessionError, ValueError):
    """Raised when caller input violates an operation precondition."""


class ProfileNotFoundError(MediaSessionError, KeyError):
    """Raised when a configuration profile is not defined."""

    def __str__(self) -> str:  # KeyError quotes its message otherwise
        return str(self.args[0]) if self.args else ""


class InvalidCommand(InvalidArgumentError):
    """Raised when a host command names an unknown operation or lacks its arguments."""


class SessionNotFoundError(MediaSessionError, KeyError):
    """Raised when a session id is not registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""
