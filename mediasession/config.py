"""
Session configuration and YAML profiles.

Profiles live in ``configs/profiles.yaml`` next to this module.  Each top level
key names a profile whose values override the :class:`SessionConfig` defaults.
Set ``MEDIASESSION_PROFILES`` to load a different file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import InvalidArgumentError, ProfileNotFoundError

LOG = logging.getLogger(__name__)

ENV_PROFILES_VAR = "MEDIASESSION_PROFILES"
CONFIG_DIR = Path(__file__).resolve().parent / "configs"
PROFILES_PATH = CONFIG_DIR / "profiles.yaml"

DEFAULT_PROFILE = "default"


@dataclass(frozen=True)
class SessionConfig:
    """
    Tunables shared by playback and image editing sessions.

    Skip magnitudes and the sampling cadence are in milliseconds; the scale
    limits bound the presentation zoom of image sessions.
    """

    profile: str = DEFAULT_PROFILE
    audio_skip_ms: int = 15_000
    video_skip_ms: int = 10_000
    sample_interval_ms: int = 500
    initial_volume: float = 1.0
    min_scale: float = 0.5
    max_scale: float = 5.0
    double_tap_scale: float = 2.5

    def __post_init__(self) -> None:
        if self.sample_interval_ms <= 0:
            raise InvalidArgumentError("sample_interval_ms must be positive")
        if self.audio_skip_ms < 0 or self.video_skip_ms < 0:
            raise InvalidArgumentError("skip magnitudes must be non-negative")
        if self.min_scale <= 0 or self.min_scale > self.max_scale:
            raise InvalidArgumentError(
                f"invalid scale limits [{self.min_scale}, {self.max_scale}]"
            )

    @property
    def sample_interval(self) -> float:
        """Sampling cadence in seconds."""

        return self.sample_interval_ms / 1000.0

    def to_dict(self) -> dict:
        return {field.name: getattr(self, field.name) for field in fields(self)}

    @classmethod
    def from_mapping(cls, name: str, payload: Dict[str, Any]) -> "SessionConfig":
        known = {field.name for field in fields(cls)} - {"profile"}
        values: Dict[str, Any] = {}
        for key, value in (payload or {}).items():
            if key not in known:
                LOG.warning("Ignoring unknown key '%s' in profile '%s'.", key, name)
                continue
            values[key] = value
        return cls(profile=name, **values)

    @classmethod
    def from_profile(cls, name: str = DEFAULT_PROFILE, path: Optional[Path] = None) -> "SessionConfig":
        profiles = load_profiles(path)
        if name not in profiles:
            if name == DEFAULT_PROFILE:
                return cls()
            raise ProfileNotFoundError(f"Profile '{name}' is not defined")
        return cls.from_mapping(name, profiles[name] or {})


def profiles_path() -> Path:
    override = os.environ.get(ENV_PROFILES_VAR)
    if override:
        return Path(override).expanduser()
    return PROFILES_PATH


def load_profiles(path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """
    Read the profile table, returning an empty mapping when the file is missing.
    """

    target = Path(path) if path is not None else profiles_path()
    try:
        with target.open("r", encoding="utf-8") as handle:
            profiles = yaml.safe_load(handle) or {}
    except FileNotFoundError:
        LOG.debug("Profile file %s not found; using built-in defaults.", target)
        return {}
    if not isinstance(profiles, dict):
        LOG.warning("Profile file %s does not contain a mapping; ignoring it.", target)
        return {}
    return profiles
