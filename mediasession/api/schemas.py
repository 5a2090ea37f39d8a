"""
Pydantic schemas for the host control API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def _normalise_op(value: object) -> str:
    result = str(value or "").strip()
    if not result:
        raise ValueError("op is required")
    return result


class PlaybackOpenRequest(BaseModel):
    uri: str
    media_kind: str = Field(
        default="video",
        validation_alias=AliasChoices("media_kind", "mediaKind", "kind"),
    )
    title: Optional[str] = None
    artist: Optional[str] = None
    artwork_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("artwork_ref", "artworkRef", "artwork"),
    )
    autostart: bool = True

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("uri", mode="before")
    @classmethod
    def _require_uri(cls, value: object) -> str:
        result = str(value or "").strip()
        if not result:
            raise ValueError("uri is required")
        return result

    @field_validator("media_kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: object) -> str:
        result = str(value or "video").strip().lower()
        if result not in {"audio", "video"}:
            raise ValueError("media_kind must be 'audio' or 'video'")
        return result


class PlaybackCommandRequest(BaseModel):
    op: str
    position_ms: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("position_ms", "positionMs", "position"),
    )
    ms: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("ms", "amount", "amountMs"),
    )
    volume: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("volume", "value", "level"),
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("op", mode="before")
    @classmethod
    def _op(cls, value: object) -> str:
        return _normalise_op(value)


class ImageOpenRequest(BaseModel):
    """
    Source for a new image session: a server-side ``path``, base64 encoded
    image ``data``, or a blank ``width`` x ``height`` canvas.
    """

    path: Optional[str] = None
    data: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    color: List[int] = Field(default_factory=lambda: [0, 0, 0, 255])

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: List[int]) -> List[int]:
        if len(value) == 3:
            value = list(value) + [255]
        if len(value) != 4 or any(not 0 <= channel <= 255 for channel in value):
            raise ValueError("color must be 3 or 4 channel values in [0, 255]")
        return value

    @model_validator(mode="after")
    def _one_source(self) -> "ImageOpenRequest":
        sources = [self.path is not None, self.data is not None, self.width is not None or self.height is not None]
        if sum(sources) != 1:
            raise ValueError("provide exactly one of path, data or width/height")
        if sources[2] and (not self.width or not self.height or self.width <= 0 or self.height <= 0):
            raise ValueError("width and height must both be positive")
        return self


class ImageCommandRequest(BaseModel):
    op: str
    filter: Optional[str] = Field(default=None, validation_alias=AliasChoices("filter", "kind"))
    factor: Optional[float] = None
    x: Optional[int] = None
    y: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    scale: Optional[float] = None
    pan_x: float = Field(default=0.0, validation_alias=AliasChoices("pan_x", "panX"))
    pan_y: float = Field(default=0.0, validation_alias=AliasChoices("pan_y", "panY"))
    zoom: float = 1.0
    rotation: float = 0.0
    tap_x: Optional[float] = Field(default=None, validation_alias=AliasChoices("tap_x", "tapX"))
    tap_y: Optional[float] = Field(default=None, validation_alias=AliasChoices("tap_y", "tapY"))
    viewport_width: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("viewport_width", "viewportWidth"),
    )
    viewport_height: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("viewport_height", "viewportHeight"),
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("op", mode="before")
    @classmethod
    def _op(cls, value: object) -> str:
        return _normalise_op(value)
