"""Named colour filters for image edit sessions."""

from __future__ import annotations

from enum import Enum
from typing import Union

from ..errors import InvalidArgumentError


class FilterKind(str, Enum):
    NONE = "none"
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    INVERT = "invert"

    @classmethod
    def parse(cls, value: Union["FilterKind", str]) -> "FilterKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            options = ", ".join(kind.value for kind in cls)
            raise InvalidArgumentError(f"unknown filter {value!r}; expected one of {options}") from None
