"""Supported output formats."""

from enum import Enum
from typing import Optional


class RenderFormat(str, Enum):
    """Output encoding of a rendered diagram; the value is the URL path segment."""

    SVG = "svg"
    PNG = "png"

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @property
    def is_vector(self) -> bool:
        return self is RenderFormat.SVG

    @classmethod
    def from_path(cls, segment: str) -> Optional["RenderFormat"]:
        """Return the format for a URL path segment, or None if unsupported."""
        try:
            return cls(segment)
        except ValueError:
            return None


_CONTENT_TYPES = {
    RenderFormat.SVG: "image/svg+xml",
    RenderFormat.PNG: "image/png",
}
