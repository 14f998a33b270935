"""Error taxonomy shared by the codec, the render pipeline and the API."""

from typing import Optional


class DiagramLinkError(Exception):
    """Base class for errors raised by the permalink pipeline."""

    code = "DIAGRAM_LINK_ERROR"

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class InputError(DiagramLinkError):
    """Submitted diagram source is missing or empty."""

    code = "INVALID_SOURCE"


class DecodeFailure(DiagramLinkError):
    """A token is not valid URL-safe base64 or does not hold UTF-8 text."""

    code = "INVALID_TOKEN"


class RenderFailure(DiagramLinkError):
    """The render engine timed out, produced no output or rejected the diagram."""

    code = "RENDER_ERROR"


class CacheIOFailure(DiagramLinkError):
    """The durable cache store could not be read or written."""

    code = "CACHE_IO_ERROR"
