"""Render dispatcher: token in, rendered image out."""

import asyncio
import logging
import time
from dataclasses import dataclass

from ...core.canonicalizer import canonicalize
from ...core.codec import decode
from ...core.errors import DecodeFailure, RenderFailure
from ...core.formats import RenderFormat
from .renderer import DiagramRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedDiagram:
    """Image bytes produced by the render engine."""
    body: bytes
    content_type: str


class RenderDispatcher:
    """Decodes tokens and drives the render engine. Never touches the cache."""

    def __init__(self, renderer: DiagramRenderer, timeout_seconds: float = 10.0):
        self.renderer = renderer
        self.timeout_seconds = timeout_seconds

    async def render(self, token: str, fmt: RenderFormat) -> RenderedDiagram:
        """
        Render the diagram carried by a token.

        Args:
            token: URL-safe token from the request path
            fmt: Requested output format

        Returns:
            RenderedDiagram with the content type of the format

        Raises:
            DecodeFailure: If the token is malformed or holds no diagram
            RenderFailure: If the engine fails or exceeds the timeout
        """
        # Tokens minted outside the submission endpoint may not be canonical
        source = canonicalize(decode(token))
        if not source:
            raise DecodeFailure("token contains no diagram source")

        start_time = time.monotonic()
        try:
            body = await asyncio.wait_for(
                self.renderer.render(source, fmt),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Render of %s timed out after %ss", fmt.value, self.timeout_seconds)
            raise RenderFailure(f"render timed out after {self.timeout_seconds:g} seconds") from e
        except RenderFailure:
            raise
        except Exception as e:
            logger.warning("Render of %s failed: %s", fmt.value, e)
            raise RenderFailure(str(e) or e.__class__.__name__) from e

        logger.info(
            "Rendered %s (%d bytes) in %.2fs",
            fmt.value, len(body), time.monotonic() - start_time,
        )
        return RenderedDiagram(body=body, content_type=fmt.content_type)
