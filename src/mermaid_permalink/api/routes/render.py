"""Render endpoint serving cached diagram images."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response

from ...core.errors import DecodeFailure, RenderFailure
from ...core.formats import RenderFormat
from ..models.responses import error_detail
from ..services.cache_coordinator import CacheCoordinator, cache_key
from ..services.dispatcher import RenderDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()


def get_dispatcher(request: Request) -> RenderDispatcher:
    """Get render dispatcher instance."""
    return request.app.state.dispatcher


def get_cache_coordinator(request: Request) -> CacheCoordinator:
    """Get the process-wide cache coordinator."""
    return request.app.state.cache_coordinator


@router.get("/render/{format}/{token}")
async def render_diagram(
    format: str,
    token: str,
    request: Request,
    dispatcher: RenderDispatcher = Depends(get_dispatcher),
    coordinator: CacheCoordinator = Depends(get_cache_coordinator)
):
    """
    Serve the rendered image for a token.

    The first request for a format/token pair renders it; later requests are
    answered from the cache. Errors are returned as plain text and never cached.
    """
    fmt = RenderFormat.from_path(format)
    if fmt is None:
        raise HTTPException(
            status_code=404,
            detail=error_detail("UNSUPPORTED_FORMAT", "Not Found", f"Unknown render format: {format}")
        )

    key = cache_key(fmt, request.url.path)

    try:
        entry, hit = await coordinator.fetch_or_render(
            key, lambda: dispatcher.render(token, fmt)
        )
    except DecodeFailure as e:
        return PlainTextResponse(
            f"Invalid diagram token: {e.message}",
            status_code=400,
            headers={"Access-Control-Allow-Origin": "*"},
        )
    except RenderFailure as e:
        logger.error("Render failed for %s: %s", key, e.message)
        return PlainTextResponse(
            f"Error rendering diagram: {e.message}",
            status_code=500,
            headers={"Access-Control-Allow-Origin": "*"},
        )

    return Response(
        content=entry.body,
        media_type=entry.content_type,
        headers={
            "Cache-Control": entry.cache_control,
            "Access-Control-Allow-Origin": "*",
            "X-Cache": "HIT" if hit else "MISS",
        },
    )
