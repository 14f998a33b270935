"""Main FastAPI application for the Mermaid permalink service."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from .. import __version__
from .models.config import APIConfig
from .models.responses import ErrorResponse
from .routes import health, pages, render, submissions
from .services.cache_coordinator import CacheCoordinator
from .services.cache_store import CacheStore, build_cache_store
from .services.dispatcher import RenderDispatcher
from .services.renderer import DiagramRenderer, PlaywrightRenderer

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """Set up root logging once; uvicorn keeps its own handlers."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class PreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware answering successful preflights with 204 No Content."""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value for key, value in response.headers.items()
            if key.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


async def periodic_purge(store: CacheStore, interval_seconds: int):
    """Periodic removal of expired cache entries."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            result = await store.purge_expired()
            if result["purged_entries"] > 0:
                logger.info(
                    "Cache purge: removed %d expired entries, freed %d bytes",
                    result["purged_entries"], result["bytes_freed"],
                )
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.exception("Cache purge error: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    config: APIConfig = app.state.config
    logger.info("Starting Mermaid Permalink API v%s", app.version)
    logger.info("Configuration: %s", config.model_dump())

    purge_task = asyncio.create_task(
        periodic_purge(app.state.cache_store, config.cache_purge_interval_seconds)
    )

    yield

    purge_task.cancel()
    try:
        await purge_task
    except asyncio.CancelledError:
        pass
    logger.info("API shutdown complete")


def create_app(
    config: Optional[APIConfig] = None,
    renderer: Optional[DiagramRenderer] = None,
    cache_store: Optional[CacheStore] = None,
) -> FastAPI:
    """
    Build the application with its collaborators.

    Args:
        config: Settings; read from the environment when omitted
        renderer: Render engine; Playwright when omitted
        cache_store: Durable cache; chosen by ``CACHE_BACKEND`` when omitted

    Returns:
        Configured FastAPI application
    """
    config = config or APIConfig.from_env()

    app = FastAPI(
        title="Mermaid Permalink API",
        description="Permanent, cacheable image URLs for Mermaid diagrams",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    store = cache_store if cache_store is not None else build_cache_store(config)
    app.state.config = config
    app.state.cache_store = store
    app.state.dispatcher = RenderDispatcher(
        renderer if renderer is not None else PlaywrightRenderer(config),
        timeout_seconds=config.render_timeout_seconds,
    )
    app.state.cache_coordinator = CacheCoordinator(
        store,
        max_age_seconds=config.cache_max_age_seconds,
        single_flight=config.single_flight,
    )

    app.add_middleware(
        PreflightCORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with structured error responses."""

        # If detail is already a dict (from our endpoints), use it directly
        if isinstance(exc.detail, dict):
            error_detail = exc.detail
        else:
            error_detail = {
                "code": "HTTP_ERROR",
                "message": str(exc.detail),
                "details": None
            }

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=error_detail,
                timestamp=datetime.now()
            ).model_dump(mode="json"),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception("Unexpected error on %s: %s", request.url.path, exc)

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error={
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": str(exc) if config.debug else None
                },
                timestamp=datetime.now()
            ).model_dump(mode="json")
        )

    app.include_router(health.router)
    app.include_router(pages.router)
    app.include_router(submissions.router)
    app.include_router(render.router)

    return app


# Global config instance
config = APIConfig.from_env()
configure_logging(config.log_level)

app = create_app(config)


def run():
    """Console entry point."""
    uvicorn.run(
        "mermaid_permalink.api.main:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    run()
