"""
FastAPI application entry point.

This module creates and configures the FastAPI application through an
application factory (create_app), which lets tests build instances with
their own settings.

For local development:
    uvicorn src.main:app --reload

For production:
    gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.middleware import MaxBodySizeMiddleware
from .api.routes import health, videos
from .config.settings import Settings, get_settings
from .core.errors import TubelyError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup configuration and warn about missing settings."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "Tubely API starting",
        extra={
            "version": __version__,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "media_probe": settings.media_probe_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Tubely API shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings used for app-level wiring (body size limit,
            CORS). Defaults to the cached environment settings. Route
            handlers still resolve settings through get_settings, so
            tests override that dependency as well.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Video hosting backend.

        ## Uploads

        1. **Video**: `POST /api/videos/{video_id}/upload`
           - multipart field `video`, `video/mp4` only, up to 1 GiB
           - stored under `landscape/`, `portrait/` or `other/`

        2. **Thumbnail**: `POST /api/thumbnail_upload/{video_id}`
           - multipart field `thumbnail`, JPEG or PNG

        ## Authentication

        All upload endpoints require `Authorization: Bearer <JWT>` and
        the caller must own the video.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        MaxBodySizeMiddleware,
        max_body_size=settings.max_upload_size_bytes,
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        videos.router,
        prefix="/api",
        tags=["Videos"],
    )

    @app.exception_handler(TubelyError)
    async def tubely_error_handler(request: Request, exc: TubelyError):
        """Render pipeline errors as a short message with their status."""
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    logger.info(
        "FastAPI application created",
        extra={"title": settings.api_title, "version": settings.api_version}
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8091,
        reload=True,
        log_level=settings.log_level.lower(),
    )
