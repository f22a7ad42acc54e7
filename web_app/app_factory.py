"""FastAPI application factory."""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from snaplinks.errors import SnaplinksError

from .api import api_router
from .web import web_router
from .middleware.logging import LoggingMiddleware


def create_app(
    service_instance,
    identity_instance,
    config,
    logger: logging.Logger = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        service_instance: ScreenshotService instance (may be set later in lifespan)
        identity_instance: IdentityProvider instance (may be set later in lifespan)
        config: Configuration instance
        logger: Optional logger

    Returns:
        Configured FastAPI app
    """
    logger = logger or logging.getLogger("snaplinks.web")

    app = FastAPI(
        title="Snaplinks",
        description="Private screenshot hosting with short links",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Store instances in app state for access in routes
    app.state.service = service_instance
    app.state.identity = identity_instance
    app.state.config = config
    app.state.logger = logger

    @app.exception_handler(SnaplinksError)
    async def snaplinks_error_handler(request: Request, exc: SnaplinksError):
        if exc.status_code >= 500:
            logger.error(f"Error in {request.url.path}: {exc.message}")
        else:
            logger.info(f"Rejected {request.method} {request.url.path}: {exc.status_code} {exc.message}")
        body = {"error": exc.message}
        if exc.details:
            body["detail"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=body)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(LoggingMiddleware, logger=logger)

    # Local storage backend: files are served straight from disk
    if config.storage_backend == "local":
        os.makedirs(config.storage_root, exist_ok=True)
        app.mount("/files", StaticFiles(directory=config.storage_root), name="files")

    app.include_router(api_router, prefix="/api", tags=["API"])
    app.include_router(web_router, tags=["Web"])

    return app
