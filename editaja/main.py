"""FastAPI application entry point for edit Aja."""

from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from editaja.api.v1 import router as v1_router
from editaja.config import get_settings
from editaja.dependencies import is_local_mode
from editaja.middleware.error_handler import (
    ErrorHandlerMiddleware,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from editaja.utils.exceptions import EditAjaException
from editaja.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown events."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} API {settings.api_version}")

    Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)
    logger.info(f"Uploads directory ready: {settings.uploads_dir}")

    logger.info(f"Running in {settings.environment} mode")
    if is_local_mode():
        logger.info("Using the local store instead of Firestore")

    yield

    logger.info(f"Shutting down {settings.app_name} API")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()
    configure_logging(debug=settings.debug, json_logs=settings.log_format != "text")

    app = FastAPI(
        title=settings.app_name,
        description="Photo styling with AI, diamonds top-up and admin back-office API",
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (order matters: last-added = outermost = first to run) ──

    # 1. Error handler added first → innermost layer
    app.add_middleware(ErrorHandlerMiddleware)

    # 2. CORS added last → outermost layer (processes OPTIONS preflight first)
    allow_all = settings.cors_origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_all,  # Cannot use credentials with allow_origins=["*"]
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    app.add_exception_handler(EditAjaException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(v1_router)

    # Locally stored uploads (style images, logo, favicon, feedback screenshots)
    uploads_dir = Path(settings.uploads_dir)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health check endpoint",
    )
    async def health_check() -> JSONResponse:
        """Health check endpoint for monitoring."""
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "ok": True,
                "status": "healthy",
                "service": settings.app_name,
                "version": settings.api_version,
            },
        )

    @app.get(
        "/",
        status_code=status.HTTP_200_OK,
        tags=["Root"],
        summary="Welcome endpoint",
    )
    async def root() -> JSONResponse:
        """Root endpoint with welcome message."""
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "ok": True,
                "message": f"Welcome to {settings.app_name}",
                "version": settings.api_version,
                "docs_url": "/docs",
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "editaja.main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.debug,
        log_level="debug" if _settings.debug else "info",
    )
