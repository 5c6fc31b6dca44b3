"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import settings
from .controllers import bot, voice
from .controllers.dependencies import get_orchestrator
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware

logger = logging.getLogger(__name__)


def _rotating_handler(path_value: str, fmt: str, max_bytes: int) -> RotatingFileHandler:
    log_path = Path(path_value)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


_CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_FILE_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

# Dedicated loggers that write to their own rotating file instead of the root.
_DEDICATED_LOGGERS = (
    ("app.services.voice_pipeline", "pipeline_log_file"),
    ("app.logs.transcript", "transcript_log_file"),
)

_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "httpcore", "telegram", "openai")


def _configure_logging() -> None:
    """Stream logs to stdout and rotate them on disk, one file per concern."""

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root_logger.addHandler(console)
    root_logger.addHandler(_rotating_handler(settings.log_file, _CONSOLE_FORMAT, 1_000_000))
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # Request lines are already colored; keep them off the root file.
    request_logger = logging.getLogger("app.middleware.structured")
    request_logger.handlers.clear()
    request_console = logging.StreamHandler(sys.stdout)
    request_console.setFormatter(logging.Formatter("%(message)s"))
    request_logger.addHandler(request_console)
    request_logger.setLevel(logging.INFO)
    request_logger.propagate = False

    for name, setting in _DEDICATED_LOGGERS:
        dedicated = logging.getLogger(name)
        dedicated.handlers.clear()
        dedicated.addHandler(_rotating_handler(getattr(settings, setting), _FILE_FORMAT, 500_000))
        dedicated.setLevel(logging.INFO)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the Telegram bot alongside the HTTP server when a token is configured."""

    token = settings.telegram.bot_token
    application = None
    if settings.telegram.enabled and token is not None:
        application = bot.build_application(token.get_secret_value(), get_orchestrator())
        await application.initialize()
        await application.start()
        await application.updater.start_polling()
        logger.info("Telegram bot polling started")
    else:
        logger.info("Telegram bot disabled; only the HTTP API is served")

    try:
        yield
    finally:
        if application is not None:
            await application.updater.stop()
            await application.stop()
            await application.shutdown()
            logger.info("Telegram bot stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        description="Answers Telegram voice notes using Amazon Transcribe and a completion model",
        lifespan=lifespan,
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(voice.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
