"""
Main FastAPI application entry point.

This module sets up the FastAPI app with routes, logging and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.sheetlog.api import greeting_router, healthz_router, metrics_router
from src.sheetlog.config import Settings, get_settings
from src.sheetlog.core.background import BackgroundTaskRegistry
from src.sheetlog.core.metrics import MetricsCollector
from src.sheetlog.core.pipeline import RequestLogger


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # aiohttp access/client chatter is not useful at INFO
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Starts the request logger and background registry; on shutdown,
        waits for in-flight log tasks before closing the HTTP session.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting SheetLog service", version=app.version)

        metrics_collector = MetricsCollector()
        app.state.metrics = metrics_collector

        background = BackgroundTaskRegistry(on_change=metrics_collector.update_inflight)
        app.state.background = background

        request_logger = RequestLogger(settings, metrics=metrics_collector)
        app.state.request_logger = request_logger
        await request_logger.start()

        try:
            logger.info("SheetLog service started successfully")
            yield
        finally:
            logger.info("Shutting down SheetLog service", pending_tasks=background.pending)

            background.close()
            await background.drain(settings.shutdown_grace_seconds)
            await request_logger.stop()

            logger.info("SheetLog service shutdown complete")

    return lifespan


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Unexpected exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Ops routes are registered ahead of the catch-all greeting so they win
    when enabled; otherwise every path is greeted.
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="SheetLog",
        description="Edge greeting service that logs requests to a Google Sheet",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=create_lifespan_handler(settings),
    )
    app.state.settings = settings

    app.add_exception_handler(Exception, general_exception_handler)

    if settings.ops_endpoints_enabled:
        app.include_router(metrics_router, tags=["metrics"])
        app.include_router(healthz_router, tags=["health"])

    app.include_router(greeting_router, tags=["greeting"])

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.sheetlog.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
