"""
Main FastAPI application entry point.

This module sets up the FastAPI app with the request pipeline, routes,
exception handlers and lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import admin_router, customers_router, health_router, metrics_router
from .config import Settings, get_settings
from .core.audit import AuditLogger
from .core.auth import RateLimiter, TokenService, client_address
from .core.directory import CustomerDirectory
from .core.exceptions import ScreenPopException
from .core.metrics import MetricsCollector
from .core.pipeline import (
    CorsStage,
    PipelineMiddleware,
    RequestLoggingStage,
    SecurityHeadersStage,
    handle_unexpected_error,
)


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
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
        logger = structlog.get_logger(__name__)
        logger.info(
            "Starting Screen Pop service",
            version=app.version,
            feature="enabled" if settings.enabled else "disabled",
            allowed_origins=settings.security.allowed_origins,
            customers=len(app.state.directory),
            audit_log=str(settings.audit.audit_log),
        )
        try:
            yield
        finally:
            logger.info("Screen Pop service shutdown complete")

    return lifespan


async def screenpop_exception_handler(request: Request, exc: ScreenPopException) -> JSONResponse:
    """Handle custom Screen Pop exceptions."""
    logger = structlog.get_logger(__name__)
    logger.warning(
        "Request rejected",
        error=str(exc),
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )

    headers = {}

    # Add Retry-After header for rate limit errors
    if exc.status_code == 429 and "retry_after" in exc.details:
        headers["Retry-After"] = str(exc.details["retry_after"])

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": str(exc),
            "code": exc.error_code,
            **exc.details,
        },
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes become an audited 404; other HTTP errors pass through."""
    if exc.status_code == 404:
        await request.app.state.audit.record(
            "NOT_FOUND",
            path=request.url.path,
            method=request.method,
            ip=client_address(request),
        )
        return JSONResponse(
            status_code=404,
            content={"error": "Not found", "code": "not_found", "path": request.url.path},
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": "http_error"},
        headers=getattr(exc, "headers", None),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Every component is built here from one immutable Settings instance
    and published on app.state.
    """
    settings = settings or get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="Screen Pop Testing API",
        description="Mock CRM lookup API for screen pop integrations",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(settings),
    )

    metrics = MetricsCollector()
    audit = AuditLogger(settings.audit.audit_log, metrics=metrics)

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.audit = audit
    app.state.directory = CustomerDirectory.from_file(settings.customers_file)
    app.state.token_service = TokenService(
        secret=settings.security.jwt_secret,
        algorithm=settings.security.jwt_algorithm,
        default_ttl=timedelta(hours=settings.security.token_ttl_hours),
    )
    app.state.rate_limiter = RateLimiter(
        window_ms=settings.security.rate_limit_window,
        max_requests=settings.security.rate_limit_max,
    )

    app.add_middleware(
        PipelineMiddleware,
        stages=[
            SecurityHeadersStage(),
            CorsStage(settings.security.allowed_origins, audit),
            RequestLoggingStage(audit, metrics),
        ],
    )

    app.add_exception_handler(ScreenPopException, screenpop_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Include routers
    app.include_router(health_router, tags=["health"])
    app.include_router(customers_router, prefix="/api/screenpop", tags=["customers"])
    app.include_router(admin_router, prefix="/api/screenpop/admin", tags=["admin"])
    app.include_router(metrics_router, tags=["metrics"])

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    structlog.get_logger(__name__).info(
        "Screen Pop API starting",
        health=f"http://localhost:{settings.port}/health",
        feature="enabled" if settings.enabled else "disabled",
        allowed_origins=", ".join(settings.security.allowed_origins),
    )
    uvicorn.run(
        "screenpop.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
