"""
Process-wide request pipeline.

Orchestrates the stages that run for every request, in order:
1. Security headers (always, never rejects)
2. CORS validation (may reject with 403, answers preflights)
3. Request logging (audits completion of everything after it)

Route-level stages (auth, role, feature flag, rate limit, validation) run
afterwards as FastAPI dependencies.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .audit import AuditLogger
from .auth import client_address
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


@dataclass
class RequestContext:
    """Per-request state shared between stages."""
    ip: str
    started: float = field(default_factory=time.perf_counter)
    cors_origin: Optional[str] = None


class Stage:
    """
    A pipeline stage.

    handle() returns a Response to terminate the request or None to continue.
    complete() runs in reverse order on the final response for every stage
    whose handle() ran.
    """

    name = "stage"

    async def handle(self, request: Request, context: RequestContext) -> Optional[Response]:
        return None

    async def complete(self, request: Request, context: RequestContext, response: Response) -> None:
        return None


class SecurityHeadersStage(Stage):
    """Attach defensive response headers."""

    name = "security_headers"

    async def complete(self, request: Request, context: RequestContext, response: Response) -> None:
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value


class CorsStage(Stage):
    """Reject disallowed origins and answer preflights."""

    name = "cors"

    def __init__(self, allowed_origins: Sequence[str], audit: AuditLogger) -> None:
        self.allowed_origins = list(allowed_origins)
        self.audit = audit

    async def handle(self, request: Request, context: RequestContext) -> Optional[Response]:
        origin = request.headers.get("origin")

        if origin and origin not in self.allowed_origins:
            logger.warning("CORS origin rejected", origin=origin, ip=context.ip)
            await self.audit.record("CORS_REJECTED", origin=origin, ip=context.ip)
            return JSONResponse(
                status_code=403,
                content={"error": "CORS not allowed", "code": "authorization_error"},
            )

        context.cors_origin = origin or (self.allowed_origins[0] if self.allowed_origins else None)

        if request.method == "OPTIONS":
            return Response(status_code=200)
        return None

    async def complete(self, request: Request, context: RequestContext, response: Response) -> None:
        if context.cors_origin is None:
            return
        response.headers["Access-Control-Allow-Origin"] = context.cors_origin
        response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"


class RequestLoggingStage(Stage):
    """Audit every request that gets past CORS."""

    name = "request_logging"

    def __init__(self, audit: AuditLogger, metrics: Optional[MetricsCollector] = None) -> None:
        self.audit = audit
        self.metrics = metrics

    async def handle(self, request: Request, context: RequestContext) -> Optional[Response]:
        context.started = time.perf_counter()
        return None

    async def complete(self, request: Request, context: RequestContext, response: Response) -> None:
        duration = time.perf_counter() - context.started
        identity = getattr(request.state, "identity", None)

        await self.audit.record(
            "API_REQUEST",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            actor=identity.email if identity else "anonymous",
            duration_ms=round(duration * 1000, 2),
        )

        if self.metrics:
            route = request.scope.get("route")
            endpoint = getattr(route, "path", "unmatched")
            self.metrics.record_request(request.method, endpoint, response.status_code, duration)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """
    Terminal handler for unanticipated errors.

    Production responses hide the underlying message.
    """
    logger.error(
        "Unexpected exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    identity = getattr(request.state, "identity", None)
    await request.app.state.audit.record(
        "ERROR",
        error=str(exc),
        actor=identity.email if identity else "unknown",
        path=request.url.path,
    )

    settings = request.app.state.settings
    message = "Internal server error" if settings.is_production else (str(exc) or type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"error": message, "code": "internal_error"},
    )


class PipelineMiddleware(BaseHTTPMiddleware):
    """
    Drives the process-wide stages.

    Stops at the first stage that returns a response; otherwise hands the
    request to the routes. Unhandled route errors end in the terminal handler.
    """

    def __init__(self, app: ASGIApp, stages: Sequence[Stage]) -> None:
        super().__init__(app)
        self.stages: List[Stage] = list(stages)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(ip=client_address(request))
        request.state.context = context

        entered: List[Stage] = []
        response: Optional[Response] = None

        for stage in self.stages:
            entered.append(stage)
            response = await stage.handle(request, context)
            if response is not None:
                logger.debug("Pipeline terminated early", stage=stage.name, status_code=response.status_code)
                break

        if response is None:
            try:
                response = await call_next(request)
            except Exception as e:
                response = await handle_unexpected_error(request, e)

        for stage in reversed(entered):
            await stage.complete(request, context, response)

        return response
