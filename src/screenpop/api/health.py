"""
Health check endpoint.

- /health: liveness probe, reports whether the feature flag is on
"""

from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request

from ..core.auth import client_address

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    status_code=200,
    summary="Liveness probe",
    description="""
    Always returns 200 OK if the service is running. No authentication.
    """,
)
async def health_check(request: Request) -> Dict[str, Any]:
    await request.app.state.audit.record("HEALTH_CHECK", ip=client_address(request))

    return {
        "status": "ok",
        "service": "Screen Pop Testing API",
        "feature": "enabled" if request.app.state.settings.enabled else "disabled",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
