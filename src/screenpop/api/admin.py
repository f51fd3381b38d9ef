"""
Admin API endpoints.

Token issuing for test identities.
"""

from datetime import timedelta

import structlog
from fastapi import APIRouter, Depends, Request

from ..core.auth import client_address, require_role
from ..models.auth import Identity, TokenIssueRequest, TokenIssueResponse
from ..models.customer import ErrorResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/tokens",
    response_model=TokenIssueResponse,
    status_code=201,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Admin role required"},
    },
    summary="Issue a bearer token",
    description="""
    Issue a signed token for an arbitrary test identity.

    **Admin Operation:**
    - Requires a token with the admin role
    - Tokens are stateless; they stay valid until they expire
    """,
)
async def issue_token(
    request: Request,
    request_data: TokenIssueRequest,
    admin: Identity = Depends(require_role(("admin",))),
) -> TokenIssueResponse:
    token_service = request.app.state.token_service
    ttl = timedelta(hours=request_data.ttl_hours) if request_data.ttl_hours else None

    token = token_service.issue(
        id=request_data.id,
        email=request_data.email,
        role=request_data.role,
        ttl=ttl,
    )
    identity = token_service.verify(token)

    await request.app.state.audit.record(
        "TOKEN_ISSUED",
        actor=admin.email,
        subject=request_data.id,
        role=request_data.role,
        ip=client_address(request),
    )
    logger.info("Token issued via API", subject=request_data.id, role=request_data.role)

    return TokenIssueResponse(token=token, identity=identity)
