"""
Screen pop customer endpoints.

- GET /api/screenpop/customer  - lookup by phone, email or customerId
- GET /api/screenpop/test-data - full directory dump
- GET /api/screenpop/search    - filter by tier / lineOfBusiness
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request

from ..core.auth import (
    client_address,
    enforce_rate_limit,
    require_auth,
    require_feature_flag,
    require_role,
)
from ..core.exceptions import NotFoundError
from ..models.customer import (
    DirectoryDump,
    ErrorResponse,
    LookupCriteria,
    LookupResponse,
    SearchResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

TEST_DATA_ROLES = ("admin", "qa")


async def validate_lookup_query(
    phone: Optional[str] = Query(None, description="Phone number in any format"),
    email: Optional[str] = Query(None, description="Email address"),
    customer_id: Optional[str] = Query(None, alias="customerId", description="Customer identifier"),
) -> LookupCriteria:
    """Input validation stage for lookups."""
    return LookupCriteria.from_query(phone=phone, email=email, customer_id=customer_id)


@router.get(
    "/customer",
    response_model=LookupResponse,
    dependencies=[
        Depends(require_auth),
        Depends(require_feature_flag),
        Depends(enforce_rate_limit),
    ],
    responses={
        400: {"model": ErrorResponse, "description": "Missing or malformed criteria"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Feature disabled"},
        404: {"model": ErrorResponse, "description": "Customer not found"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Look up a customer for a screen pop",
    description="""
    Find one customer by exact match.

    Precedence when several criteria are given: phone, then email, then
    customerId. Phone matching ignores punctuation; email matching ignores case.
    """,
)
async def lookup_customer(
    request: Request,
    criteria: LookupCriteria = Depends(validate_lookup_query),
) -> LookupResponse:
    directory = request.app.state.directory
    metrics = request.app.state.metrics

    customer = directory.find(
        phone=criteria.phone,
        email=criteria.email,
        customer_id=criteria.customer_id,
    )
    metrics.record_lookup(criteria.matched_by, found=customer is not None)

    if customer is None:
        identity = getattr(request.state, "identity", None)
        await request.app.state.audit.record(
            "CUSTOMER_NOT_FOUND",
            matched_by=criteria.matched_by,
            actor=identity.email if identity else "unknown",
            ip=client_address(request),
        )
        raise NotFoundError("Customer not found", details={"query": criteria.as_query()})

    logger.info(
        "Customer matched",
        customer_id=customer.customer_id,
        matched_by=criteria.matched_by,
    )

    return LookupResponse(
        customer=customer,
        matched_by=criteria.matched_by,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/test-data",
    response_model=DirectoryDump,
    dependencies=[
        Depends(require_auth),
        Depends(require_role(TEST_DATA_ROLES)),
        Depends(require_feature_flag),
    ],
    summary="List every test customer",
)
async def get_test_data(request: Request) -> DirectoryDump:
    """Returns all mock customers (for testing/demo)."""
    customers = request.app.state.directory.all()
    return DirectoryDump(
        customers=customers,
        count=len(customers),
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/search",
    response_model=SearchResponse,
    dependencies=[
        Depends(require_auth),
        Depends(require_feature_flag),
        Depends(enforce_rate_limit),
    ],
    summary="Search customers by attribute",
)
async def search_customers(
    request: Request,
    tier: Optional[str] = Query(None),
    line_of_business: Optional[str] = Query(None, alias="lineOfBusiness"),
    status: Optional[str] = Query(None, description="Accepted and echoed, not applied"),
) -> SearchResponse:
    results = request.app.state.directory.search(tier=tier, line_of_business=line_of_business)
    return SearchResponse(
        results=results,
        count=len(results),
        query={"tier": tier, "lineOfBusiness": line_of_business, "status": status},
    )
