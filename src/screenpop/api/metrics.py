"""
Prometheus metrics endpoint.

Exposes metrics in Prometheus text format for scraping.
"""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - screenpop_http_requests_total{method,endpoint,status_code}
    - screenpop_http_request_duration_seconds{method,endpoint}
    - screenpop_audit_events_total{action}
    - screenpop_customer_lookups_total{matched_by,result}
    """,
)
async def get_metrics(request: Request) -> Response:
    metrics_collector = request.app.state.metrics
    return Response(
        content=generate_latest(metrics_collector.registry),
        media_type=CONTENT_TYPE_LATEST,
    )
