"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /health - Liveness probe
- /api/screenpop/customer, /test-data, /search - Customer lookups
- /api/screenpop/admin/tokens - Token issuing
- /metrics - Prometheus metrics
"""
from .admin import router as admin_router
from .customers import router as customers_router
from .health import router as health_router
from .metrics import router as metrics_router

__all__ = ["admin_router", "customers_router", "health_router", "metrics_router"]
