"""
Prometheus metrics collection.

In-memory counters in a per-application registry; Prometheus handles storage.
"""

import time
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info


class MetricsCollector:
    """
    Centralized metrics collection for the Screen Pop API.

    Each collector owns its registry so several app instances can coexist
    in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        # Service info
        self.service_info = Info(
            "screenpop_service",
            "Screen Pop service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "screenpop",
        })

        # Request metrics
        self.requests_total = Counter(
            "screenpop_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "screenpop_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
            registry=self.registry,
        )

        # Audit metrics
        self.audit_events_total = Counter(
            "screenpop_audit_events_total",
            "Audit entries recorded",
            ["action"],
            registry=self.registry,
        )

        # Lookup metrics
        self.customer_lookups_total = Counter(
            "screenpop_customer_lookups_total",
            "Customer lookups by criterion and outcome",
            ["matched_by", "result"],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "screenpop_uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )
        # Track start time for uptime calculation
        self._start_time = time.time()
        self.uptime_seconds.set_function(lambda: time.time() - self._start_time)

    def record_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float
    ) -> None:
        """Record HTTP request metrics."""
        self.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration_seconds)

    def record_audit(self, action: str) -> None:
        """Count an audit entry by action."""
        self.audit_events_total.labels(action=action).inc()

    def record_lookup(self, matched_by: str, found: bool) -> None:
        """Record a customer lookup outcome."""
        self.customer_lookups_total.labels(
            matched_by=matched_by,
            result="found" if found else "not_found",
        ).inc()
