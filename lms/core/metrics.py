"""Prometheus metric inventory.

All metrics are defined here; the modules that own a behavior import the
metric and increment it at the point of action.  Scraped from /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Learning domain
# ---------------------------------------------------------------------------

ENROLLMENTS = Counter(
    "enrollments_total",
    "Enrollment attempts by outcome",
    ["result"],  # created|conflict|payment_required|removed
)

LESSON_PROGRESS_UPDATES = Counter(
    "lesson_progress_updates_total",
    "Lesson progress writes by requested completion state",
    ["completed"],  # "true" or "false"
)

CERTIFICATES = Counter(
    "certificates_total",
    "Certificate issuance attempts that reached full completion",
    ["result"],  # issued|existing
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit|miss
)
