"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own the
behavior import the metric and increment/observe it at the point of action.
Prometheus scrapes them from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
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
    # Project creation fans out to the store and the DNS provider, so the
    # upper buckets matter more here than for plain reads.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Project provisioning
# ---------------------------------------------------------------------------

PROJECTS_CREATED = Counter(
    "projects_created_total",
    "Projects persisted by POST /projects",
)

PROJECT_REJECTIONS = Counter(
    "project_rejections_total",
    "POST /projects requests rejected with 422",
    ["stage"],  # missing_fields|validation|uniqueness|conflict
)

DOMAIN_REGISTRATIONS = Counter(
    "domain_registrations_total",
    "Domain registration attempts against the DNS provider",
    ["result"],  # registered|failed
)

RESERVED_KEY_LOOKUPS = Counter(
    "reserved_key_lookups_total",
    "Reserved-key store lookups by result",
    ["result"],  # reserved|free|error
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],  # "domain_registration"
)
