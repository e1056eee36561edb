"""Prometheus metric inventory.

Every metric the service exposes is defined here; the modules that own the
behavior import and update them.  Counters only go up, so tests assert on
deltas read from the default REGISTRY.
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
# Live path
# ---------------------------------------------------------------------------

SYNC_EVENTS = Counter(
    "sync_events_total",
    "Completion events processed by the sync orchestrator",
    ["kind", "outcome"],  # kind: lesson|quiz|enroll|reopen; outcome: ok|error
)

SYNC_DURATION = Histogram(
    "sync_event_duration_seconds",
    "Time spent inside one live-path unit of work",
    ["kind"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# ---------------------------------------------------------------------------
# Batch path
# ---------------------------------------------------------------------------

RECONCILIATION_RUNS = Counter(
    "reconciliation_runs_total",
    "Reconciliation job runs",
    ["job", "outcome"],  # outcome: completed|failed|skipped_overlap
)

RECONCILIATION_STUDENTS = Counter(
    "reconciliation_students_total",
    "Students visited by reconciliation jobs",
    ["job", "result"],  # result: ok|skipped
)

RECONCILIATION_DURATION = Histogram(
    "reconciliation_duration_seconds",
    "Wall-clock duration of one reconciliation job run",
    ["job"],
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0],
)

COMPLETIONS_PRUNED = Counter(
    "completion_records_pruned_total",
    "Completion records deleted by the retention cleanup",
)

JOB_RUNNING = Gauge(
    "reconciliation_job_running",
    "1 while a reconciliation job is running",
    ["job"],
)
