"""MetricsMiddleware and the /metrics endpoint.

Counters in the default registry are process-global and only go up, so
every assertion reads the sample before and after and compares deltas.
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    """Each HTTP request should increment the request counter."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    client.get("/health")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    assert after - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    """Each request should add an observation to the duration histogram."""
    before = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    client.get("/health")
    after = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    assert after - before >= 1


def test_metrics_endpoint_exposes_sync_and_job_metrics(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    for name in (
        "http_requests_total",
        "sync_events_total",
        "reconciliation_runs_total",
        "completion_records_pruned_total",
    ):
        assert f"# TYPE {name.removesuffix('_total')}" in resp.text


def test_endpoint_label_is_route_template(client: TestClient) -> None:
    """Per-student URLs collapse into one series per route."""
    labels = {
        "method": "GET",
        "endpoint": "/v1/students/{student_id}/dashboard",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get(f"/v1/students/{uuid.uuid4()}/dashboard")
    client.get(f"/v1/students/{uuid.uuid4()}/dashboard")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 2


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no-such-page")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 1


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    client.get("/metrics")
    client.get("/metrics")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    # Should not have incremented (we skip /metrics in the middleware)
    assert after == before
