"""App-level tests: health, metrics and the shared error shape."""
from unittest.mock import patch

from fastapi.testclient import TestClient

import main
from hospitofind.monitoring.metrics import reset_metrics


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert r.headers["X-Request-ID"]


def test_favicon_no_content(client):
    assert client.get("/favicon.ico").status_code == 204


def test_metrics_count_requests_by_class(client):
    reset_metrics()
    client.get("/health")
    client.get("/hospitals/id/missing")
    m = client.get("/metrics").json()
    # The /metrics request itself is recorded after the snapshot is taken
    assert m["requests_2xx"] == 1
    assert m["requests_4xx"] == 1
    assert m["requests_total"] == 2
    assert m["uptime_seconds"] >= 0


def test_unknown_route_uses_error_shape(client):
    r = client.get("/no-such-route")
    assert r.status_code == 404
    assert set(r.json()) == {"message", "request_id"}


def test_unhandled_error_is_500_with_request_id(client):
    reset_metrics()
    quiet = TestClient(main.app, raise_server_exceptions=False)
    with patch("hospitofind.routes.hospitals.count_hospitals", side_effect=RuntimeError("boom")):
        r = quiet.get("/hospitals/count", headers={"X-Request-ID": "req-1"})
    assert r.status_code == 500
    assert r.json() == {"message": "An unexpected error occurred. Please try again later.", "request_id": "req-1"}
    assert client.get("/metrics").json()["requests_5xx"] == 1
