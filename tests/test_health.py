"""Health probes and app-level JSON error handlers."""


def test_ready_checks_database(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "ok"


def test_live_reports_process_only(client):
    res = client.get("/api/v1/health/live")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok", "app": "Portfolio Tracker"}


def test_unknown_api_path_is_json_404(client):
    res = client.get("/api/v1/nope")
    assert res.status_code == 404
    assert res.get_json() == {"error": "Not found", "path": "/api/v1/nope"}


def test_wrong_method_is_json_405(client):
    res = client.patch("/api/v1/health")
    assert res.status_code == 405
    assert res.get_json() == {"error": "Method not allowed"}
