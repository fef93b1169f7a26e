from fastapi.testclient import TestClient

from app.api.errors import to_http_exception
from app.core.context import get_request_id
from app.services.errors import InvalidEventError, NotFoundError, TransactionConflictError


def _get_client() -> TestClient:
    from app.main import app

    return TestClient(app)


def test_health_endpoint_returns_ok() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers.get("X-Request-Id")


def test_request_id_reaches_engine_route_body() -> None:
    client = _get_client()
    response = client.get("/notifications/config", headers={"X-Request-Id": "req-streak-42"})

    assert response.headers.get("X-Request-Id") == "req-streak-42"
    assert response.json()["request_id"] == "req-streak-42"
    assert get_request_id() is None


def test_request_id_echoed_on_rejected_completion() -> None:
    client = _get_client()
    response = client.post("/tasks/not-a-uuid/complete", json={"user_id": 1}, headers={"X-Request-Id": "req-bad"})

    assert response.status_code == 422
    assert response.headers.get("X-Request-Id") == "req-bad"


def test_engine_errors_map_to_http_statuses() -> None:
    invalid = to_http_exception(InvalidEventError("Unknown completion kind: NOTE", event_kind="NOTE"))
    assert invalid.status_code == 422
    assert invalid.detail == {"error": "InvalidEvent", "message": "Unknown completion kind: NOTE"}

    assert to_http_exception(NotFoundError("Task not found")).status_code == 404

    conflict = to_http_exception(TransactionConflictError("locked"))
    assert conflict.status_code == 503
    assert conflict.headers == {"Retry-After": "1"}
