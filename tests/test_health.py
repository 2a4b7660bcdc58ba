from fastapi.testclient import TestClient


def _get_client() -> TestClient:
    from app.main import app

    return TestClient(app)


def test_health_endpoint_returns_ok() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_request_id_generated_and_returned() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.headers.get("X-Request-Id")


def test_error_payload_carries_request_id() -> None:
    client = _get_client()
    req_id = "req-tasks-401"
    response = client.get("/tasks", headers={"X-Request-Id": req_id})

    assert response.status_code == 401
    assert response.headers.get("X-Request-Id") == req_id
    assert response.json() == {
        "detail": "로그인이 필요합니다.",
        "code": "authentication_required",
        "request_id": req_id,
    }


def test_generated_request_id_matches_error_body() -> None:
    client = _get_client()
    response = client.get("/auth/oauth/github")

    assert response.status_code == 422
    assert response.json()["request_id"] == response.headers["X-Request-Id"]
