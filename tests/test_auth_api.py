from __future__ import annotations

import json
from uuid import uuid4

import httpx
import pytest

from app.api.deps import get_identity
from app.api.routes import auth as auth_routes
from app.core.errors import WorkspaceProvisioningError
from app.db.models.workspace import Workspace
from app.main import app
from app.services.identity import IdentityClient
from tests.fakes import auth_headers, make_token

USER_ID = uuid4()


def _session_payload(metadata=None) -> dict:
    return {
        "access_token": make_token(USER_ID),
        "refresh_token": "refresh-1",
        "expires_in": 3600,
        "user": {"id": str(USER_ID), "email": "a@x.com", "user_metadata": metadata or {}},
    }


class IdentityServer:
    """Scripted identity service behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, httpx.Response] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.url.path
        grant = request.url.params.get("grant_type")
        if grant:
            key = f"{key}?{grant}"
        if key not in self.responses:
            return httpx.Response(404, json={"msg": "unexpected call"})
        return self.responses[key]


@pytest.fixture()
def identity_server(client):
    server = IdentityServer()
    identity = IdentityClient("https://identity.test", "anon", transport=httpx.MockTransport(server.handler))
    app.dependency_overrides[get_identity] = lambda: identity
    yield server
    identity.close()


def test_oauth_callback_provisions_workspace_once(client, identity_server, session_factory) -> None:
    identity_server.responses["/auth/v1/token?pkce"] = httpx.Response(200, json=_session_payload())

    first = client.post("/auth/callback", json={"code": "abc", "code_verifier": "verifier"})
    second = client.post("/auth/callback", json={"code": "abc", "code_verifier": "verifier"})

    assert first.status_code == 200
    assert first.json()["workspace_id"] == second.json()["workspace_id"]
    assert first.json()["user"]["nickname"] == "a"
    sent = json.loads(identity_server.requests[0].content)
    assert sent == {"auth_code": "abc", "code_verifier": "verifier"}
    assert identity_server.requests[0].headers["apikey"] == "anon"

    with session_factory() as db:
        workspaces = db.query(Workspace).filter(Workspace.user_id == USER_ID).all()
    assert [workspace.name for workspace in workspaces] == ["a의 워크스페이스"]


def test_email_link_callback(client, identity_server) -> None:
    identity_server.responses["/auth/v1/verify"] = httpx.Response(200, json=_session_payload({"nickname": "길동"}))

    response = client.post("/auth/callback", json={"token_hash": "hash", "type": "signup"})

    assert response.status_code == 200
    assert response.json()["user"]["nickname"] == "길동"
    assert json.loads(identity_server.requests[0].content) == {"type": "signup", "token_hash": "hash"}


def test_callback_without_code_or_token_is_rejected(client, identity_server) -> None:
    response = client.post("/auth/callback", json={})

    assert response.status_code == 422
    assert identity_server.requests == []


def test_signup_rejects_bad_nickname_before_calling_identity(client, identity_server) -> None:
    response = client.post(
        "/auth/signup",
        json={"email": "a@x.com", "password": "secret1", "nickname": "a"},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "invalid_nickname"
    assert identity_server.requests == []


def test_signup_pending_confirmation(client, identity_server) -> None:
    identity_server.responses["/auth/v1/signup"] = httpx.Response(
        200,
        json={"id": str(USER_ID), "email": "a@x.com", "user_metadata": {"nickname": "길동"}},
    )

    response = client.post(
        "/auth/signup",
        json={"email": "a@x.com", "password": "secret1", "nickname": "길동"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["confirmation_required"] is True
    assert body["workspace_id"] is None
    assert body["access_token"] is None
    assert json.loads(identity_server.requests[0].content)["data"] == {"nickname": "길동"}


def test_signup_with_immediate_session_creates_workspace(client, identity_server) -> None:
    identity_server.responses["/auth/v1/signup"] = httpx.Response(200, json=_session_payload({"nickname": "길동"}))

    response = client.post(
        "/auth/signup",
        json={"email": "a@x.com", "password": "secret1", "nickname": "길동"},
    )

    assert response.status_code == 201
    assert response.json()["workspace_id"] is not None


def test_signin_bad_credentials_is_unauthorized(client, identity_server) -> None:
    identity_server.responses["/auth/v1/token?password"] = httpx.Response(
        400,
        json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
    )

    response = client.post("/auth/signin", json={"email": "a@x.com", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["code"] == "identity_error"
    assert "Invalid login credentials" in response.json()["detail"]


def test_signin_identity_unreachable_is_bad_gateway(client) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    identity = IdentityClient("https://identity.test", "anon", transport=httpx.MockTransport(unreachable))
    app.dependency_overrides[get_identity] = lambda: identity

    response = client.post("/auth/signin", json={"email": "a@x.com", "password": "pw"})

    assert response.status_code == 502


def test_signin_survives_workspace_provisioning_failure(client, identity_server, monkeypatch) -> None:
    identity_server.responses["/auth/v1/token?password"] = httpx.Response(200, json=_session_payload())

    def failing_provision(*args, **kwargs):
        raise WorkspaceProvisioningError()

    monkeypatch.setattr(auth_routes, "ensure_workspace", failing_provision)

    response = client.post("/auth/signin", json={"email": "a@x.com", "password": "pw"})

    assert response.status_code == 200
    assert response.json()["workspace_id"] is None
    assert response.json()["access_token"]


def test_oauth_redirect(client, identity_server) -> None:
    response = client.get("/auth/oauth/google", params={"redirect_to": "https://app.test/callback"})

    assert response.status_code == 200
    url = httpx.URL(response.json()["url"])
    assert url.path == "/auth/v1/authorize"
    assert url.params["provider"] == "google"
    assert url.params["redirect_to"] == "https://app.test/callback"
    assert client.get("/auth/oauth/github").status_code == 422


def test_current_session_and_sign_out(client, identity_server) -> None:
    identity_server.responses["/auth/v1/logout"] = httpx.Response(204)
    headers = auth_headers(USER_ID, metadata={"nickname": "길동"})

    session = client.get("/auth/session", headers=headers)
    assert session.status_code == 200
    assert session.json()["user"]["nickname"] == "길동"
    assert session.json()["workspace_id"] is not None

    assert client.post("/auth/signout", headers=headers).status_code == 204
    assert identity_server.requests[-1].headers["authorization"] == headers["Authorization"]
    assert client.post("/auth/signout").status_code == 401
