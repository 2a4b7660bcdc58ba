from __future__ import annotations

from uuid import uuid4

from tests.fakes import auth_headers


def test_current_workspace_is_provisioned_on_first_call(client) -> None:
    user_id = uuid4()
    headers = auth_headers(user_id, email="kim@x.com", metadata={"full_name": "김철수"})

    first = client.get("/workspace", headers=headers)
    second = client.get("/workspace", headers=headers)

    assert first.status_code == 200
    assert first.json()["name"] == "김철수의 워크스페이스"
    assert first.json()["user_id"] == str(user_id)
    assert first.json()["id"] == second.json()["id"]


def test_keyed_workspace_create_and_login(client) -> None:
    created = client.post("/workspaces", json={"name": "팀", "workspace_key": "team-2024"})
    assert created.status_code == 201
    assert created.json()["user_id"] is None

    login = client.post("/workspaces/key-login", json={"workspace_key": "team-2024"})
    assert login.status_code == 200
    assert login.json()["id"] == created.json()["id"]


def test_duplicate_workspace_key_conflicts(client) -> None:
    client.post("/workspaces", json={"name": "팀", "workspace_key": "dup"})

    response = client.post("/workspaces", json={"name": "다른 팀", "workspace_key": "dup"})

    assert response.status_code == 409
    assert response.json()["detail"] == "이미 사용 중인 워크스페이스 키입니다."


def test_unknown_workspace_key(client) -> None:
    response = client.post("/workspaces/key-login", json={"workspace_key": "nope"})

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"
