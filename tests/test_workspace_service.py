from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import ConflictError, NotFoundError, ValidationFailed, WorkspaceProvisioningError
from app.db.models.workspace import Workspace
from app.services import workspace_service
from app.services.workspace_service import (
    create_keyed_workspace,
    derive_nickname,
    ensure_workspace,
    find_workspace_by_key,
)


@pytest.fixture()
def workspace_inserts():
    inserted = []

    def record(mapper, connection, target):
        inserted.append(target.user_id)

    event.listen(Workspace, "after_insert", record)
    yield inserted
    event.remove(Workspace, "after_insert", record)


def test_ensure_workspace_is_idempotent(db, workspace_inserts) -> None:
    user_id = uuid4()

    first = ensure_workspace(db, user_id, {}, "a@x.com")
    second = ensure_workspace(db, user_id, {}, "a@x.com")

    assert first == second
    assert workspace_inserts == [user_id]
    workspace = db.query(Workspace).filter(Workspace.user_id == user_id).one()
    assert workspace.name == "a의 워크스페이스"
    assert workspace.workspace_key


@pytest.mark.parametrize(
    "metadata,email,expected",
    [
        ({"nickname": "길동", "full_name": "홍길동", "name": "Hong"}, "a@x.com", "길동"),
        ({"full_name": "홍길동", "name": "Hong"}, "a@x.com", "홍길동"),
        ({"name": "Hong"}, "a@x.com", "Hong"),
        ({"nickname": "   "}, "kim@x.com", "kim"),
        ({}, None, "사용자"),
        (None, "no-at-sign", "사용자"),
    ],
)
def test_derive_nickname_priority(metadata, email, expected) -> None:
    assert derive_nickname(metadata, email) == expected


def test_lost_insert_race_returns_existing_workspace(db, monkeypatch) -> None:
    user_id = uuid4()
    existing_id = ensure_workspace(db, user_id, {"nickname": "winner"}, None)

    real_lookup = workspace_service.get_workspace_for_user
    calls = []

    def stale_first_lookup(session, lookup_user_id):
        calls.append(lookup_user_id)
        if len(calls) == 1:
            return None
        return real_lookup(session, lookup_user_id)

    monkeypatch.setattr(workspace_service, "get_workspace_for_user", stale_first_lookup)

    assert ensure_workspace(db, user_id, {"nickname": "loser"}, None) == existing_id
    assert len(calls) == 2
    assert db.query(Workspace).filter(Workspace.user_id == user_id).count() == 1
    assert db.get(Workspace, existing_id).name == "winner의 워크스페이스"


def test_failed_insert_without_existing_row_raises(db, monkeypatch) -> None:
    def broken_commit():
        raise SQLAlchemyError("connection reset")

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(WorkspaceProvisioningError):
        ensure_workspace(db, uuid4(), {}, "a@x.com")


def test_keyed_workspace_round_trip(db) -> None:
    created = create_keyed_workspace(db, " 팀 공간 ", " team-key ")

    assert created.user_id is None
    assert created.name == "팀 공간"
    assert find_workspace_by_key(db, "team-key").id == created.id


def test_keyed_workspace_duplicate_key_conflicts(db) -> None:
    create_keyed_workspace(db, "one", "shared")

    with pytest.raises(ConflictError) as excinfo:
        create_keyed_workspace(db, "two", "shared")

    assert excinfo.value.message == "이미 사용 중인 워크스페이스 키입니다."
    assert db.query(Workspace).filter(Workspace.workspace_key == "shared").count() == 1


def test_keyed_workspace_requires_name_and_key(db) -> None:
    with pytest.raises(ValidationFailed) as excinfo:
        create_keyed_workspace(db, "", " ")

    assert len(excinfo.value.errors) == 2


def test_find_workspace_by_key_errors(db) -> None:
    with pytest.raises(ValidationFailed):
        find_workspace_by_key(db, "  ")
    with pytest.raises(NotFoundError) as excinfo:
        find_workspace_by_key(db, "missing")
    assert excinfo.value.message == "워크스페이스를 찾을 수 없습니다."
