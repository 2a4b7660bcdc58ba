from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_storage
from app.db import Base
from app.db.deps import get_db
from app.main import app
from app.services.session import WorkspaceScope
from app.services.storage.local import LocalBlobStore
from app.services.workspace_service import ensure_workspace
from tests.fakes import RecordingBlobStore


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def recording_store() -> RecordingBlobStore:
    return RecordingBlobStore()


@pytest.fixture()
def scope(db) -> WorkspaceScope:
    user_id = uuid4()
    workspace_id = ensure_workspace(db, user_id, {"nickname": "tester"}, "tester@example.com")
    return WorkspaceScope(workspace_id=workspace_id, user_id=user_id)


@pytest.fixture()
def local_store(tmp_path) -> LocalBlobStore:
    (tmp_path / "task-attachments").mkdir()
    return LocalBlobStore(tmp_path, "task-attachments")


@pytest.fixture()
def client(session_factory, local_store):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: local_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
