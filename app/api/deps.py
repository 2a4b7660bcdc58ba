"""Request-scoped dependencies: session, workspace scope and services."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.context import user_id_ctx_var
from app.db.deps import get_db
from app.services.attachment_service import AttachmentManager
from app.services.identity import IdentityClient, get_identity_client
from app.services.session import SessionContext, WorkspaceScope, resolve_session
from app.services.storage import BlobStore, get_blob_store
from app.services.task_service import TaskStore
from app.services.workspace_service import ensure_workspace

bearer_scheme = HTTPBearer(auto_error=False)


async def get_session_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionContext:
    # Must stay async: sync dependencies run in a copied context and would drop the binding.
    session = resolve_session(credentials.credentials if credentials else None)
    user_id_ctx_var.set(str(session.user_id))
    return session


def get_workspace_scope(
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> WorkspaceScope:
    workspace_id = ensure_workspace(db, session.user_id, session.metadata, session.email)
    return WorkspaceScope(workspace_id=workspace_id, user_id=session.user_id)


def get_identity() -> IdentityClient:
    return get_identity_client()


def get_storage() -> BlobStore:
    return get_blob_store()


def get_task_store(
    scope: WorkspaceScope = Depends(get_workspace_scope),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_storage),
) -> TaskStore:
    return TaskStore(db, scope, blob_store)


def get_attachment_manager(
    scope: WorkspaceScope = Depends(get_workspace_scope),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_storage),
) -> AttachmentManager:
    return AttachmentManager(db, blob_store, scope)
