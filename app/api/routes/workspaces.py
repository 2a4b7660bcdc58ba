"""Workspace API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_workspace_scope
from app.api.schemas.workspace import WorkspaceCreateRequest, WorkspaceKeyLoginRequest, WorkspaceOut
from app.db.deps import get_db
from app.observability.tracing import trace
from app.services.session import WorkspaceScope
from app.services.workspace_service import create_keyed_workspace, find_workspace_by_key, get_workspace

router = APIRouter(tags=["workspaces"])


@router.get("/workspace", response_model=WorkspaceOut)
def current_workspace(
    scope: WorkspaceScope = Depends(get_workspace_scope),
    db: Session = Depends(get_db),
) -> WorkspaceOut:
    """The signed-in user's workspace (provisioned on first call)."""
    return WorkspaceOut.model_validate(get_workspace(db, scope.workspace_id))


@router.post("/workspaces/key-login", response_model=WorkspaceOut)
def key_login(payload: WorkspaceKeyLoginRequest, db: Session = Depends(get_db)) -> WorkspaceOut:
    with trace("workspace.key_login", metadata={"route": "/workspaces/key-login"}):
        workspace = find_workspace_by_key(db, payload.workspace_key)
    return WorkspaceOut.model_validate(workspace)


@router.post("/workspaces", response_model=WorkspaceOut, status_code=status.HTTP_201_CREATED)
def create_workspace(payload: WorkspaceCreateRequest, db: Session = Depends(get_db)) -> WorkspaceOut:
    with trace("workspace.create_keyed", metadata={"route": "/workspaces"}):
        workspace = create_keyed_workspace(db, payload.name, payload.workspace_key)
    return WorkspaceOut.model_validate(workspace)
