"""Workspace provisioning and lookup."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError, StoreError, ValidationFailed, WorkspaceProvisioningError
from app.db.models.workspace import Workspace

logger = logging.getLogger(__name__)

FALLBACK_NICKNAME = "사용자"
WORKSPACE_NAME_SUFFIX = "의 워크스페이스"


def derive_nickname(metadata: Optional[Mapping[str, Any]], email: Optional[str]) -> str:
    """Pick the display nickname used to name a new workspace."""
    metadata = metadata or {}
    for key in ("nickname", "full_name", "name"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    if email and "@" in email:
        local_part = email.split("@", 1)[0].strip()
        if local_part:
            return local_part
    return FALLBACK_NICKNAME


def workspace_name_for(nickname: str) -> str:
    return f"{nickname}{WORKSPACE_NAME_SUFFIX}"


def get_workspace_for_user(db: Session, user_id: UUID) -> Optional[Workspace]:
    try:
        return db.query(Workspace).filter(Workspace.user_id == user_id).one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Workspace lookup failed for user %s", user_id)
        raise StoreError("워크스페이스 조회 중 오류가 발생했습니다.") from exc


def ensure_workspace(
    db: Session,
    user_id: UUID,
    metadata: Optional[Mapping[str, Any]] = None,
    email: Optional[str] = None,
) -> UUID:
    """Return the user's workspace id, creating the workspace on first sight.

    A failed insert (usually a concurrent request winning the unique
    constraint on ``user_id``) is treated as non-fatal: the session is rolled
    back and the workspace is looked up once more instead of re-inserting.
    """
    existing = get_workspace_for_user(db, user_id)
    if existing:
        return existing.id

    nickname = derive_nickname(metadata, email)
    workspace = Workspace(
        user_id=user_id,
        name=workspace_name_for(nickname),
        workspace_key=str(uuid4()),
    )
    db.add(workspace)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Workspace insert failed for user %s, re-checking: %s", user_id, exc)
        existing = get_workspace_for_user(db, user_id)
        if existing:
            return existing.id
        raise WorkspaceProvisioningError() from exc

    logger.info("Created workspace %s for user %s", workspace.id, user_id)
    return workspace.id


def get_workspace(db: Session, workspace_id: UUID) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if not workspace:
        raise NotFoundError("워크스페이스를 찾을 수 없습니다.")
    return workspace


def find_workspace_by_key(db: Session, workspace_key: str) -> Workspace:
    """Resolve a workspace from its key (alternate, key-based login)."""
    key = (workspace_key or "").strip()
    if not key:
        raise ValidationFailed("워크스페이스 키를 입력하세요.")
    try:
        workspace = db.query(Workspace).filter(Workspace.workspace_key == key).one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Workspace key lookup failed")
        raise StoreError("로그인 중 오류가 발생했습니다.") from exc
    if not workspace:
        raise NotFoundError("워크스페이스를 찾을 수 없습니다.")
    return workspace


def create_keyed_workspace(db: Session, name: str, workspace_key: str) -> Workspace:
    """Create a workspace reachable only through its key."""
    name = (name or "").strip()
    key = (workspace_key or "").strip()
    errors = []
    if not name:
        errors.append("워크스페이스 이름을 입력하세요.")
    if not key:
        errors.append("워크스페이스 키를 입력하세요.")
    if errors:
        raise ValidationFailed(errors=errors)

    workspace = Workspace(name=name, workspace_key=key)
    db.add(workspace)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("이미 사용 중인 워크스페이스 키입니다.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Keyed workspace insert failed")
        raise StoreError("워크스페이스 생성 중 오류가 발생했습니다.") from exc
    db.refresh(workspace)
    return workspace
