"""Binding uploaded files to tasks."""
from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, StorageError, StoreError, ValidationFailed
from app.db.models.attachment import TaskAttachment
from app.db.models.task import Task
from app.services.session import WorkspaceScope
from app.services.storage.base import BlobStore

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}

DISALLOWED_TYPE_MESSAGE = "허용되지 않는 파일 형식입니다. (jpg, png, gif, pdf, doc, docx만 가능)"


@dataclass
class UploadedFile:
    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class RemovalResult:
    attachment_id: UUID
    blob_removed: bool


def validate_upload(file: UploadedFile, max_bytes: Optional[int] = None) -> None:
    """Reject disallowed media types and oversized files."""
    limit = max_bytes if max_bytes is not None else settings.attachment_max_bytes
    if file.content_type not in ALLOWED_TYPES:
        raise ValidationFailed(DISALLOWED_TYPE_MESSAGE, code="file_type_not_allowed")
    if file.size > limit:
        raise ValidationFailed(
            f"파일 크기는 {limit // (1024 * 1024)}MB를 초과할 수 없습니다.",
            code="file_too_large",
        )


def build_storage_path(user_id: UUID, task_id: UUID, file_name: str, *, now_ms: Optional[int] = None) -> str:
    """``{user}/{task}/{epoch_ms}_{token}{ext}``; the original name never reaches the key."""
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = PurePosixPath(file_name or "").suffix.lower()
    if not suffix.isascii() or not suffix[1:].isalnum():
        suffix = ""
    return f"{user_id}/{task_id}/{timestamp}_{secrets.token_hex(4)}{suffix}"


class AttachmentManager:
    def __init__(self, db: Session, blob_store: BlobStore, scope: WorkspaceScope) -> None:
        self.db = db
        self.blob_store = blob_store
        self.scope = scope

    def _task(self, task_id: UUID) -> Task:
        try:
            task = (
                self.db.query(Task)
                .filter(Task.id == task_id, Task.workspace_id == self.scope.workspace_id)
                .one_or_none()
            )
        except SQLAlchemyError as exc:
            logger.exception("Task lookup failed for attachment on %s", task_id)
            raise StoreError("할 일을 불러오는 중 오류가 발생했습니다.") from exc
        if not task:
            raise NotFoundError("할 일을 찾을 수 없습니다.")
        return task

    def get(self, attachment_id: UUID) -> TaskAttachment:
        try:
            attachment = (
                self.db.query(TaskAttachment)
                .join(Task, Task.id == TaskAttachment.task_id)
                .filter(
                    TaskAttachment.id == attachment_id,
                    Task.workspace_id == self.scope.workspace_id,
                )
                .one_or_none()
            )
        except SQLAlchemyError as exc:
            logger.exception("Attachment lookup failed for %s", attachment_id)
            raise StoreError("첨부파일을 불러오는 중 오류가 발생했습니다.") from exc
        if not attachment:
            raise NotFoundError("첨부파일을 찾을 수 없습니다.")
        return attachment

    def list_for_task(self, task_id: UUID) -> List[TaskAttachment]:
        task = self._task(task_id)
        try:
            return (
                self.db.query(TaskAttachment)
                .filter(TaskAttachment.task_id == task.id)
                .order_by(asc(TaskAttachment.created_at))
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception("Attachment listing failed for task %s", task.id)
            raise StoreError("첨부파일 목록을 불러오는 중 오류가 발생했습니다.") from exc

    def upload(self, task_id: UUID, file: UploadedFile) -> TaskAttachment:
        validate_upload(file)
        task = self._task(task_id)

        path = build_storage_path(self.scope.user_id, task.id, file.file_name)
        logger.info("Uploading %s (%d bytes) to %s", file.content_type, file.size, path)
        self.blob_store.upload(path, file.data, file.content_type)

        attachment = TaskAttachment(
            task_id=task.id,
            user_id=self.scope.user_id,
            file_name=file.file_name,
            file_size=file.size,
            file_type=file.content_type,
            storage_path=path,
        )
        self.db.add(attachment)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Attachment metadata insert failed for %s; removing blob", path)
            self._discard_blob(path)
            raise StoreError(f"메타데이터 저장 실패: {exc.__class__.__name__}") from exc

        self.db.refresh(attachment)
        return attachment

    def _discard_blob(self, path: str) -> None:
        try:
            self.blob_store.remove([path])
        except StorageError:
            logger.exception("Compensating delete failed; blob %s is orphaned", path)

    def download(self, attachment_id: UUID) -> Tuple[TaskAttachment, bytes]:
        attachment = self.get(attachment_id)
        return attachment, self.blob_store.download(attachment.storage_path)

    def remove(self, attachment_id: UUID) -> RemovalResult:
        """Delete the blob, then the row. A failed blob delete is reported, not raised."""
        attachment = self.get(attachment_id)
        blob_removed = True
        try:
            self.blob_store.remove([attachment.storage_path])
        except StorageError as exc:
            blob_removed = False
            logger.warning("Blob delete failed for %s, storage leaked: %s", attachment.storage_path, exc.message)

        self.db.delete(attachment)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Attachment row delete failed for %s", attachment_id)
            raise StoreError("첨부파일 삭제 중 오류가 발생했습니다.") from exc
        return RemovalResult(attachment_id=attachment_id, blob_removed=blob_removed)
