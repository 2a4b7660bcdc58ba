"""Workspace-scoped task persistence."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping
from uuid import UUID

from sqlalchemy import asc, func, nulls_last
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, StorageError, StoreError, ValidationFailed
from app.db.models.attachment import TaskAttachment
from app.db.models.task import TASK_PRIORITIES, TASK_STATUSES, Task
from app.services.scheduling import normalize_time, validate_schedule
from app.services.session import WorkspaceScope
from app.services.storage.base import BlobStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "due_date",
    "start_date",
    "end_date",
    "start_time",
    "end_time",
)

LIST_ORDERS = ("due_date", "kanban")


class TaskStore:
    """CRUD plus status/column mutations for one workspace's tasks."""

    def __init__(self, db: Session, scope: WorkspaceScope, blob_store: BlobStore | None = None) -> None:
        self.db = db
        self.scope = scope
        self.blob_store = blob_store

    def _query(self):
        return self.db.query(Task).filter(Task.workspace_id == self.scope.workspace_id)

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Task %s failed in workspace %s", action, self.scope.workspace_id)
            raise StoreError(f"할 일 {_ACTION_LABELS.get(action, action)} 중 오류가 발생했습니다.") from exc

    def get(self, task_id: UUID) -> Task:
        try:
            task = self._query().filter(Task.id == task_id).one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Task lookup failed for %s", task_id)
            raise StoreError("할 일을 불러오는 중 오류가 발생했습니다.") from exc
        if not task:
            raise NotFoundError("할 일을 찾을 수 없습니다.")
        return task

    def list(self, order: str = "due_date") -> List[Task]:
        if order not in LIST_ORDERS:
            raise ValidationFailed(f"지원하지 않는 정렬 방식입니다: {order}")
        query = self._query()
        if order == "kanban":
            query = query.order_by(asc(Task.kanban_order))
        else:
            query = query.order_by(nulls_last(asc(Task.due_date)), asc(Task.created_at))
        try:
            return query.all()
        except SQLAlchemyError as exc:
            logger.exception("Task listing failed for workspace %s", self.scope.workspace_id)
            raise StoreError("할 일 목록을 불러오는 중 오류가 발생했습니다.") from exc

    def create(self, fields: Mapping[str, Any]) -> Task:
        values = _clean_fields(fields)
        if not values.get("title"):
            raise ValidationFailed("제목을 입력하세요.")
        values["status"] = values.get("status") or "todo"
        if "priority" not in values:
            values["priority"] = "medium"
        if values.get("due_date") is None and values.get("start_date") is not None:
            values["due_date"] = values["start_date"]
        _validate(values)

        task = Task(workspace_id=self.scope.workspace_id, user_id=self.scope.user_id, **values)
        self.db.add(task)
        self._commit("create")
        self.db.refresh(task)
        logger.info("Created task %s in workspace %s", task.id, self.scope.workspace_id)
        return task

    def update(self, task_id: UUID, fields: Mapping[str, Any]) -> Task:
        task = self.get(task_id)
        values = _clean_fields(fields)
        if "title" in values and not values["title"]:
            raise ValidationFailed("제목을 입력하세요.")
        # due_date follows start_date unless it was set independently.
        if (
            values.get("start_date") is not None
            and "due_date" not in values
            and task.due_date in (None, task.start_date)
        ):
            values["due_date"] = values["start_date"]
        merged = {name: getattr(task, name) for name in EDITABLE_FIELDS}
        merged.update(values)
        _validate(merged)

        for name, value in values.items():
            setattr(task, name, value)
        self._commit("update")
        self.db.refresh(task)
        return task

    def delete(self, task_id: UUID) -> None:
        """Delete a task together with its attachment rows and blobs."""
        task = self.get(task_id)
        attachments = self.db.query(TaskAttachment).filter(TaskAttachment.task_id == task.id).all()
        paths = [attachment.storage_path for attachment in attachments]
        if paths and self.blob_store is not None:
            try:
                self.blob_store.remove(paths)
            except StorageError:
                # Rows are removed regardless; the storage sweeper reclaims leftovers.
                logger.warning("Failed to remove %d blob(s) for task %s", len(paths), task.id)
        for attachment in attachments:
            self.db.delete(attachment)
        self.db.delete(task)
        self._commit("delete")
        logger.info("Deleted task %s with %d attachment(s)", task_id, len(attachments))

    def toggle_status(self, task_id: UUID) -> Task:
        """Flip between done and todo; other statuses count as not done."""
        task = self.get(task_id)
        task.status = "todo" if task.status == "done" else "done"
        self._commit("update")
        self.db.refresh(task)
        return task

    def move_to_column(self, task_id: UUID, status: str) -> Task:
        """Put the task at the end of the ``status`` column."""
        if status not in TASK_STATUSES:
            raise ValidationFailed(f"알 수 없는 상태입니다: {status}")
        task = self.get(task_id)
        try:
            current_max = (
                self.db.query(func.max(Task.kanban_order))
                .filter(
                    Task.workspace_id == self.scope.workspace_id,
                    Task.status == status,
                    Task.id != task.id,
                )
                .scalar()
            )
        except SQLAlchemyError as exc:
            logger.exception("Column lookup failed for status %s", status)
            raise StoreError("보드 정보를 불러오는 중 오류가 발생했습니다.") from exc

        task.status = status
        task.kanban_order = (current_max or 0) + 1
        self._commit("move")
        self.db.refresh(task)
        return task


_ACTION_LABELS = {
    "create": "생성",
    "update": "수정",
    "delete": "삭제",
    "move": "이동",
}


def _clean_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    values = {name: fields[name] for name in EDITABLE_FIELDS if name in fields}
    if values.get("status", "") is None:
        values.pop("status")
    if "title" in values:
        values["title"] = (values["title"] or "").strip()
    if "description" in values:
        values["description"] = (values["description"] or "").strip() or None
    for name in ("start_time", "end_time"):
        if name in values:
            values[name] = normalize_time(values[name])
    return values


def _validate(values: Mapping[str, Any]) -> None:
    status = values.get("status")
    if status is not None and status not in TASK_STATUSES:
        raise ValidationFailed(f"알 수 없는 상태입니다: {status}")
    priority = values.get("priority")
    if priority is not None and priority not in TASK_PRIORITIES:
        raise ValidationFailed(f"알 수 없는 우선순위입니다: {priority}")
    validate_schedule(
        start_date=values.get("start_date"),
        end_date=values.get("end_date"),
        start_time=values.get("start_time"),
        end_time=values.get("end_time"),
    )
