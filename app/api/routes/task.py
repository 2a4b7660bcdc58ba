"""Task API routes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.api.deps import get_task_store
from app.api.schemas.task import (
    TaskCreateRequest,
    TaskMoveRequest,
    TaskOut,
    TaskSchedule,
    TaskUpdateRequest,
)
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services import scheduling
from app.services.task_service import TaskStore

router = APIRouter()


def _metadata(store: TaskStore, **extra) -> dict:
    return {"workspace_id": str(store.scope.workspace_id), **extra}


@router.get("/tasks", response_model=List[TaskOut], tags=["tasks"])
def list_tasks(
    http_request: Request,
    order: str = Query("due_date", pattern="^(due_date|kanban)$"),
    store: TaskStore = Depends(get_task_store),
) -> List[TaskOut]:
    """List the workspace's tasks by due date (nulls last) or board order."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.list",
        metadata=_metadata(store, route="/tasks", order=order),
        request_id=request_id,
        workspace_id=str(store.scope.workspace_id),
    ):
        tasks = store.list(order=order)

    log_metric("task.list.count", len(tasks), metadata=_metadata(store, order=order))
    return [TaskOut.model_validate(task) for task in tasks]


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(
    payload: TaskCreateRequest,
    http_request: Request,
    store: TaskStore = Depends(get_task_store),
) -> TaskOut:
    request_id = getattr(http_request.state, "request_id", None)
    start_time = datetime.now(timezone.utc)
    with trace("task.create", metadata=_metadata(store, route="/tasks"), request_id=request_id):
        task = store.create(payload.model_dump(exclude_unset=True))

    latency_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    log_metric("task.create.success", 1, metadata=_metadata(store))
    log_metric("task.create.latency_ms", latency_ms, metadata=_metadata(store))
    return TaskOut.model_validate(task)


@router.get("/tasks/{task_id}", response_model=TaskOut, tags=["tasks"])
def get_task(task_id: UUID, store: TaskStore = Depends(get_task_store)) -> TaskOut:
    return TaskOut.model_validate(store.get(task_id))


@router.patch("/tasks/{task_id}", response_model=TaskOut, tags=["tasks"])
def update_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    store: TaskStore = Depends(get_task_store),
) -> TaskOut:
    """Apply a partial update; fields left out of the body are untouched."""
    request_id = getattr(http_request.state, "request_id", None)
    changes = payload.model_dump(exclude_unset=True)
    with trace(
        "task.update",
        metadata=_metadata(store, task_id=str(task_id), fields=sorted(changes)),
        request_id=request_id,
    ):
        task = store.update(task_id, changes)

    log_metric("task.update.success", 1, metadata=_metadata(store, task_id=str(task_id)))
    return TaskOut.model_validate(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["tasks"])
def delete_task(
    task_id: UUID,
    http_request: Request,
    store: TaskStore = Depends(get_task_store),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("task.delete", metadata=_metadata(store, task_id=str(task_id)), request_id=request_id):
        store.delete(task_id)

    log_metric("task.delete.success", 1, metadata=_metadata(store, task_id=str(task_id)))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{task_id}/toggle", response_model=TaskOut, tags=["tasks"])
def toggle_task(
    task_id: UUID,
    http_request: Request,
    store: TaskStore = Depends(get_task_store),
) -> TaskOut:
    """Check or uncheck a task (done <-> todo)."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("task.toggle", metadata=_metadata(store, task_id=str(task_id)), request_id=request_id):
        task = store.toggle_status(task_id)

    log_metric("task.toggle.success", 1, metadata=_metadata(store, status=task.status))
    return TaskOut.model_validate(task)


@router.post("/tasks/{task_id}/move", response_model=TaskOut, tags=["tasks", "board"])
def move_task(
    task_id: UUID,
    payload: TaskMoveRequest,
    http_request: Request,
    store: TaskStore = Depends(get_task_store),
) -> TaskOut:
    """Drop a task at the end of a board column."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.move",
        metadata=_metadata(store, task_id=str(task_id), status=payload.status),
        request_id=request_id,
    ):
        task = store.move_to_column(task_id, payload.status)

    log_metric("task.move.success", 1, metadata=_metadata(store, status=payload.status))
    return TaskOut.model_validate(task)


@router.get("/tasks/{task_id}/schedule", response_model=TaskSchedule, tags=["tasks"])
def get_task_schedule(task_id: UUID, store: TaskStore = Depends(get_task_store)) -> TaskSchedule:
    task = store.get(task_id)
    minutes = scheduling.duration_minutes(task.start_time, task.end_time)
    return TaskSchedule(
        task_id=task.id,
        duration_minutes=minutes,
        duration_label=scheduling.format_duration(minutes),
        is_multi_day=scheduling.is_multi_day(task.start_date, task.end_date),
        date_span_days=scheduling.date_span_days(task.start_date, task.end_date),
        time_order_error=scheduling.validate_time_order(task.start_time, task.end_time),
    )
