"""Dashboard API routes."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_task_store
from app.api.schemas.dashboard import DashboardResponse
from app.api.schemas.task import TaskOut
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.dashboard_service import bucket_tasks
from app.services.task_service import TaskStore
from app.services.workspace_service import get_workspace

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse, tags=["dashboard"])
def get_dashboard(
    http_request: Request,
    store: TaskStore = Depends(get_task_store),
    db: Session = Depends(get_db),
) -> DashboardResponse:
    request_id = getattr(http_request.state, "request_id", None)
    workspace_id = store.scope.workspace_id
    start_time = datetime.now(timezone.utc)

    with trace(
        "dashboard.get",
        metadata={"route": "/dashboard"},
        request_id=request_id,
        workspace_id=str(workspace_id),
    ):
        workspace = get_workspace(db, workspace_id)
        tasks = store.list(order="due_date")
        buckets = bucket_tasks(tasks)

    latency_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    log_metric("dashboard.get.tasks_count", len(tasks), metadata={"workspace_id": str(workspace_id)})
    log_metric("dashboard.get.latency_ms", latency_ms, metadata={"workspace_id": str(workspace_id)})

    return DashboardResponse(
        workspace_id=workspace_id,
        workspace_name=workspace.name,
        today=buckets.today,
        due_today=[TaskOut.model_validate(task) for task in buckets.due_today],
        overdue=[TaskOut.model_validate(task) for task in buckets.overdue],
        upcoming=[TaskOut.model_validate(task) for task in buckets.upcoming],
        status_counts=buckets.status_counts,
        total=len(tasks),
        request_id=request_id or "",
    )
