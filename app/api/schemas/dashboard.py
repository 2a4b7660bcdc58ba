"""Schemas for dashboard endpoint."""
from __future__ import annotations

from datetime import date
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel

from app.api.schemas.task import TaskOut


class DashboardResponse(BaseModel):
    workspace_id: UUID
    workspace_name: str
    today: date
    due_today: List[TaskOut]
    overdue: List[TaskOut]
    upcoming: List[TaskOut]
    status_counts: Dict[str, int]
    total: int
    request_id: str
