"""Schemas for task endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

TaskStatus = Literal["backlog", "todo", "in_progress", "done"]
TaskPriority = Literal["low", "medium", "high"]


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    user_id: UUID
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: Optional[TaskPriority]
    due_date: Optional[date]
    start_date: Optional[date]
    end_date: Optional[date]
    start_time: Optional[str]
    end_time: Optional[str]
    kanban_order: int
    created_at: datetime
    updated_at: datetime


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class TaskUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class TaskMoveRequest(BaseModel):
    status: TaskStatus


class TaskSchedule(BaseModel):
    task_id: UUID
    duration_minutes: Optional[int]
    duration_label: Optional[str]
    is_multi_day: bool
    date_span_days: Optional[int]
    time_order_error: Optional[str]
