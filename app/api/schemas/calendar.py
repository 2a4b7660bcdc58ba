"""Schemas for calendar and board views."""
from __future__ import annotations

import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.api.schemas.task import TaskOut


class CalendarEntry(BaseModel):
    task: TaskOut
    duration_minutes: Optional[int]
    duration_label: Optional[str]
    is_multi_day: bool


class CalendarDay(BaseModel):
    date: datetime.date
    entries: List[CalendarEntry]


class CalendarMonthResponse(BaseModel):
    year: int
    month: int
    days: List[CalendarDay]
    request_id: str


class BoardColumn(BaseModel):
    status: str
    title: str
    tasks: List[TaskOut]


class BoardResponse(BaseModel):
    columns: List[BoardColumn]
    request_id: str
