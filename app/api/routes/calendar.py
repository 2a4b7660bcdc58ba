"""Calendar and board API routes."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.api.deps import get_task_store
from app.api.schemas.calendar import (
    BoardColumn,
    BoardResponse,
    CalendarDay,
    CalendarEntry,
    CalendarMonthResponse,
)
from app.api.schemas.task import TaskOut
from app.db.models.task import Task
from app.observability.tracing import trace
from app.services import scheduling
from app.services.board_service import COLUMN_TITLES, group_by_column
from app.services.calendar_service import month_view, tasks_on_day
from app.services.dashboard_service import local_today
from app.services.task_service import TaskStore

router = APIRouter()


def _entry(task: Task) -> CalendarEntry:
    minutes = scheduling.duration_minutes(task.start_time, task.end_time)
    return CalendarEntry(
        task=TaskOut.model_validate(task),
        duration_minutes=minutes,
        duration_label=scheduling.format_duration(minutes),
        is_multi_day=scheduling.is_multi_day(task.start_date, task.end_date),
    )


@router.get("/calendar", response_model=CalendarMonthResponse, tags=["calendar"])
def get_month(
    http_request: Request,
    year: Optional[int] = Query(default=None, ge=1970, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    store: TaskStore = Depends(get_task_store),
) -> CalendarMonthResponse:
    request_id = getattr(http_request.state, "request_id", None)
    today = local_today()
    year = year or today.year
    month = month or today.month

    with trace("calendar.month", metadata={"year": year, "month": month}, request_id=request_id):
        view = month_view(store.list(order="due_date"), year, month)

    return CalendarMonthResponse(
        year=year,
        month=month,
        days=[CalendarDay(date=day, entries=[_entry(task) for task in tasks]) for day, tasks in view.items()],
        request_id=request_id or "",
    )


@router.get("/calendar/day", response_model=CalendarDay, tags=["calendar"])
def get_day(
    day: Optional[date] = Query(default=None, alias="date"),
    store: TaskStore = Depends(get_task_store),
) -> CalendarDay:
    day = day or local_today()
    tasks = tasks_on_day(store.list(order="due_date"), day)
    return CalendarDay(date=day, entries=[_entry(task) for task in tasks])


@router.get("/board", response_model=BoardResponse, tags=["board"])
def get_board(http_request: Request, store: TaskStore = Depends(get_task_store)) -> BoardResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("board.get", metadata={"route": "/board"}, request_id=request_id):
        columns = group_by_column(store.list(order="kanban"))

    return BoardResponse(
        columns=[
            BoardColumn(
                status=status,
                title=COLUMN_TITLES.get(status, status),
                tasks=[TaskOut.model_validate(task) for task in tasks],
            )
            for status, tasks in columns.items()
        ],
        request_id=request_id or "",
    )
