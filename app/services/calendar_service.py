"""Calendar projections over a workspace's tasks."""
from __future__ import annotations

import calendar
from datetime import date
from typing import Dict, Iterable, List

from app.core.errors import ValidationFailed
from app.db.models.task import Task
from app.services.scheduling import first_day, occurs_on, parse_time


def _start_time_key(task: Task):
    minutes = parse_time(task.start_time)
    return (minutes is None, minutes or 0)


def tasks_on_day(tasks: Iterable[Task], day: date) -> List[Task]:
    """Tasks shown on ``day``, timed ones first in start-time order."""
    return sorted((task for task in tasks if occurs_on(task, day)), key=_start_time_key)


def month_view(tasks: Iterable[Task], year: int, month: int) -> Dict[date, List[Task]]:
    if not 1 <= month <= 12:
        raise ValidationFailed("월은 1에서 12 사이여야 합니다.")
    days_in_month = calendar.monthrange(year, month)[1]
    first = date(year, month, 1)
    last = date(year, month, days_in_month)
    candidates = [
        task
        for task in tasks
        if first_day(task) is not None
        and first_day(task) <= last
        and (task.end_date or first_day(task)) >= first
    ]
    view: Dict[date, List[Task]] = {}
    for offset in range(days_in_month):
        day = date(year, month, offset + 1)
        day_tasks = tasks_on_day(candidates, day)
        if day_tasks:
            view[day] = day_tasks
    return view
