"""Date buckets and counts for the dashboard."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.db.models.task import TASK_STATUSES, Task

UPCOMING_WINDOW_DAYS = 7


@dataclass
class TaskBuckets:
    today: date
    due_today: List[Task] = field(default_factory=list)
    overdue: List[Task] = field(default_factory=list)
    upcoming: List[Task] = field(default_factory=list)
    status_counts: Dict[str, int] = field(default_factory=dict)


def local_today(tz_name: Optional[str] = None) -> date:
    return datetime.now(ZoneInfo(tz_name or settings.timezone)).date()


def bucket_tasks(tasks: Iterable[Task], today: Optional[date] = None) -> TaskBuckets:
    """Split open tasks by due_date relative to a single ``today``."""
    today = today or local_today()
    horizon = today + timedelta(days=UPCOMING_WINDOW_DAYS)
    buckets = TaskBuckets(today=today, status_counts={status: 0 for status in TASK_STATUSES})

    for task in tasks:
        buckets.status_counts[task.status] = buckets.status_counts.get(task.status, 0) + 1
        if task.status == "done" or task.due_date is None:
            continue
        if task.due_date == today:
            buckets.due_today.append(task)
        elif task.due_date < today:
            buckets.overdue.append(task)
        elif task.due_date <= horizon:
            buckets.upcoming.append(task)
    return buckets
