"""Kanban board projection."""
from __future__ import annotations

from typing import Dict, Iterable, List

from app.db.models.task import TASK_STATUSES, Task

COLUMN_TITLES = {
    "backlog": "백로그",
    "todo": "할 일",
    "in_progress": "진행 중",
    "done": "완료",
}


def group_by_column(tasks: Iterable[Task]) -> Dict[str, List[Task]]:
    """Columns keyed by status; ``tasks`` must already be in kanban order."""
    columns: Dict[str, List[Task]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        columns.setdefault(task.status, []).append(task)
    return columns
