"""ORM models exposed for metadata discovery."""
from app.db.models.attachment import TaskAttachment
from app.db.models.task import Task
from app.db.models.workspace import Workspace

__all__ = [
    "Task",
    "TaskAttachment",
    "Workspace",
]
