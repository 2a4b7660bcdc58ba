from app.db.base import Base
from app.db import models  # noqa: F401  ensure models are loaded


def test_metadata_contains_core_tables() -> None:
    table_names = set(Base.metadata.tables.keys())

    assert {"workspaces", "tasks", "task_attachments"}.issubset(table_names)


def test_task_foreign_keys_cascade() -> None:
    tasks = Base.metadata.tables["tasks"]
    attachments = Base.metadata.tables["task_attachments"]

    assert [fk.ondelete for fk in tasks.foreign_keys] == ["CASCADE"]
    assert [fk.ondelete for fk in attachments.foreign_keys] == ["CASCADE"]
    assert attachments.c.storage_path.unique is True
