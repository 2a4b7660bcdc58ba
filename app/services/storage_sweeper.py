"""Reclaim blobs that lost their metadata row."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional

from sqlalchemy.orm import Session

from app.db.models.attachment import TaskAttachment
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.storage.base import BlobStore

logger = logging.getLogger(__name__)

# Blobs younger than this may still be waiting for their metadata insert.
DEFAULT_GRACE_SECONDS = 15 * 60


@dataclass
class SweepResult:
    scanned: int
    orphaned: List[str]
    removed: int


def _uploaded_at_ms(path: str) -> Optional[int]:
    stamp = PurePosixPath(path).name.split("_", 1)[0]
    return int(stamp) if stamp.isdigit() else None


def sweep_orphaned_blobs(
    db: Session,
    blob_store: BlobStore,
    *,
    dry_run: bool = False,
    grace_seconds: int = DEFAULT_GRACE_SECONDS,
    now_ms: Optional[int] = None,
) -> SweepResult:
    """Delete every settled blob that no task_attachments row references."""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    cutoff = now_ms - grace_seconds * 1000

    with trace("storage.sweep", metadata={"bucket": blob_store.bucket, "dry_run": dry_run}):
        stored = blob_store.list_paths()
        referenced = {path for (path,) in db.query(TaskAttachment.storage_path).all()}
        orphaned = []
        for path in stored:
            if path in referenced:
                continue
            uploaded_at = _uploaded_at_ms(path)
            if uploaded_at is not None and uploaded_at > cutoff:
                continue
            orphaned.append(path)

        removed = 0
        if orphaned and not dry_run:
            blob_store.remove(orphaned)
            removed = len(orphaned)

    logger.info(
        "Storage sweep scanned=%d orphaned=%d removed=%d dry_run=%s",
        len(stored),
        len(orphaned),
        removed,
        dry_run,
    )
    log_metric("storage.sweep.orphaned", len(orphaned), metadata={"bucket": blob_store.bucket})
    return SweepResult(scanned=len(stored), orphaned=orphaned, removed=removed)
