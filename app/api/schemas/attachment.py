"""Schemas for attachment endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AttachmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_id: UUID
    user_id: UUID
    file_name: str
    file_size: int
    file_type: str
    storage_path: str
    created_at: datetime


class AttachmentDeleteResponse(BaseModel):
    id: UUID
    deleted: bool
    blob_removed: bool
    request_id: str
