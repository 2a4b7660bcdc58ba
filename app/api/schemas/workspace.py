"""Schemas for workspace endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WorkspaceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[UUID]
    name: str
    workspace_key: str
    created_at: datetime
    updated_at: datetime


class WorkspaceKeyLoginRequest(BaseModel):
    workspace_key: str = Field(..., min_length=1)


class WorkspaceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    workspace_key: str = Field(..., min_length=1)
