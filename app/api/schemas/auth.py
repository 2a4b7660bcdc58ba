"""Schemas for authentication endpoints."""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    nickname: str
    redirect_to: Optional[str] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class CallbackRequest(BaseModel):
    code: Optional[str] = None
    code_verifier: Optional[str] = None
    token_hash: Optional[str] = None
    type: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class UserOut(BaseModel):
    id: UUID
    email: Optional[str]
    nickname: Optional[str]
    metadata: Dict[str, Any]


class SessionResponse(BaseModel):
    access_token: Optional[str]
    refresh_token: Optional[str]
    expires_in: Optional[int]
    user: UserOut
    workspace_id: Optional[UUID]
    confirmation_required: bool = False
    request_id: str


class OAuthRedirectResponse(BaseModel):
    provider: str
    url: str
