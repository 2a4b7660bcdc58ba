"""Explicit session objects handed to every operation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.errors import AuthenticationRequired

logger = logging.getLogger(__name__)

ALGORITHMS = ["HS256"]


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller, as asserted by the identity service token."""

    user_id: UUID
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    access_token: Optional[str] = None


@dataclass(frozen=True)
class WorkspaceScope:
    """The (workspace, user) pair that task and attachment operations act within."""

    workspace_id: UUID
    user_id: UUID


def resolve_session(token: Optional[str]) -> SessionContext:
    """Verify an identity-service access token and build a SessionContext."""
    if not token:
        raise AuthenticationRequired()
    try:
        claims = jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=ALGORITHMS,
            audience=settings.identity_jwt_audience,
        )
    except ExpiredSignatureError as exc:
        raise AuthenticationRequired("세션이 만료되었습니다. 다시 로그인해주세요.", code="session_expired") from exc
    except JWTError as exc:
        logger.info("Rejected access token: %s", exc)
        raise AuthenticationRequired("유효하지 않은 인증 정보입니다.", code="invalid_token") from exc

    subject = claims.get("sub")
    try:
        user_id = UUID(str(subject))
    except (TypeError, ValueError) as exc:
        raise AuthenticationRequired("유효하지 않은 인증 정보입니다.", code="invalid_token") from exc

    metadata = claims.get("user_metadata") or {}
    return SessionContext(
        user_id=user_id,
        email=claims.get("email"),
        metadata=dict(metadata) if isinstance(metadata, dict) else {},
        access_token=token,
    )
