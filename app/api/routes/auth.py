"""Authentication routes delegating to the identity service."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_identity, get_session_context
from app.api.schemas.auth import (
    CallbackRequest,
    OAuthRedirectResponse,
    RefreshRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    UserOut,
)
from app.core.errors import ValidationFailed, WorkspaceProvisioningError
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.identity import IdentityClient, IdentitySession, IdentityUser, validate_nickname
from app.services.session import SessionContext
from app.services.workspace_service import derive_nickname, ensure_workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

OAUTH_PROVIDERS = ("google",)


def _user_out(user: IdentityUser) -> UserOut:
    return UserOut(
        id=UUID(user.id),
        email=user.email,
        nickname=derive_nickname(user.metadata, user.email),
        metadata=user.metadata,
    )


def _session_response(
    db: Session,
    session: IdentitySession,
    request_id: Optional[str],
) -> SessionResponse:
    user_id = UUID(session.user.id)
    try:
        workspace_id: Optional[UUID] = ensure_workspace(db, user_id, session.user.metadata, session.user.email)
    except WorkspaceProvisioningError:
        # Sign-in still succeeds; the next workspace-scoped request retries provisioning.
        logger.warning("Signed in user %s without a workspace", user_id)
        workspace_id = None
    return SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=_user_out(session.user),
        workspace_id=workspace_id,
        request_id=request_id or "",
    )


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def sign_up(
    payload: SignUpRequest,
    http_request: Request,
    identity: IdentityClient = Depends(get_identity),
    db: Session = Depends(get_db),
) -> SessionResponse:
    """Register with email/password; the workspace is created once a session exists."""
    request_id = getattr(http_request.state, "request_id", None)
    nickname = validate_nickname(payload.nickname)

    with trace("auth.sign_up", metadata={"route": "/auth/signup"}, request_id=request_id):
        result = identity.sign_up(
            payload.email,
            payload.password,
            metadata={"nickname": nickname},
            redirect_to=payload.redirect_to,
        )

    log_metric("auth.sign_up.success", 1, metadata={"confirmation_required": result.confirmation_required})
    if result.session is None:
        return SessionResponse(
            access_token=None,
            refresh_token=None,
            expires_in=None,
            user=_user_out(result.user),
            workspace_id=None,
            confirmation_required=True,
            request_id=request_id or "",
        )
    return _session_response(db, result.session, request_id)


@router.post("/signin", response_model=SessionResponse)
def sign_in(
    payload: SignInRequest,
    http_request: Request,
    identity: IdentityClient = Depends(get_identity),
    db: Session = Depends(get_db),
) -> SessionResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("auth.sign_in", metadata={"route": "/auth/signin"}, request_id=request_id):
        session = identity.sign_in_with_password(payload.email, payload.password)
    return _session_response(db, session, request_id)


@router.get("/oauth/{provider}", response_model=OAuthRedirectResponse)
def oauth_redirect(
    provider: str,
    redirect_to: Optional[str] = Query(default=None),
    identity: IdentityClient = Depends(get_identity),
) -> OAuthRedirectResponse:
    if provider not in OAUTH_PROVIDERS:
        raise ValidationFailed(f"지원하지 않는 로그인 방식입니다: {provider}")
    return OAuthRedirectResponse(provider=provider, url=identity.authorize_url(provider, redirect_to))


@router.post("/callback", response_model=SessionResponse)
def auth_callback(
    payload: CallbackRequest,
    http_request: Request,
    identity: IdentityClient = Depends(get_identity),
    db: Session = Depends(get_db),
) -> SessionResponse:
    """Finish an OAuth code exchange or an email-link verification."""
    request_id = getattr(http_request.state, "request_id", None)
    if payload.code:
        flow = "oauth"
        with trace("auth.callback", metadata={"flow": flow}, request_id=request_id):
            session = identity.exchange_code(payload.code, payload.code_verifier)
    elif payload.token_hash and payload.type:
        flow = "email"
        with trace("auth.callback", metadata={"flow": flow}, request_id=request_id):
            session = identity.verify_otp(payload.token_hash, payload.type)
    else:
        raise ValidationFailed("인증 링크가 올바르지 않습니다. 이메일의 링크를 다시 확인해주세요.")

    logger.info("Auth callback (%s) succeeded for user %s", flow, session.user.id)
    log_metric("auth.callback.success", 1, metadata={"flow": flow})
    return _session_response(db, session, request_id)


@router.post("/refresh", response_model=SessionResponse)
def refresh(
    payload: RefreshRequest,
    http_request: Request,
    identity: IdentityClient = Depends(get_identity),
    db: Session = Depends(get_db),
) -> SessionResponse:
    request_id = getattr(http_request.state, "request_id", None)
    session = identity.refresh_session(payload.refresh_token)
    return _session_response(db, session, request_id)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(
    session: SessionContext = Depends(get_session_context),
    identity: IdentityClient = Depends(get_identity),
) -> Response:
    identity.sign_out(session.access_token or "")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session", response_model=SessionResponse)
def current_session(
    http_request: Request,
    session: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> SessionResponse:
    """Describe the bearer's session and make sure their workspace exists."""
    request_id = getattr(http_request.state, "request_id", None)
    workspace_id = ensure_workspace(db, session.user_id, session.metadata, session.email)
    return SessionResponse(
        access_token=None,
        refresh_token=None,
        expires_in=None,
        user=UserOut(
            id=session.user_id,
            email=session.email,
            nickname=derive_nickname(session.metadata, session.email),
            metadata=session.metadata,
        ),
        workspace_id=workspace_id,
        request_id=request_id or "",
    )
