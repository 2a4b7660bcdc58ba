"""Client for the external identity service (GoTrue-compatible REST API)."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.errors import IdentityError, ValidationFailed

logger = logging.getLogger(__name__)

OTP_TYPES = ("signup", "invite", "magiclink", "recovery", "email_change", "email")
_NICKNAME_PATTERN = re.compile(r"^[가-힣a-zA-Z0-9\s]+$")


@dataclass
class IdentityUser:
    id: str
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IdentityUser":
        return cls(
            id=str(payload["id"]),
            email=payload.get("email"),
            metadata=dict(payload.get("user_metadata") or {}),
        )


@dataclass
class IdentitySession:
    access_token: str
    refresh_token: Optional[str]
    expires_in: Optional[int]
    user: IdentityUser

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IdentitySession":
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            user=IdentityUser.from_payload(payload["user"]),
        )


@dataclass
class SignUpResult:
    user: IdentityUser
    session: Optional[IdentitySession]

    @property
    def confirmation_required(self) -> bool:
        return self.session is None


def validate_nickname(value: str) -> str:
    """Nicknames: 2-20 chars of Hangul, Latin letters, digits and single spaces."""
    nickname = (value or "").strip()
    if not nickname:
        raise ValidationFailed("올바른 닉네임을 입력해주세요", code="invalid_nickname")
    if len(nickname) < 2:
        raise ValidationFailed("닉네임은 최소 2자 이상이어야 합니다", code="invalid_nickname")
    if len(nickname) > 20:
        raise ValidationFailed("닉네임은 최대 20자까지 가능합니다", code="invalid_nickname")
    if not _NICKNAME_PATTERN.match(nickname):
        raise ValidationFailed("한글, 영문, 숫자만 사용 가능합니다", code="invalid_nickname")
    if re.search(r"\s{2,}", nickname):
        raise ValidationFailed("연속된 공백은 사용할 수 없습니다", code="invalid_nickname")
    return nickname


class IdentityClient:
    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/auth/v1"
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"apikey": anon_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _call(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        failure_message: str,
        access_token: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            response = self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("Identity %s could not reach the server", operation)
            raise IdentityError(failure_message) from exc

        if response.is_success:
            if not response.content:
                return {}
            return response.json()

        detail = _error_detail(response)
        logger.warning("Identity %s failed (%s): %s", operation, response.status_code, detail)
        raise IdentityError(f"{failure_message} ({detail})", status_code=response.status_code)

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[Dict[str, Any]] = None,
        redirect_to: Optional[str] = None,
    ) -> SignUpResult:
        params = {"redirect_to": redirect_to} if redirect_to else None
        payload = self._call(
            "POST",
            "/signup",
            operation="sign_up",
            failure_message="회원가입에 실패했습니다",
            params=params,
            json={"email": email, "password": password, "data": metadata or {}},
        )
        if "access_token" in payload:
            session = IdentitySession.from_payload(payload)
            return SignUpResult(user=session.user, session=session)
        # Email confirmation pending: the user object is returned bare.
        user_payload = payload.get("user") or payload
        return SignUpResult(user=IdentityUser.from_payload(user_payload), session=None)

    def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        payload = self._call(
            "POST",
            "/token",
            operation="sign_in",
            failure_message="로그인에 실패했습니다",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return IdentitySession.from_payload(payload)

    def authorize_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        """URL the browser is sent to for an OAuth sign-in."""
        query: Dict[str, str] = {"provider": provider}
        if redirect_to:
            query["redirect_to"] = redirect_to
        return f"{self.base_url}/authorize?{urlencode(query)}"

    def verify_otp(self, token_hash: str, otp_type: str) -> IdentitySession:
        if otp_type not in OTP_TYPES:
            raise ValidationFailed("인증 링크가 올바르지 않습니다. 이메일의 링크를 다시 확인해주세요.")
        payload = self._call(
            "POST",
            "/verify",
            operation="verify_otp",
            failure_message="이메일 인증에 실패했습니다",
            json={"type": otp_type, "token_hash": token_hash},
        )
        if "access_token" not in payload:
            raise IdentityError("인증은 완료되었으나 세션 생성에 실패했습니다")
        return IdentitySession.from_payload(payload)

    def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> IdentitySession:
        payload = self._call(
            "POST",
            "/token",
            operation="exchange_code",
            failure_message="Google 로그인에 실패했습니다",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier or ""},
        )
        if not payload.get("user"):
            raise IdentityError("사용자 정보를 가져올 수 없습니다")
        return IdentitySession.from_payload(payload)

    def refresh_session(self, refresh_token: str) -> IdentitySession:
        payload = self._call(
            "POST",
            "/token",
            operation="refresh",
            failure_message="세션을 갱신하지 못했습니다",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return IdentitySession.from_payload(payload)

    def get_user(self, access_token: str) -> IdentityUser:
        payload = self._call(
            "GET",
            "/user",
            operation="get_user",
            failure_message="사용자 정보를 가져올 수 없습니다",
            access_token=access_token,
        )
        return IdentityUser.from_payload(payload)

    def sign_out(self, access_token: str) -> None:
        self._call(
            "POST",
            "/logout",
            operation="sign_out",
            failure_message="로그아웃에 실패했습니다",
            access_token=access_token,
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return str(
            payload.get("error_description")
            or payload.get("msg")
            or payload.get("message")
            or payload.get("error")
            or payload
        )
    return str(payload)


@lru_cache
def get_identity_client() -> IdentityClient:
    return IdentityClient(
        settings.identity_url,
        settings.identity_anon_key,
        timeout=settings.http_timeout_seconds,
    )
