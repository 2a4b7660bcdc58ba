"""Domain error taxonomy and its HTTP translation."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TaskFlowError(Exception):
    """Base class for errors that carry a user-facing message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    default_message = "알 수 없는 오류가 발생했습니다."
    log_as_failure = True

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationFailed(TaskFlowError):
    """Input rejected before any external call was made."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_failed"
    default_message = "입력값이 올바르지 않습니다."
    log_as_failure = False

    def __init__(self, message: str | None = None, *, errors: list[str] | None = None, code: str | None = None) -> None:
        self.errors = list(errors or ([message] if message else []))
        super().__init__(message or (self.errors[0] if self.errors else None), code=code)


class AuthenticationRequired(TaskFlowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_required"
    default_message = "로그인이 필요합니다."
    log_as_failure = False


class NotFoundError(TaskFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "요청한 항목을 찾을 수 없습니다."
    log_as_failure = False


class ConflictError(TaskFlowError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_message = "이미 존재하는 항목입니다."
    log_as_failure = False


class ExternalServiceError(TaskFlowError):
    """A collaborator (identity, relational store, blob store) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "external_service_error"
    default_message = "외부 서비스 호출 중 오류가 발생했습니다."


class IdentityError(ExternalServiceError):
    code = "identity_error"
    default_message = "인증 서비스 호출 중 오류가 발생했습니다."

    def __init__(self, message: str | None = None, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message, code=code)
        # 4xx answers from the identity service are the caller's problem, not ours.
        if status_code is not None and 400 <= status_code < 500:
            self.status_code = status.HTTP_401_UNAUTHORIZED if status_code in (400, 401, 403) else status_code
            self.log_as_failure = False


class StoreError(ExternalServiceError):
    code = "store_error"
    default_message = "데이터 저장 중 오류가 발생했습니다."


class WorkspaceProvisioningError(StoreError):
    code = "workspace_provisioning_failed"
    default_message = "워크스페이스를 준비하지 못했습니다. 잠시 후 다시 시도해주세요."


class StorageError(ExternalServiceError):
    code = "storage_error"
    default_message = "파일 저장소 호출 중 오류가 발생했습니다."


class StorageNotConfiguredError(StorageError):
    """Bucket missing or access policy denied: needs setup, not a retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_not_configured"
    default_message = "스토리지 설정이 필요합니다. 관리자에게 문의하세요."


async def _handle_taskflow_error(request: Request, exc: TaskFlowError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if exc.log_as_failure:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)

    body = {"detail": exc.message, "code": exc.code, "request_id": request_id or ""}
    if isinstance(exc, ValidationFailed) and exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Convert every TaskFlowError into a JSON error payload."""
    app.add_exception_handler(TaskFlowError, _handle_taskflow_error)  # type: ignore[arg-type]
