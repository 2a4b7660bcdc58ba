"""Recording doubles for external collaborators, plus token helpers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from jose import jwt

from app.core.config import settings
from app.core.errors import NotFoundError, StorageError
from app.services.storage.base import BlobStore


@dataclass
class UploadCall:
    path: str
    data: bytes
    content_type: str


class RecordingBlobStore(BlobStore):
    """In-memory blob store that records every call."""

    def __init__(self, bucket: str = "task-attachments") -> None:
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.uploads: List[UploadCall] = []
        self.removals: List[List[str]] = []
        self.upload_error: Exception | None = None
        self.remove_error: Exception | None = None

    @property
    def call_count(self) -> int:
        return len(self.uploads) + len(self.removals)

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        self.uploads.append(UploadCall(path, data, content_type))
        if self.upload_error is not None:
            raise self.upload_error
        if path in self.objects:
            raise StorageError("같은 경로의 파일이 이미 존재합니다.", code="storage_conflict")
        self.objects[path] = data

    def download(self, path: str) -> bytes:
        if path not in self.objects:
            raise NotFoundError("파일을 찾을 수 없습니다.")
        return self.objects[path]

    def remove(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        self.removals.append(paths)
        if self.remove_error is not None:
            raise self.remove_error
        for path in paths:
            self.objects.pop(path, None)

    def list_paths(self, prefix: str = "") -> List[str]:
        return sorted(path for path in self.objects if path.startswith(prefix))


def make_token(
    user_id: UUID,
    *,
    email: Optional[str] = "a@x.com",
    metadata: Optional[Dict[str, Any]] = None,
    expires_in: timedelta = timedelta(hours=1),
    audience: Optional[str] = None,
    secret: Optional[str] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "email": email,
        "aud": audience or settings.identity_jwt_audience,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
        "user_metadata": metadata or {},
    }
    return jwt.encode(claims, secret or settings.identity_jwt_secret, algorithm="HS256")


def auth_headers(user_id: UUID, **kwargs: Any) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, **kwargs)}"}
