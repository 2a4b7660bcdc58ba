"""Blob store backed by a Supabase-compatible Storage REST API."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from app.core.errors import NotFoundError, StorageError, StorageNotConfiguredError
from app.services.storage.base import BlobStore

logger = logging.getLogger(__name__)

_NOT_CONFIGURED_HINTS = ("bucket not found", "row-level security")
LIST_PAGE_SIZE = 1000


class SupabaseBlobStore(BlobStore):
    def __init__(
        self,
        base_url: str,
        bucket: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.bucket = bucket
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/storage/v1",
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, *, operation: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.exception("Storage %s failed to reach the server", operation)
            raise StorageError(f"스토리지 연결 실패: {exc}") from exc

        if response.is_success:
            return response

        message = _error_message(response)
        lowered = message.lower()
        logger.warning("Storage %s failed (%s): %s", operation, response.status_code, message)
        if response.status_code in (401, 403) or any(hint in lowered for hint in _NOT_CONFIGURED_HINTS):
            raise StorageNotConfiguredError()
        if response.status_code == 404:
            if operation == "download" and "bucket" not in lowered:
                raise NotFoundError("파일을 찾을 수 없습니다.")
            raise StorageNotConfiguredError()
        if response.status_code == 409:
            raise StorageError("같은 경로의 파일이 이미 존재합니다.", code="storage_conflict")
        raise StorageError(f"스토리지 {operation} 실패: {message}")

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        self._request(
            "POST",
            f"/object/{self.bucket}/{path}",
            operation="upload",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "false", "cache-control": "3600"},
        )

    def download(self, path: str) -> bytes:
        response = self._request("GET", f"/object/{self.bucket}/{path}", operation="download")
        return response.content

    def remove(self, paths: Iterable[str]) -> None:
        prefixes = list(paths)
        if not prefixes:
            return
        self._request("DELETE", f"/object/{self.bucket}", operation="remove", json={"prefixes": prefixes})

    def list_paths(self, prefix: str = "") -> List[str]:
        found: List[str] = []
        pending = [prefix.rstrip("/")]
        while pending:
            folder = pending.pop()
            for entry in self._list_folder(folder):
                name = entry.get("name")
                if not name:
                    continue
                full = f"{folder}/{name}" if folder else name
                # Folders come back without an id.
                if entry.get("id") is None:
                    pending.append(full)
                else:
                    found.append(full)
        return sorted(found)

    def _list_folder(self, folder: str) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        offset = 0
        while True:
            response = self._request(
                "POST",
                f"/object/list/{self.bucket}",
                operation="list",
                json={"prefix": folder, "limit": LIST_PAGE_SIZE, "offset": offset},
            )
            page = response.json()
            entries.extend(page)
            if len(page) < LIST_PAGE_SIZE:
                return entries
            offset += LIST_PAGE_SIZE


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or payload)
    return str(payload)
