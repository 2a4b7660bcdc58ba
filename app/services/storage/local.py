"""Filesystem-backed blob store (one directory per bucket)."""
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable, List

from app.core.errors import NotFoundError, StorageError, StorageNotConfiguredError
from app.services.storage.base import BlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    def __init__(self, root: str | Path, bucket: str) -> None:
        self.root = Path(root)
        self.bucket = bucket
        self.bucket_dir = self.root / bucket

    def _ensure_bucket(self) -> Path:
        if not self.bucket_dir.is_dir():
            logger.error("Storage bucket directory missing: %s", self.bucket_dir)
            raise StorageNotConfiguredError()
        return self.bucket_dir

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise StorageError(f"잘못된 저장 경로입니다: {path}")
        return self._ensure_bucket().joinpath(*relative.parts)

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as handle:
                handle.write(data)
        except FileExistsError as exc:
            raise StorageError("같은 경로의 파일이 이미 존재합니다.", code="storage_conflict") from exc
        except PermissionError as exc:
            logger.error("Permission denied writing %s", target)
            raise StorageNotConfiguredError() from exc
        except OSError as exc:
            logger.exception("Failed to write blob %s", path)
            raise StorageError(f"스토리지 업로드 실패: {exc}") from exc
        logger.debug("Stored blob %s (%s, %d bytes)", path, content_type, len(data))

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError("파일을 찾을 수 없습니다.") from exc
        except PermissionError as exc:
            raise StorageNotConfiguredError() from exc
        except OSError as exc:
            raise StorageError(f"파일 다운로드 실패: {exc}") from exc

    def remove(self, paths: Iterable[str]) -> None:
        failures: List[str] = []
        for path in paths:
            target = self._resolve(path)
            try:
                target.unlink(missing_ok=True)
            except OSError:
                logger.exception("Failed to delete blob %s", path)
                failures.append(path)
        if failures:
            raise StorageError(f"파일 삭제 실패: {', '.join(failures)}")

    def list_paths(self, prefix: str = "") -> List[str]:
        bucket_dir = self._ensure_bucket()
        paths = [
            item.relative_to(bucket_dir).as_posix()
            for item in bucket_dir.rglob("*")
            if item.is_file()
        ]
        return sorted(path for path in paths if path.startswith(prefix))
