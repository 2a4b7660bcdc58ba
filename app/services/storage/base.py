"""Blob store interface."""
from __future__ import annotations

from typing import Iterable, List


class BlobStore:
    """Base interface for attachment blob providers.

    Paths are opaque, slash-separated keys inside one bucket. ``upload`` must
    refuse to overwrite an existing object.
    """

    bucket: str

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        raise NotImplementedError

    def download(self, path: str) -> bytes:
        raise NotImplementedError

    def remove(self, paths: Iterable[str]) -> None:
        raise NotImplementedError

    def list_paths(self, prefix: str = "") -> List[str]:
        raise NotImplementedError
