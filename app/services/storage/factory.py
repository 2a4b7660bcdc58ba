"""Blob store factory."""
from __future__ import annotations

from functools import lru_cache

from app.core.config import settings
from app.services.storage.base import BlobStore
from app.services.storage.local import LocalBlobStore
from app.services.storage.supabase import SupabaseBlobStore


@lru_cache
def get_blob_store() -> BlobStore:
    provider = settings.storage_provider.lower()
    if provider == "supabase":
        return SupabaseBlobStore(
            settings.storage_url or settings.identity_url,
            settings.storage_bucket,
            settings.storage_service_key or settings.identity_anon_key,
            timeout=settings.http_timeout_seconds,
        )
    return LocalBlobStore(settings.storage_root, settings.storage_bucket)
