"""Blob storage providers for task attachments."""
from app.services.storage.base import BlobStore
from app.services.storage.factory import get_blob_store

__all__ = ["BlobStore", "get_blob_store"]
