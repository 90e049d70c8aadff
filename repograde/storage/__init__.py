"""Storage backends for harvested repository files.

This module provides:
- BlobStore: Abstract base class for flat, prefix-scoped blob storage
- FileBlobStore: Local directory implementation with sidecar metadata
- SupabaseBlobStore: Supabase Storage REST implementation
- create_blob_store: Backend selection from explicit argument or environment
"""

import os

from repograde.consts import ENV_STORAGE_BACKEND
from repograde.storage.blob_store.base import BlobStore
from repograde.storage.blob_store.file_blob_store import FileBlobStore
from repograde.storage.blob_store.supabase_blob_store import SupabaseBlobStore


def create_blob_store(backend: str | None = None) -> BlobStore:
    """Create a blob store.

    Args:
        backend: 'file' or 'supabase'. None = read from env (REPOGRADE_STORAGE_BACKEND),
                 defaulting to 'file'.

    Returns:
        Configured BlobStore.
    """
    backend = (backend or os.getenv(ENV_STORAGE_BACKEND, "") or "file").strip().lower()
    if backend == "file":
        return FileBlobStore()
    if backend == "supabase":
        return SupabaseBlobStore()
    raise ValueError(f"Unsupported storage backend: {backend}")


__all__ = [
    "BlobStore",
    "FileBlobStore",
    "SupabaseBlobStore",
    "create_blob_store",
]
