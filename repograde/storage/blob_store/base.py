"""Abstract base class for blob storage backends.

Blob storage holds one submission's harvested files under a flat prefix.
Names are flat (no "/"), so each blob carries metadata recording the
original repo-relative path and file name.
"""

from abc import ABC, abstractmethod

from repograde.models.model_storage import StoredBlob

META_ORIGINAL_PATH = "originalPath"
META_ORIGINAL_NAME = "originalName"


class BlobStore(ABC):
    """Abstract base class for blob store implementations.

    Writes are upserts: writing the same prefix/name twice replaces the
    previous content and metadata.
    """

    @abstractmethod
    async def upload(
        self,
        prefix: str,
        name: str,
        content: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Write a text blob.

        Args:
            prefix: Submission-scoped storage prefix.
            name: Flat blob name.
            content: UTF-8 text content.
            metadata: Sidecar metadata stored with the blob.

        Raises:
            StorageWriteError: If the backend rejects the write.
        """
        ...

    @abstractmethod
    async def list_blobs(self, prefix: str) -> list[StoredBlob]:
        """List blobs under a prefix, sorted by name.

        Args:
            prefix: Submission-scoped storage prefix.

        Returns:
            Blobs found, empty if the prefix does not exist.

        Raises:
            StorageReadError: If the listing fails.
        """
        ...

    @abstractmethod
    async def download(self, prefix: str, name: str) -> str:
        """Read a blob as text.

        Raises:
            StorageReadError: If the blob is missing or unreadable.
        """
        ...

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        """Delete every blob under a prefix.

        Returns:
            Number of blobs deleted.
        """
        ...

    async def aclose(self) -> None:
        """Release any held connections."""
        return None
