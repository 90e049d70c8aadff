"""File-based blob store for harvested repository files.

Directory structure:
    {root}/
    └── submissions/{submitter}/{challenge}/{timestamp}/
        ├── blobs/
        │   ├── src__index.ts           # Blob content (UTF-8)
        │   └── README.md
        └── meta/
            ├── src__index.ts.json      # Sidecar metadata
            └── README.md.json

Blob content and sidecars live in separate directories, so no blob name
can collide with a sidecar.
"""

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

from repograde.consts import DEFAULT_STORAGE_DIR, ENV_STORAGE_DIR
from repograde.errors import InputError, StorageReadError, StorageWriteError
from repograde.models.model_storage import StoredBlob
from repograde.storage.blob_store.base import META_ORIGINAL_NAME, META_ORIGINAL_PATH, BlobStore

logger = logging.getLogger(__name__)

BLOBS_DIR = "blobs"
META_DIR = "meta"
META_SUFFIX = ".json"


class FileBlobStore(BlobStore):
    """Blob store backed by a local directory."""

    def __init__(self, root_dir: Path | str | None = None):
        """Initialize FileBlobStore.

        Args:
            root_dir: Root directory for all prefixes.
                      None = read from env (REPOGRADE_STORAGE_DIR), then default.
        """
        if root_dir is None:
            root_dir = os.getenv(ENV_STORAGE_DIR, "").strip() or DEFAULT_STORAGE_DIR
        self.root_dir = Path(root_dir)

    def _prefix_dir(self, prefix: str) -> Path:
        """Resolve a prefix to a directory inside the root."""
        parts = PurePosixPath(prefix.strip("/")).parts
        if not parts or any(part in ("..", ".") for part in parts):
            raise InputError(f"Invalid storage prefix: {prefix!r}")
        return self.root_dir.joinpath(*parts)

    def _blob_path(self, prefix: str, name: str) -> Path:
        if not name or "/" in name or name in ("..", "."):
            raise InputError(f"Invalid blob name: {name!r}")
        return self._prefix_dir(prefix) / BLOBS_DIR / name

    @staticmethod
    def _sidecar_path(blob_path: Path) -> Path:
        return blob_path.parent.parent / META_DIR / (blob_path.name + META_SUFFIX)

    async def upload(
        self,
        prefix: str,
        name: str,
        content: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        path = self._blob_path(prefix, name)
        sidecar = self._sidecar_path(path)
        data = content.encode("utf-8")
        envelope = {
            "name": name,
            "saved_at": datetime.now(UTC).isoformat(),
            "size_bytes": len(data),
            "metadata": metadata or {},
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            sidecar.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            sidecar.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageWriteError(f"Failed to write blob {name}", details=str(e)) from e
        logger.debug(f"Stored {prefix}/{name} ({len(data)} bytes)")

    async def list_blobs(self, prefix: str) -> list[StoredBlob]:
        blobs_dir = self._prefix_dir(prefix) / BLOBS_DIR
        if not blobs_dir.is_dir():
            return []

        blobs = []
        try:
            for path in sorted(blobs_dir.iterdir()):
                if not path.is_file():
                    continue
                metadata = self._read_metadata(path)
                blobs.append(
                    StoredBlob(
                        name=path.name,
                        original_path=metadata.get(META_ORIGINAL_PATH),
                        original_name=metadata.get(META_ORIGINAL_NAME),
                        size_bytes=path.stat().st_size,
                    )
                )
        except OSError as e:
            raise StorageReadError(f"Failed to list {prefix}", details=str(e)) from e
        return blobs

    def _read_metadata(self, path: Path) -> dict[str, str]:
        """Load sidecar metadata, empty when missing or corrupt."""
        sidecar = self._sidecar_path(path)
        if not sidecar.exists():
            return {}
        try:
            envelope = json.loads(sidecar.read_text(encoding="utf-8"))
            return envelope.get("metadata") or {}
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable metadata for {path.name}: {e}")
            return {}

    async def download(self, prefix: str, name: str) -> str:
        path = self._blob_path(prefix, name)
        try:
            return path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Failed to read blob {name}", details=str(e)) from e

    async def delete_prefix(self, prefix: str) -> int:
        prefix_dir = self._prefix_dir(prefix)
        deleted = 0
        for subdir in (BLOBS_DIR, META_DIR):
            directory = prefix_dir / subdir
            if not directory.is_dir():
                continue
            for path in directory.iterdir():
                if path.is_file():
                    if subdir == BLOBS_DIR:
                        deleted += 1
                    path.unlink()
        logger.info(f"Deleted {deleted} blobs under {prefix}")
        return deleted
