"""Supabase Storage blob store.

Talks to the Storage REST API directly:
- POST   /object/{bucket}/{path}       upload (x-upsert, x-metadata)
- POST   /object/list/{bucket}         list by prefix, paginated
- GET    /object/{bucket}/{path}       download
- DELETE /object/{bucket}              bulk delete
"""

import base64
import json
import logging
import os
from typing import Any

import httpx

from repograde.consts import (
    DEFAULT_BUCKET,
    ENV_SUPABASE_BUCKET,
    ENV_SUPABASE_KEY,
    ENV_SUPABASE_URL,
)
from repograde.errors import ConfigurationError, InputError, StorageReadError, StorageWriteError
from repograde.models.model_storage import StoredBlob
from repograde.storage.blob_store.base import META_ORIGINAL_NAME, META_ORIGINAL_PATH, BlobStore

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000


class SupabaseBlobStore(BlobStore):
    """Blob store backed by a Supabase Storage bucket."""

    def __init__(
        self,
        project_url: str | None = None,
        service_key: str | None = None,
        bucket: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize SupabaseBlobStore.

        Args:
            project_url: Supabase project URL. None = read from env (SUPABASE_URL).
            service_key: Service role key. None = read from env (SUPABASE_SERVICE_KEY).
            bucket: Storage bucket. None = read from env (SUPABASE_BUCKET), then 'repositories'.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.project_url = (project_url or os.getenv(ENV_SUPABASE_URL, "")).rstrip("/")
        self.service_key = service_key or os.getenv(ENV_SUPABASE_KEY, "")
        self.bucket = bucket or os.getenv(ENV_SUPABASE_BUCKET, "").strip() or DEFAULT_BUCKET
        if not self.project_url or not self.service_key:
            raise ConfigurationError(
                f"Supabase storage requires {ENV_SUPABASE_URL} and {ENV_SUPABASE_KEY}"
            )
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.project_url}/storage/v1",
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bearer {self.service_key}",
                    "apikey": self.service_key,
                },
                transport=self._transport,
            )
        return self._client

    def _object_path(self, prefix: str, name: str) -> str:
        if not name or "/" in name:
            raise InputError(f"Invalid blob name: {name!r}")
        return f"{prefix.strip('/')}/{name}"

    async def upload(
        self,
        prefix: str,
        name: str,
        content: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        client = await self._get_client()
        headers = {
            "Content-Type": "text/plain;charset=UTF-8",
            "x-upsert": "true",
        }
        if metadata:
            encoded = base64.b64encode(json.dumps(metadata).encode("utf-8")).decode("ascii")
            headers["x-metadata"] = encoded

        path = self._object_path(prefix, name)
        try:
            response = await client.post(
                f"/object/{self.bucket}/{path}",
                content=content.encode("utf-8"),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise StorageWriteError(f"Failed to upload {path}", details=str(e)) from e

        if response.is_error:
            raise StorageWriteError(
                f"Upload rejected for {path} (HTTP {response.status_code})",
                details=response.text[:500],
            )
        logger.debug(f"Uploaded {path}")

    async def _list_page(self, prefix: str, offset: int) -> list[dict[str, Any]]:
        client = await self._get_client()
        body = {
            "prefix": prefix.strip("/"),
            "limit": LIST_PAGE_SIZE,
            "offset": offset,
            "sortBy": {"column": "name", "order": "asc"},
        }
        try:
            response = await client.post(f"/object/list/{self.bucket}", json=body)
        except httpx.HTTPError as e:
            raise StorageReadError(f"Failed to list {prefix}", details=str(e)) from e
        if response.is_error:
            raise StorageReadError(
                f"Listing rejected for {prefix} (HTTP {response.status_code})",
                details=response.text[:500],
            )
        return response.json()

    async def list_blobs(self, prefix: str) -> list[StoredBlob]:
        blobs: list[StoredBlob] = []
        offset = 0
        while True:
            page = await self._list_page(prefix, offset)
            for item in page:
                # Folder placeholders have no id
                if item.get("id") is None:
                    continue
                user_metadata = item.get("user_metadata") or {}
                system_metadata = item.get("metadata") or {}
                blobs.append(
                    StoredBlob(
                        name=item["name"],
                        original_path=user_metadata.get(META_ORIGINAL_PATH),
                        original_name=user_metadata.get(META_ORIGINAL_NAME),
                        size_bytes=int(system_metadata.get("size", 0) or 0),
                    )
                )
            if len(page) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE
        return blobs

    async def download(self, prefix: str, name: str) -> str:
        client = await self._get_client()
        path = self._object_path(prefix, name)
        try:
            response = await client.get(f"/object/{self.bucket}/{path}")
        except httpx.HTTPError as e:
            raise StorageReadError(f"Failed to download {path}", details=str(e)) from e
        if response.is_error:
            raise StorageReadError(
                f"Download rejected for {path} (HTTP {response.status_code})",
                details=response.text[:500],
            )
        return response.content.decode("utf-8", errors="replace")

    async def delete_prefix(self, prefix: str) -> int:
        blobs = await self.list_blobs(prefix)
        if not blobs:
            return 0

        client = await self._get_client()
        paths = [self._object_path(prefix, blob.name) for blob in blobs]
        try:
            response = await client.request(
                "DELETE", f"/object/{self.bucket}", json={"prefixes": paths}
            )
        except httpx.HTTPError as e:
            raise StorageWriteError(f"Failed to delete {prefix}", details=str(e)) from e
        if response.is_error:
            raise StorageWriteError(
                f"Delete rejected for {prefix} (HTTP {response.status_code})",
                details=response.text[:500],
            )
        logger.info(f"Deleted {len(paths)} blobs under {prefix}")
        return len(paths)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
