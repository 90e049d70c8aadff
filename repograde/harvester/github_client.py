"""GitHub contents API client used by the harvester.

One listing call per directory, one raw download per file. No retries at
this layer: any non-success listing response surfaces as
UpstreamUnavailableError so the caller can apply its own backoff.
"""

import logging
import os
from urllib.parse import quote

import httpx

from repograde.consts import (
    ENV_GITHUB_TOKEN,
    GITHUB_API_URL,
    GITHUB_REQUEST_TIMEOUT,
    GITHUB_USER_AGENT,
)
from repograde.errors import UpstreamUnavailableError
from repograde.models.model_repository import EntryType, RepoEntry, RepositoryReference

logger = logging.getLogger(__name__)

_ENTRY_TYPES = {t.value for t in EntryType}


class GitHubClient:
    """Thin async wrapper over the GitHub contents API."""

    BASE_URL = GITHUB_API_URL

    def __init__(
        self,
        token: str | None = None,
        timeout: float = GITHUB_REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize GitHub client.

        Args:
            token: API token. None = read from env (GITHUB_TOKEN); anonymous if unset.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.token = token if token is not None else os.getenv(ENV_GITHUB_TOKEN, "").strip()
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self.token:
            logger.info("No GitHub token configured, using anonymous rate limits")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"User-Agent": GITHUB_USER_AGENT}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def list_directory(self, ref: RepositoryReference, path: str = "") -> list[RepoEntry]:
        """List one directory of the repository's default branch.

        Args:
            ref: Repository to list.
            path: Repo-relative directory path, '' for the root.

        Returns:
            Entries in the order the API returned them.

        Raises:
            UpstreamUnavailableError: On any non-success response or transport failure.
        """
        client = await self._get_client()
        endpoint = f"/repos/{quote(ref.owner)}/{quote(ref.name)}/contents"
        if path:
            endpoint = f"{endpoint}/{quote(path)}"

        try:
            response = await client.get(
                endpoint, headers={"Accept": "application/vnd.github.v3+json"}
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(
                f"GitHub request failed for {ref.full_name}/{path}", details=str(e)
            ) from e

        if response.is_error:
            logger.error(
                f"GitHub API error {response.status_code} listing "
                f"{ref.full_name}/{path}: {response.text[:200]}"
            )
            raise UpstreamUnavailableError(
                f"Failed to fetch repository contents: HTTP {response.status_code}",
                status_code=response.status_code,
                details=response.text[:500],
            )

        try:
            items = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                f"GitHub returned invalid JSON for {ref.full_name}/{path}", details=str(e)
            ) from e

        # A file path returns a single object instead of a listing
        if not isinstance(items, list):
            return []

        entries = []
        for item in items:
            if not isinstance(item, dict) or item.get("type") not in _ENTRY_TYPES:
                logger.debug(f"Skipping unrecognized entry in {ref.full_name}/{path}: {item}")
                continue
            entries.append(
                RepoEntry(
                    name=item.get("name", ""),
                    path=item.get("path") or f"{path}/{item.get('name', '')}".lstrip("/"),
                    type=EntryType(item["type"]),
                    size=item.get("size") or 0,
                    download_url=item.get("download_url"),
                )
            )
        return entries

    async def download_file(self, entry: RepoEntry) -> str:
        """Download a file's raw text.

        Args:
            entry: File entry with a download URL.

        Returns:
            Decoded UTF-8 content.

        Raises:
            UpstreamUnavailableError: If the download fails.
            UnicodeDecodeError: If the content is not UTF-8 text.
        """
        if not entry.download_url:
            raise UpstreamUnavailableError(f"No download URL for {entry.path}")

        client = await self._get_client()
        try:
            response = await client.get(entry.download_url)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(
                f"Download failed for {entry.path}", details=str(e)
            ) from e

        if response.is_error:
            raise UpstreamUnavailableError(
                f"Download failed for {entry.path}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.content.decode("utf-8")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
