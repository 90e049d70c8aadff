"""Repository harvester.

Walks a GitHub repository and persists a representative, size-bounded
subset of its text files:
1. Parse the URL (fails before any network call)
2. Traverse directories through a work queue, one listing per directory
3. Skip excluded paths and oversized files, rank the rest by priority
4. Download files concurrently per directory, buffered in listing order
5. Stable-sort by priority and greedily fill the aggregate size budget
6. Upload accepted files as flat blobs with original path metadata
"""

import asyncio
import logging

from repograde.errors import (
    InputError,
    PipelineError,
    StorageError,
    StorageWriteError,
)
from repograde.harvester.file_filter import FileFilter
from repograde.harvester.github_client import GitHubClient
from repograde.harvester.selection import select_within_budget, sort_by_priority
from repograde.harvester.traversal_queue import TraversalQueue
from repograde.models.model_repository import (
    CandidateFile,
    EntryType,
    RepoEntry,
    RepositoryReference,
)
from repograde.models.model_settings import HarvestLimits
from repograde.models.model_storage import HarvestResult, flatten_path
from repograde.storage.blob_store.base import META_ORIGINAL_NAME, META_ORIGINAL_PATH, BlobStore

logger = logging.getLogger(__name__)


def validate_prefix(prefix: str) -> str:
    """Normalize a destination prefix, rejecting empty or escaping values."""
    normalized = (prefix or "").strip().strip("/")
    parts = normalized.split("/") if normalized else []
    if not parts or any(part in ("", "..", ".") for part in parts):
        raise InputError("A non-empty storage prefix is required", details=prefix)
    return normalized


class RepositoryHarvester:
    """Select and persist a repository's most relevant files.

    Stateless across calls: each harvest builds its own traversal queue and,
    unless one was injected, its own GitHub client.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        github_client: GitHubClient | None = None,
        limits: HarvestLimits | None = None,
        file_filter: FileFilter | None = None,
    ):
        """Initialize harvester.

        Args:
            blob_store: Destination for accepted files.
            github_client: Client to reuse. Created (and closed) per harvest if None.
            limits: Size and concurrency bounds. Defaults to HarvestLimits().
            file_filter: Exclusion and priority rules. Defaults to FileFilter().
        """
        self.blob_store = blob_store
        self.github_client = github_client
        self.limits = limits or HarvestLimits()
        self.file_filter = file_filter or FileFilter()

    async def harvest(self, repo_url: str, destination_prefix: str) -> HarvestResult:
        """Harvest a repository into blob storage.

        Args:
            repo_url: GitHub repository URL.
            destination_prefix: Submission-scoped storage prefix (overwritten on re-run).

        Returns:
            HarvestResult with confirmed file count and bytes written.

        Raises:
            InvalidReferenceError: URL is not a GitHub owner/repo URL.
            InputError: Prefix is empty or invalid.
            UpstreamUnavailableError: A directory listing failed.
            StorageWriteError: Every upload was rejected.
        """
        ref = RepositoryReference.from_url(repo_url)
        prefix = validate_prefix(destination_prefix)
        logger.info(f"Harvesting {ref.full_name} into {prefix}")

        owns_client = self.github_client is None
        client = self.github_client or GitHubClient()
        try:
            candidates = await self.collect_candidates(ref, client)
        finally:
            if owns_client:
                await client.aclose()

        ordered = sort_by_priority(candidates)
        accepted = select_within_budget(ordered, self.limits.max_total_size_bytes)
        return await self.store(accepted, prefix)

    async def collect_candidates(
        self, ref: RepositoryReference, client: GitHubClient
    ) -> list[CandidateFile]:
        """Traverse the repository and download every eligible file.

        Returns:
            Candidates in discovery order (breadth-first, listing order within a directory).
        """
        queue = TraversalQueue()
        candidates: list[CandidateFile] = []

        while not queue.is_empty:
            directory = queue.get_next()
            if directory is None:
                break

            entries = await client.list_directory(ref, directory)
            subdirectories: list[str] = []
            to_download: list[RepoEntry] = []

            for entry in entries:
                if self.file_filter.is_excluded(entry.path):
                    continue
                if entry.type == EntryType.DIR:
                    subdirectories.append(entry.path)
                elif entry.type == EntryType.FILE:
                    if entry.size > self.limits.max_file_size_bytes:
                        logger.debug(f"Skipping {entry.path}: {entry.size} bytes over per-file limit")
                        continue
                    to_download.append(entry)
                else:
                    logger.debug(f"Skipping {entry.type.value} entry {entry.path}")

            candidates.extend(await self._download_batch(client, to_download))
            queue.add_pending(subdirectories)
            queue.mark_completed(directory)

        logger.info(
            f"Collected {len(candidates)} candidate files from "
            f"{len(queue.completed)} directories of {ref.full_name}"
        )
        return candidates

    async def _download_batch(
        self, client: GitHubClient, entries: list[RepoEntry]
    ) -> list[CandidateFile]:
        """Download a directory's files concurrently, keeping listing order."""
        semaphore = asyncio.Semaphore(self.limits.max_concurrency)

        async def fetch(entry: RepoEntry) -> CandidateFile | None:
            async with semaphore:
                try:
                    content = await client.download_file(entry)
                except PipelineError as e:
                    logger.warning(f"Failed to fetch file {entry.path}: {e}")
                    return None
                except UnicodeDecodeError:
                    logger.debug(f"Skipping non-text file {entry.path}")
                    return None
            if "\x00" in content:
                logger.debug(f"Skipping binary file {entry.path}")
                return None
            return CandidateFile.from_content(
                path=entry.path,
                content=content,
                priority_class=self.file_filter.priority_class(entry.name),
            )

        results = await asyncio.gather(*(fetch(entry) for entry in entries))
        return [candidate for candidate in results if candidate is not None]

    async def store(self, accepted: list[CandidateFile], prefix: str) -> HarvestResult:
        """Upload accepted files, tolerating individual failures.

        Raises:
            StorageWriteError: If files were accepted but none could be written.
        """
        semaphore = asyncio.Semaphore(self.limits.max_concurrency)

        async def upload(candidate: CandidateFile) -> bool:
            async with semaphore:
                try:
                    await self.blob_store.upload(
                        prefix,
                        flatten_path(candidate.path),
                        candidate.content,
                        metadata={
                            META_ORIGINAL_PATH: candidate.path,
                            META_ORIGINAL_NAME: candidate.name,
                        },
                    )
                except (StorageError, InputError) as e:
                    logger.warning(f"Failed to upload {candidate.path}: {e}")
                    return False
            return True

        outcomes = await asyncio.gather(*(upload(candidate) for candidate in accepted))

        stored = [c for c, ok in zip(accepted, outcomes) if ok]
        failed = [c.path for c, ok in zip(accepted, outcomes) if not ok]

        if accepted and not stored:
            raise StorageWriteError(
                f"All {len(accepted)} uploads to {prefix} failed",
                details=", ".join(failed[:20]),
            )

        result = HarvestResult(
            file_count=len(stored),
            total_bytes=sum(c.size_bytes for c in stored),
            stored_paths=[c.path for c in stored],
            failed_paths=failed,
        )
        logger.info(
            f"Stored {result.file_count} files ({result.total_bytes} bytes) under {prefix}"
            + (f", {len(failed)} uploads failed" if failed else "")
        )
        return result
