"""Submission grader.

Turns a stored file set plus a challenge rubric into an EvaluationRecord:
1. List and read every blob under the prefix (original path from metadata)
2. Build a single prompt with requirements, criteria and file contents
3. Make one bounded model call
4. Reject truncated output, strip code fences, parse strictly

All-or-nothing: any failure after loading raises, no partial record.
"""

import asyncio
import logging

from repograde.errors import (
    EmptyFileSetError,
    MalformedResponseError,
    ModelUnavailableError,
    ResponseTooLargeError,
    StorageReadError,
)
from repograde.grader.model_client import ModelClient
from repograde.grader.prompt import build_prompt
from repograde.grader.response_parser import parse_evaluation
from repograde.models.model_evaluation import EvaluationRecord
from repograde.models.model_repository import RepositoryReference
from repograde.models.model_rubric import ChallengeRubric
from repograde.models.model_settings import GradingSettings
from repograde.storage.blob_store.base import BlobStore

logger = logging.getLogger(__name__)


class SubmissionGrader:
    """Grade a harvested submission with a generative model."""

    def __init__(
        self,
        blob_store: BlobStore,
        model_client: ModelClient | None = None,
        settings: GradingSettings | None = None,
    ):
        """Initialize grader.

        Args:
            blob_store: Store holding the harvested files.
            model_client: Model backend. Created (and closed) per call if None.
            settings: Generation parameters. Defaults to GradingSettings.from_env().
        """
        self.blob_store = blob_store
        self.model_client = model_client
        self.settings = settings or GradingSettings.from_env()

    async def load_files(self, storage_prefix: str) -> list[tuple[str, str]]:
        """Read every blob under a prefix.

        Returns:
            (display path, content) pairs in storage order.

        Raises:
            EmptyFileSetError: Nothing listed, or nothing readable.
            StorageReadError: The listing itself failed.
        """
        blobs = await self.blob_store.list_blobs(storage_prefix)
        if not blobs:
            raise EmptyFileSetError(f"No files found under {storage_prefix}")

        files: list[tuple[str, str]] = []
        for blob in blobs:
            try:
                content = await self.blob_store.download(storage_prefix, blob.name)
            except StorageReadError as e:
                logger.warning(f"Error downloading {blob.name}: {e}")
                continue
            files.append((blob.display_path, content))

        if not files:
            raise EmptyFileSetError(
                f"None of the {len(blobs)} files under {storage_prefix} could be read"
            )
        logger.info(f"Loaded {len(files)}/{len(blobs)} files from {storage_prefix}")
        return files

    async def grade(
        self,
        storage_prefix: str,
        rubric: ChallengeRubric,
        repo_ref: RepositoryReference,
    ) -> EvaluationRecord:
        """Grade the files stored under a prefix.

        Raises:
            EmptyFileSetError: No readable files under the prefix.
            ModelUnavailableError: Model call failed or timed out.
            ResponseTooLargeError: Model output hit the token cap.
            MalformedResponseError: Output is not a valid evaluation object.
        """
        if rubric.evaluation_criteria and abs(rubric.total_weight - 100.0) > 1e-6:
            logger.warning(
                f"Criterion weights for {repo_ref.full_name} sum to {rubric.total_weight:g}, not 100"
            )

        files = await self.load_files(storage_prefix)
        prompt = build_prompt(repo_ref, rubric, files, self.settings.criterion_score_max)
        logger.debug(f"Prompt for {repo_ref.full_name}: {len(prompt)} characters")

        owns_client = self.model_client is None
        client = self.model_client or self._default_client()
        try:
            response = await asyncio.wait_for(
                client.generate(prompt, self.settings),
                timeout=self.settings.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ModelUnavailableError(
                f"Model call timed out after {self.settings.timeout_seconds}s"
            ) from e
        finally:
            if owns_client:
                await client.aclose()

        if response.is_truncated:
            logger.error(
                f"Model response for {repo_ref.full_name} truncated "
                f"(finishReason={response.finish_reason})"
            )
            raise ResponseTooLargeError(
                "Response too large, try a smaller repository or fewer criteria",
                details=response.finish_reason,
            )

        if not response.text.strip():
            raise MalformedResponseError(
                f"Model returned no text (finishReason={response.finish_reason})",
                raw_text=response.text,
            )

        record = parse_evaluation(response.text)
        self._check_criteria(record, rubric)
        logger.info(f"Graded {repo_ref.full_name}: overallScore={record.overall_score}")
        return record

    def _check_criteria(self, record: EvaluationRecord, rubric: ChallengeRubric) -> None:
        """Log criterion keys that do not match the rubric."""
        expected = set(rubric.criterion_names)
        returned = set(record.scores)
        missing = expected - returned
        unexpected = returned - expected
        if missing:
            logger.warning(f"Evaluation is missing scores for: {', '.join(sorted(missing))}")
        if unexpected:
            logger.warning(f"Evaluation has unknown criteria: {', '.join(sorted(unexpected))}")

    @staticmethod
    def _default_client() -> ModelClient:
        from repograde.grader.gemini_client import GeminiClient

        return GeminiClient()
