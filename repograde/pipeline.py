"""Submission pipeline: harvest then grade one challenge submission.

This module coordinates the two stages for a single submission:
1. Build the submission-scoped storage prefix
2. Harvest the repository into storage ("Processing the repo")
3. Grade the stored file set ("Analyzing the repo")
4. Assemble the outcome ("Preparing the report")

Retry policy per failure kind:
- UpstreamUnavailableError, ModelUnavailableError: backoff, up to max_attempts
- MalformedResponseError: retried once
- everything else: not retried

Any failure is returned as the generic user-facing message; details go to the log.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from repograde.consts import (
    GENERIC_FAILURE_MESSAGE,
    PIPELINE_MALFORMED_RETRIES,
    PIPELINE_MAX_ATTEMPTS,
    STAGE_ANALYZING,
    STAGE_PREPARING,
    STAGE_PROCESSING,
    SUBMISSIONS_ROOT,
)
from repograde.errors import InputError, MalformedResponseError, PipelineError
from repograde.grader.grader import SubmissionGrader
from repograde.harvester.harvester import RepositoryHarvester
from repograde.models.model_repository import RepositoryReference
from repograde.models.model_rubric import ChallengeRubric
from repograde.models.model_storage import SubmissionOutcome
from repograde.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")

StageCallback = Callable[[str], None]


def build_storage_prefix(
    submitter_id: str, challenge_id: str, timestamp_ms: int | None = None
) -> str:
    """Build the prefix submissions/{submitter}/{challenge}/{timestamp_ms}.

    Raises:
        InputError: If an id is empty or contains '/'.
    """
    for label, value in (("submitter_id", submitter_id), ("challenge_id", challenge_id)):
        if not value or not value.strip() or "/" in value or value.strip() in (".", ".."):
            raise InputError(f"Invalid {label}", details=value)
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{SUBMISSIONS_ROOT}/{submitter_id.strip()}/{challenge_id.strip()}/{timestamp_ms}"


@dataclass
class _RunState:
    attempts: int = 0


class SubmissionPipeline:
    """Run harvest and grade for one submission with retries."""

    def __init__(
        self,
        harvester: RepositoryHarvester,
        grader: SubmissionGrader,
        max_attempts: int = PIPELINE_MAX_ATTEMPTS,
        malformed_retries: int = PIPELINE_MALFORMED_RETRIES,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize pipeline.

        Args:
            harvester: Harvester writing into the grader's blob store.
            grader: Grader reading from that store.
            max_attempts: Attempts per stage for upstream/model unavailability.
            malformed_retries: Extra attempts after a malformed model response.
            rate_limiter: Backoff calculator. Defaults to RateLimiter().
        """
        self.harvester = harvester
        self.grader = grader
        self.max_attempts = max_attempts
        self.malformed_retries = malformed_retries
        self.rate_limiter = rate_limiter or RateLimiter()

    async def evaluate(
        self,
        repo_url: str,
        rubric: ChallengeRubric,
        submitter_id: str,
        challenge_id: str,
        on_stage: StageCallback | None = None,
    ) -> SubmissionOutcome:
        """Harvest and grade a submission.

        Args:
            repo_url: GitHub repository URL.
            rubric: Challenge requirements and criteria.
            submitter_id: Submitting user id.
            challenge_id: Challenge id.
            on_stage: Called with each user-facing stage label.

        Returns:
            SubmissionOutcome; never raises for pipeline failures.
        """
        state = _RunState()
        prefix = ""

        def report(stage: str) -> None:
            logger.info(f"Stage: {stage}")
            if on_stage is not None:
                on_stage(stage)

        try:
            report(STAGE_PROCESSING)
            repo_ref = RepositoryReference.from_url(repo_url)
            prefix = build_storage_prefix(submitter_id, challenge_id)

            harvest = await self._with_retry(
                "harvest", lambda: self.harvester.harvest(repo_url, prefix), state
            )

            report(STAGE_ANALYZING)
            evaluation = await self._with_retry(
                "grade", lambda: self.grader.grade(prefix, rubric, repo_ref), state
            )

            report(STAGE_PREPARING)
        except PipelineError as e:
            logger.error(
                f"Submission {submitter_id}/{challenge_id} failed after {state.attempts} "
                f"attempts: {type(e).__name__}: {e}"
                + (f" ({e.details})" if e.details else "")
            )
            return self._failure(prefix, type(e).__name__, state)
        except Exception as e:
            logger.exception(f"Unexpected error evaluating {submitter_id}/{challenge_id}: {e}")
            return self._failure(prefix, type(e).__name__, state)

        return SubmissionOutcome(
            success=True,
            storage_prefix=prefix,
            message="Evaluation complete",
            evaluation=evaluation,
            harvest=harvest,
            attempts=state.attempts,
        )

    async def _with_retry(
        self, label: str, operation: Callable[[], Awaitable[T]], state: _RunState
    ) -> T:
        """Run one stage under the retry policy."""
        self.rate_limiter.reset()
        attempt = 0
        malformed_seen = 0

        while True:
            attempt += 1
            state.attempts += 1
            try:
                result = await operation()
            except MalformedResponseError as e:
                malformed_seen += 1
                if malformed_seen > self.malformed_retries:
                    raise
                logger.warning(f"{label}: malformed model response, retrying ({e})")
                continue
            except PipelineError as e:
                if not e.retryable or attempt >= self.max_attempts:
                    raise
                delay = self.rate_limiter.backoff()
                logger.warning(
                    f"{label}: attempt {attempt}/{self.max_attempts} failed ({e}), "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                continue

            self.rate_limiter.reset()
            return result

    @staticmethod
    def _failure(prefix: str, error_kind: str, state: _RunState) -> SubmissionOutcome:
        return SubmissionOutcome(
            success=False,
            storage_prefix=prefix,
            message=GENERIC_FAILURE_MESSAGE,
            error_kind=error_kind,
            attempts=state.attempts,
        )
