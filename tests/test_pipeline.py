"""Tests for the submission pipeline."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from repograde.errors import (
    EmptyFileSetError,
    InputError,
    MalformedResponseError,
    ModelUnavailableError,
    ResponseTooLargeError,
    UpstreamUnavailableError,
)
from repograde.grader.grader import SubmissionGrader
from repograde.harvester.harvester import RepositoryHarvester
from repograde.models.model_evaluation import EvaluationRecord
from repograde.models.model_storage import HarvestResult
from repograde.pipeline import SubmissionPipeline, build_storage_prefix
from repograde.rate_limiter import RateLimiter

REPO_URL = "https://github.com/acme/widget"


@pytest.fixture
def record(sample_evaluation_json: dict) -> EvaluationRecord:
    return EvaluationRecord.model_validate(sample_evaluation_json)


@pytest.fixture
def harvest_result() -> HarvestResult:
    return HarvestResult(file_count=2, total_bytes=3000, stored_paths=["README.md", "src/index.ts"])


def _pipeline(harvest_effect, grade_effect) -> tuple[SubmissionPipeline, MagicMock, MagicMock]:
    harvester = MagicMock(spec=RepositoryHarvester)
    harvester.harvest = AsyncMock(side_effect=harvest_effect)
    grader = MagicMock(spec=SubmissionGrader)
    grader.grade = AsyncMock(side_effect=grade_effect)
    pipeline = SubmissionPipeline(
        harvester, grader, rate_limiter=RateLimiter(initial_delay=0.0, jitter_factor=0.0)
    )
    return pipeline, harvester, grader


class TestBuildStoragePrefix:
    def test_layout(self) -> None:
        assert build_storage_prefix("u1", "c9", 1700000000123) == "submissions/u1/c9/1700000000123"

    def test_defaults_to_now(self) -> None:
        with patch("repograde.pipeline.time.time", return_value=1700000000.5):
            assert build_storage_prefix("u1", "c9") == "submissions/u1/c9/1700000000500"

    @pytest.mark.parametrize("submitter, challenge", [("", "c"), ("u", " "), ("a/b", "c"), ("..", "c")])
    def test_rejects_bad_ids(self, submitter: str, challenge: str) -> None:
        with pytest.raises(InputError):
            build_storage_prefix(submitter, challenge, 1)


@pytest.mark.asyncio
@patch("repograde.pipeline.asyncio.sleep", new_callable=AsyncMock)
class TestSubmissionPipeline:
    """Tests for SubmissionPipeline.evaluate."""

    async def test_success(self, sleep, sample_rubric, record, harvest_result) -> None:
        pipeline, harvester, grader = _pipeline([harvest_result], [record])
        stages: list[str] = []

        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1", on_stage=stages.append)

        assert outcome.success
        assert outcome.evaluation == record
        assert outcome.harvest == harvest_result
        assert outcome.attempts == 2
        assert outcome.storage_prefix.startswith("submissions/u1/c1/")
        assert stages == ["Processing the repo", "Analyzing the repo", "Preparing the report"]

        prefix = harvester.harvest.await_args.args[1]
        assert prefix == outcome.storage_prefix
        grade_args = grader.grade.await_args.args
        assert grade_args[0] == prefix
        assert grade_args[2].full_name == "acme/widget"
        sleep.assert_not_awaited()

    async def test_invalid_url_fails_without_harvest(self, sleep, sample_rubric) -> None:
        pipeline, harvester, grader = _pipeline([], [])
        outcome = await pipeline.evaluate("https://example.com/x", sample_rubric, "u1", "c1")

        assert not outcome.success
        assert outcome.message == "Evaluation failed, please try again."
        assert outcome.error_kind == "InvalidReferenceError"
        harvester.harvest.assert_not_awaited()

    async def test_upstream_retried(self, sleep, sample_rubric, record, harvest_result) -> None:
        pipeline, harvester, _ = _pipeline(
            [UpstreamUnavailableError("rate limited", status_code=429), harvest_result], [record]
        )
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")

        assert outcome.success
        assert harvester.harvest.await_count == 2
        assert sleep.await_count == 1

    async def test_upstream_gives_up(self, sleep, sample_rubric) -> None:
        pipeline, harvester, grader = _pipeline(UpstreamUnavailableError("down", status_code=503), [])
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")

        assert not outcome.success
        assert outcome.error_kind == "UpstreamUnavailableError"
        assert harvester.harvest.await_count == 3
        assert outcome.attempts == 3
        grader.grade.assert_not_awaited()

    async def test_model_unavailable_retried(self, sleep, sample_rubric, record, harvest_result) -> None:
        pipeline, _, grader = _pipeline(
            [harvest_result],
            [ModelUnavailableError("503"), ModelUnavailableError("503"), record],
        )
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")

        assert outcome.success
        assert grader.grade.await_count == 3
        assert sleep.await_count == 2

    async def test_malformed_retried_once(self, sleep, sample_rubric, record, harvest_result) -> None:
        pipeline, _, grader = _pipeline(
            [harvest_result], [MalformedResponseError("bad", raw_text="x"), record]
        )
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")
        assert outcome.success
        assert grader.grade.await_count == 2

    async def test_malformed_twice_fails(self, sleep, sample_rubric, harvest_result) -> None:
        pipeline, _, grader = _pipeline(
            [harvest_result],
            [MalformedResponseError("bad", raw_text="x"), MalformedResponseError("bad", raw_text="y")],
        )
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")
        assert not outcome.success
        assert outcome.error_kind == "MalformedResponseError"
        assert grader.grade.await_count == 2

    @pytest.mark.parametrize(
        "error",
        [EmptyFileSetError("empty"), ResponseTooLargeError("too large")],
    )
    async def test_not_retried(self, sleep, error, sample_rubric, harvest_result) -> None:
        pipeline, _, grader = _pipeline([harvest_result], error)
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")

        assert not outcome.success
        assert outcome.error_kind == type(error).__name__
        assert grader.grade.await_count == 1
        sleep.assert_not_awaited()

    async def test_details_not_leaked(self, sleep, sample_rubric, harvest_result) -> None:
        pipeline, _, _ = _pipeline(
            [harvest_result], ResponseTooLargeError("internal detail", details="MAX_TOKENS")
        )
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")
        assert "internal detail" not in outcome.message
        assert outcome.evaluation is None

    async def test_unexpected_error(self, sleep, sample_rubric, harvest_result) -> None:
        pipeline, _, _ = _pipeline([harvest_result], RuntimeError("boom"))
        outcome = await pipeline.evaluate(REPO_URL, sample_rubric, "u1", "c1")
        assert not outcome.success
        assert outcome.error_kind == "RuntimeError"
