"""Pydantic models for repograde."""

from repograde.models.model_evaluation import (
    REQUIRED_FIELDS,
    EvaluationRecord,
    ModelResponse,
)
from repograde.models.model_repository import (
    CandidateFile,
    EntryType,
    RepoEntry,
    RepositoryReference,
)
from repograde.models.model_rubric import (
    ChallengeRubric,
    EvaluationCriterion,
)
from repograde.models.model_settings import (
    GradingSettings,
    HarvestLimits,
)
from repograde.models.model_storage import (
    HarvestResult,
    StoredBlob,
    SubmissionOutcome,
    flatten_path,
)

__all__ = [
    # Repository models
    "CandidateFile",
    "EntryType",
    "RepoEntry",
    "RepositoryReference",
    # Rubric models
    "ChallengeRubric",
    "EvaluationCriterion",
    # Evaluation models
    "REQUIRED_FIELDS",
    "EvaluationRecord",
    "ModelResponse",
    # Settings models
    "GradingSettings",
    "HarvestLimits",
    # Storage models
    "HarvestResult",
    "StoredBlob",
    "SubmissionOutcome",
    "flatten_path",
]
