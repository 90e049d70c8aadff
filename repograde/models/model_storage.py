"""Stored file set and harvest/submission result models."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from repograde.consts import PATH_PLACEHOLDER
from repograde.models.common import _utc_now
from repograde.models.model_evaluation import EvaluationRecord


def flatten_path(path: str) -> str:
    """Turn a repo-relative path into a flat blob name."""
    return path.strip("/").replace("/", PATH_PLACEHOLDER)


@dataclass
class StoredBlob:
    """One blob listed under a storage prefix."""

    name: str
    original_path: str | None = None
    original_name: str | None = None
    size_bytes: int = 0

    @property
    def display_path(self) -> str:
        """Original path when metadata survived, flattened name otherwise."""
        return self.original_path or self.name


class HarvestResult(BaseModel):
    """Outcome of one harvest run."""

    file_count: int = Field(ge=0, description="Confirmed uploads")
    total_bytes: int = Field(ge=0, description="Aggregate UTF-8 size actually written")
    stored_paths: list[str] = Field(default_factory=list, description="Original paths written")
    failed_paths: list[str] = Field(default_factory=list, description="Accepted but not written")


class SubmissionOutcome(BaseModel):
    """Result handed back to the submission-tracking caller."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    storage_prefix: str
    message: str
    evaluation: EvaluationRecord | None = None
    harvest: HarvestResult | None = None
    error_kind: str | None = Field(default=None, description="Exception class name on failure")
    attempts: int = Field(default=0, ge=0, description="Total stage attempts made")
    completed_at: datetime = Field(default_factory=_utc_now)
