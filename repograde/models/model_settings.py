"""Tunable limits for harvesting and grading."""

import os

from pydantic import BaseModel, Field, model_validator

from repograde.consts import (
    CRITERION_SCORE_MAX,
    ENV_GEMINI_MODEL,
    GEMINI_DEFAULT_MODEL,
    GRADING_MAX_OUTPUT_TOKENS,
    GRADING_TEMPERATURE,
    GRADING_TIMEOUT_SECONDS,
    HARVEST_MAX_CONCURRENCY,
    MAX_FILE_SIZE_BYTES,
    MAX_TOTAL_SIZE_BYTES,
)


class HarvestLimits(BaseModel):
    """Size and fan-out bounds for one harvest."""

    max_file_size_bytes: int = Field(
        default=MAX_FILE_SIZE_BYTES, gt=0, description="Files reported larger are never downloaded"
    )
    max_total_size_bytes: int = Field(
        default=MAX_TOTAL_SIZE_BYTES, gt=0, description="Aggregate UTF-8 size of the accepted set"
    )
    max_concurrency: int = Field(
        default=HARVEST_MAX_CONCURRENCY, ge=1, le=64, description="Parallel downloads/uploads"
    )

    @model_validator(mode="after")
    def file_fits_aggregate(self) -> "HarvestLimits":
        """Validate that a single file can fit within the aggregate ceiling."""
        if self.max_file_size_bytes > self.max_total_size_bytes:
            msg = (
                f"max_file_size_bytes ({self.max_file_size_bytes}) exceeds "
                f"max_total_size_bytes ({self.max_total_size_bytes})"
            )
            raise ValueError(msg)
        return self


class GradingSettings(BaseModel):
    """Generation parameters for the grading call."""

    model: str = Field(default=GEMINI_DEFAULT_MODEL, min_length=1)
    temperature: float = Field(default=GRADING_TEMPERATURE, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=GRADING_MAX_OUTPUT_TOKENS, gt=0)
    timeout_seconds: float = Field(default=GRADING_TIMEOUT_SECONDS, gt=0.0)
    criterion_score_max: int = Field(
        default=CRITERION_SCORE_MAX, gt=0, description="Upper bound of each criterion score"
    )

    @classmethod
    def from_env(cls) -> "GradingSettings":
        """Defaults with the model name overridable via REPOGRADE_GEMINI_MODEL."""
        model = os.getenv(ENV_GEMINI_MODEL, "").strip()
        return cls(model=model) if model else cls()
