"""Evaluation record produced by the grader.

The JSON field names (summary, scores, overallScore, keyStrengths,
keyImprovements) are the contract with the model and with downstream
consumers. Renaming any of them breaks parsing.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

Score = Union[StrictInt, StrictFloat]

# Finish reasons meaning "hit the output cap" (Gemini, OpenAI-compatible)
TRUNCATION_REASONS = frozenset({"MAX_TOKENS", "LENGTH"})

REQUIRED_FIELDS = ("summary", "scores", "overallScore", "keyStrengths", "keyImprovements")


class EvaluationRecord(BaseModel):
    """Immutable grading result for one submission.

    Strict types: a string where a number is expected is a contract
    violation, not something to coerce.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    summary: StrictStr
    scores: dict[str, Score]
    overall_score: Score = Field(alias="overallScore")
    key_strengths: list[StrictStr] = Field(alias="keyStrengths")
    key_improvements: list[StrictStr] = Field(alias="keyImprovements")

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize using the contract's camelCase field names."""
        return self.model_dump(by_alias=True, mode="json")


@dataclass
class ModelResponse:
    """Normalized result of one generative-text call."""

    text: str
    finish_reason: str | None
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_truncated(self) -> bool:
        """Whether generation stopped at the output-length cap."""
        return (self.finish_reason or "").upper() in TRUNCATION_REASONS
