"""Challenge rubric models supplied by the caller."""

from pydantic import BaseModel, ConfigDict, Field


class EvaluationCriterion(BaseModel):
    """One weighted grading criterion."""

    name: str = Field(min_length=1, description="Criterion key used in the model's scores map")
    description: str = Field(default="", description="What the criterion measures")
    weight: float = Field(default=0.0, ge=0.0, description="Advisory weight in percent")


class ChallengeRubric(BaseModel):
    """Requirements and criteria a submission is graded against.

    Weights are advisory: they are shown to the model but not required to
    sum to 100.
    """

    model_config = ConfigDict(populate_by_name=True)

    requirements: list[str] = Field(default_factory=list)
    evaluation_criteria: list[EvaluationCriterion] = Field(
        default_factory=list, alias="evaluationCriteria"
    )

    @property
    def total_weight(self) -> float:
        return sum(c.weight for c in self.evaluation_criteria)

    @property
    def criterion_names(self) -> list[str]:
        return [c.name for c in self.evaluation_criteria]
