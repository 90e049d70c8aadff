"""Grading prompt construction.

The response format block below is the integration boundary with the
model: the field names must match EvaluationRecord's aliases.
"""

import json

from repograde.consts import OVERALL_SCORE_MAX
from repograde.models.model_repository import RepositoryReference
from repograde.models.model_rubric import ChallengeRubric

PROMPT_HEADER = (
    "You are an expert code reviewer. Evaluate this project against the following "
    "requirements and criteria. You MUST respond with ONLY a valid JSON object, "
    "no other text or markdown formatting."
)


def _format_requirements(rubric: ChallengeRubric) -> str:
    if not rubric.requirements:
        return "None specified."
    return "\n".join(f"{i}. {req}" for i, req in enumerate(rubric.requirements, start=1))


def _format_criteria(rubric: ChallengeRubric) -> str:
    if not rubric.evaluation_criteria:
        return "None specified."
    return "\n".join(
        f"- {c.name} ({c.weight:g}%): {c.description}" for c in rubric.evaluation_criteria
    )


def _format_response_contract(rubric: ChallengeRubric, criterion_max: int) -> str:
    score_lines = ",\n".join(
        f"    {json.dumps(name)}: <integer 0-{criterion_max}>" for name in rubric.criterion_names
    )
    scores_block = "{\n" + score_lines + "\n  }" if score_lines else "{}"
    return (
        "{\n"
        '  "summary": "Brief 2-3 sentence summary of the project",\n'
        f'  "scores": {scores_block},\n'
        f'  "overallScore": <integer 0-{OVERALL_SCORE_MAX}>,\n'
        '  "keyStrengths": ["2-3 main strengths"],\n'
        '  "keyImprovements": ["2-3 main areas for improvement"]\n'
        "}"
    )


def build_prompt(
    repo_ref: RepositoryReference,
    rubric: ChallengeRubric,
    files: list[tuple[str, str]],
    criterion_max: int,
) -> str:
    """Build the single grading prompt.

    Args:
        repo_ref: Repository identity shown to the model.
        rubric: Requirements and weighted criteria.
        files: (path, content) pairs in storage order.
        criterion_max: Upper bound of each per-criterion integer score.

    Returns:
        Prompt text.
    """
    contents = json.dumps(
        [{"path": path, "content": content} for path, content in files],
        indent=2,
        ensure_ascii=False,
    )
    return "\n\n".join(
        [
            PROMPT_HEADER,
            f"Repository: {repo_ref.name} by {repo_ref.owner}",
            f"Requirements:\n{_format_requirements(rubric)}",
            f"Evaluation Criteria:\n{_format_criteria(rubric)}",
            f"Repository Contents:\n{contents}",
            "IMPORTANT: Respond with ONLY a JSON object in this exact format:\n"
            + _format_response_contract(rubric, criterion_max),
            "Scoring guidelines:\n"
            f"1. Score every criterion as an integer from 0 to {criterion_max}, using the exact "
            "criterion names above as keys in \"scores\".\n"
            f"2. overallScore is an integer from 0 to {OVERALL_SCORE_MAX} reflecting the "
            "weighted assessment across all criteria.\n"
            "3. Give 2-3 key strengths and 2-3 key improvements. Keep the evaluation concise "
            "and focus on the most important points.",
        ]
    )
