"""Submission grading: prompt construction, model call and response parsing."""

from repograde.grader.gemini_client import GeminiClient
from repograde.grader.grader import SubmissionGrader
from repograde.grader.model_client import ModelClient
from repograde.grader.prompt import build_prompt
from repograde.grader.response_parser import parse_evaluation, strip_code_fences

__all__ = [
    "GeminiClient",
    "ModelClient",
    "SubmissionGrader",
    "build_prompt",
    "parse_evaluation",
    "strip_code_fences",
]
