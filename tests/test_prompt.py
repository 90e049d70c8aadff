"""Tests for grading prompt construction."""

import json

from repograde.grader.prompt import build_prompt
from repograde.models.model_rubric import ChallengeRubric, EvaluationCriterion


class TestBuildPrompt:
    """Tests for build_prompt."""

    def test_includes_repository_identity(self, repo_ref, sample_rubric) -> None:
        prompt = build_prompt(repo_ref, sample_rubric, [], criterion_max=20)
        assert "Repository: widget by acme" in prompt

    def test_numbered_requirements(self, repo_ref, sample_rubric) -> None:
        prompt = build_prompt(repo_ref, sample_rubric, [], criterion_max=20)
        assert "1. Build a REST API\n2. Include tests" in prompt

    def test_bulleted_criteria_with_weights(self, repo_ref, sample_rubric) -> None:
        prompt = build_prompt(repo_ref, sample_rubric, [], criterion_max=20)
        assert "- Code Quality (40%): Readable, idiomatic code" in prompt
        assert "- Testing (30%): Meaningful test coverage" in prompt

    def test_empty_rubric(self, repo_ref) -> None:
        prompt = build_prompt(repo_ref, ChallengeRubric(), [], criterion_max=20)
        assert "Requirements:\nNone specified." in prompt
        assert "Evaluation Criteria:\nNone specified." in prompt
        assert '"scores": {}' in prompt

    def test_file_contents_as_json(self, repo_ref, sample_rubric) -> None:
        files = [("README.md", "# Widget"), ("src/index.ts", 'const s = "quoted";')]
        prompt = build_prompt(repo_ref, sample_rubric, files, criterion_max=20)
        expected = json.dumps(
            [
                {"path": "README.md", "content": "# Widget"},
                {"path": "src/index.ts", "content": 'const s = "quoted";'},
            ],
            indent=2,
        )
        assert expected in prompt

    def test_response_contract(self, repo_ref, sample_rubric) -> None:
        prompt = build_prompt(repo_ref, sample_rubric, [], criterion_max=20)
        for key in ("summary", "scores", "overallScore", "keyStrengths", "keyImprovements"):
            assert f'"{key}"' in prompt
        assert '"Code Quality": <integer 0-20>' in prompt
        assert "<integer 0-100>" in prompt

    def test_criterion_names_escaped(self, repo_ref) -> None:
        rubric = ChallengeRubric(
            evaluation_criteria=[EvaluationCriterion(name='Use "async"', weight=100)]
        )
        prompt = build_prompt(repo_ref, rubric, [], criterion_max=10)
        assert '"Use \\"async\\"": <integer 0-10>' in prompt

    def test_fractional_weight(self, repo_ref) -> None:
        rubric = ChallengeRubric(
            evaluation_criteria=[EvaluationCriterion(name="A", description="d", weight=33.5)]
        )
        prompt = build_prompt(repo_ref, rubric, [], criterion_max=20)
        assert "- A (33.5%): d" in prompt
