"""Pytest configuration and fixtures."""

import json
from pathlib import Path

import httpx
import pytest

from repograde.grader.model_client import ModelClient
from repograde.harvester.github_client import GitHubClient
from repograde.models.model_evaluation import ModelResponse
from repograde.models.model_repository import CandidateFile, RepositoryReference
from repograde.models.model_rubric import ChallengeRubric, EvaluationCriterion
from repograde.models.model_settings import GradingSettings
from repograde.storage.blob_store.file_blob_store import FileBlobStore


class FakeGitHubRepo:
    """In-memory GitHub repository served through httpx.MockTransport.

    Directory listings are derived from the file paths, in insertion order.
    """

    def __init__(
        self,
        files: dict[str, str | bytes],
        owner: str = "acme",
        name: str = "widget",
        sizes: dict[str, int] | None = None,
        extra_entries: dict[str, list[dict]] | None = None,
    ):
        self.files = files
        self.owner = owner
        self.name = name
        self.sizes = sizes or {}
        self.extra_entries = extra_entries or {}
        self.list_status: dict[str, int] = {}
        self.download_status: dict[str, int] = {}
        self.requests: list[httpx.Request] = []

    @property
    def contents_base(self) -> str:
        return f"/repos/{self.owner}/{self.name}/contents"

    def raw_url(self, path: str) -> str:
        return f"https://raw.githubusercontent.com/{self.owner}/{self.name}/main/{path}"

    def _data(self, path: str) -> bytes:
        content = self.files[path]
        return content if isinstance(content, bytes) else content.encode("utf-8")

    def children(self, directory: str) -> list[dict]:
        prefix = f"{directory}/" if directory else ""
        seen: set[str] = set()
        entries = []
        for path in self.files:
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix):]
            head = rest.split("/", 1)[0]
            child = prefix + head
            if child in seen:
                continue
            seen.add(child)
            if "/" in rest:
                entries.append(
                    {"name": head, "path": child, "type": "dir", "size": 0, "download_url": None}
                )
            else:
                entries.append(
                    {
                        "name": head,
                        "path": child,
                        "type": "file",
                        "size": self.sizes.get(child, len(self._data(child))),
                        "download_url": self.raw_url(child),
                    }
                )
        entries.extend(self.extra_entries.get(directory, []))
        return entries

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.github.com":
            path = request.url.path
            if not path.startswith(self.contents_base):
                return httpx.Response(404, json={"message": "Not Found"})
            directory = path[len(self.contents_base):].strip("/")
            if directory in self.list_status:
                return httpx.Response(self.list_status[directory], json={"message": "error"})
            return httpx.Response(200, json=self.children(directory))

        if request.url.host == "raw.githubusercontent.com":
            file_path = request.url.path.split("/main/", 1)[1]
            if file_path in self.download_status:
                return httpx.Response(self.download_status[file_path])
            if file_path not in self.files:
                return httpx.Response(404)
            return httpx.Response(200, content=self._data(file_path))

        return httpx.Response(404)

    def client(self) -> GitHubClient:
        return GitHubClient(token="test-token", transport=httpx.MockTransport(self.handler))

    @property
    def listed_directories(self) -> list[str]:
        return [
            r.url.path[len(self.contents_base):].strip("/")
            for r in self.requests
            if r.url.host == "api.github.com"
        ]

    @property
    def downloaded_paths(self) -> list[str]:
        return [
            r.url.path.split("/main/", 1)[1]
            for r in self.requests
            if r.url.host == "raw.githubusercontent.com"
        ]


class FakeModelClient(ModelClient):
    """Model client returning queued responses and recording prompts."""

    def __init__(self, responses: list[ModelResponse | Exception] | None = None):
        self.responses = list(responses or [])
        self.prompts: list[str] = []
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "fake"

    async def generate(self, prompt: str, settings: GradingSettings) -> ModelResponse:
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def sample_rubric() -> ChallengeRubric:
    """Create a sample rubric for testing."""
    return ChallengeRubric(
        requirements=["Build a REST API", "Include tests"],
        evaluation_criteria=[
            EvaluationCriterion(name="Code Quality", description="Readable, idiomatic code", weight=40),
            EvaluationCriterion(name="Testing", description="Meaningful test coverage", weight=30),
            EvaluationCriterion(name="Documentation", description="Clear README", weight=30),
        ],
    )


@pytest.fixture
def sample_evaluation_json() -> dict:
    """Create a well-formed evaluation payload."""
    return {
        "summary": "A small, well-structured REST API with basic tests.",
        "scores": {"Code Quality": 16, "Testing": 12, "Documentation": 15},
        "overallScore": 72,
        "keyStrengths": ["Clear module layout", "Good README"],
        "keyImprovements": ["Add integration tests", "Handle errors consistently"],
    }


@pytest.fixture
def sample_model_response(sample_evaluation_json: dict) -> ModelResponse:
    """Model response wrapping the evaluation payload in a code fence."""
    text = "```json\n" + json.dumps(sample_evaluation_json, indent=2) + "\n```"
    return ModelResponse(text=text, finish_reason="STOP", model="gemini-test")


@pytest.fixture
def repo_ref() -> RepositoryReference:
    return RepositoryReference(owner="acme", name="widget")


@pytest.fixture
def blob_store(tmp_path: Path) -> FileBlobStore:
    """File blob store rooted in a temporary directory."""
    return FileBlobStore(root_dir=tmp_path / "blobs")


@pytest.fixture
def widget_repo() -> FakeGitHubRepo:
    """The acme/widget repository: README, one source file, vendored dependency."""
    return FakeGitHubRepo(
        {
            "README.md": "# Widget\n" + "a" * 991,
            "src/index.ts": "export const widget = 1;\n" + "b" * 1975,
            "node_modules/x/y.js": "c" * 50_000,
        }
    )


@pytest.fixture
def make_candidate():
    """Factory for candidates of an exact UTF-8 size."""

    def _make(path: str, size: int, priority: int = 2) -> CandidateFile:
        return CandidateFile.from_content(path=path, content="x" * size, priority_class=priority)

    return _make


@pytest.fixture
def github_repo_factory():
    """Factory for in-memory GitHub repositories."""
    return FakeGitHubRepo


@pytest.fixture
def model_client_factory():
    """Factory for fake model clients."""
    return FakeModelClient
