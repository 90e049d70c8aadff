"""FastAPI application exposing the harvest and grade operations."""

import logging
from collections.abc import Callable
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from repograde.errors import PipelineError
from repograde.grader.grader import SubmissionGrader
from repograde.harvester.harvester import RepositoryHarvester
from repograde.models.model_repository import RepositoryReference
from repograde.models.model_rubric import ChallengeRubric
from repograde.storage import create_blob_store

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_MAX_AGE = 86400


class CloneRepoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_url: str = Field(alias="repoUrl", min_length=1)
    folder_name: str = Field(alias="folderName", min_length=1)


class CloneRepoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    folder_name: str = Field(alias="folderName")
    file_count: int = Field(alias="fileCount")
    total_size: int = Field(alias="totalSize")
    message: str


class RepositoryPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    owner: str = Field(min_length=1)
    folder_name: str = Field(alias="folderName", min_length=1)


class EvaluateRequest(BaseModel):
    repository: RepositoryPayload
    challenge: ChallengeRubric


class HealthResponse(BaseModel):
    status: str


def _default_harvester() -> RepositoryHarvester:
    return RepositoryHarvester(create_blob_store())


def _default_grader() -> SubmissionGrader:
    return SubmissionGrader(create_blob_store())


def _error_response(error: str, details: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=400, content=content)


def create_app(
    harvester_factory: Callable[[], RepositoryHarvester] = _default_harvester,
    grader_factory: Callable[[], SubmissionGrader] = _default_grader,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        harvester_factory: Builds a harvester per request.
        grader_factory: Builds a grader per request.
    """
    app = FastAPI(title="repograde", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
        max_age=CORS_MAX_AGE,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
            for err in exc.errors()
        )
        return _error_response("Invalid request", details)

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(_: Request, exc: PipelineError) -> JSONResponse:
        logger.error(f"{type(exc).__name__}: {exc}" + (f" ({exc.details})" if exc.details else ""))
        return _error_response(str(exc), exc.details)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/clone-repo")
    async def clone_repo(payload: CloneRepoRequest) -> dict[str, Any]:
        harvester = harvester_factory()
        try:
            result = await harvester.harvest(payload.repo_url, payload.folder_name)
        finally:
            await harvester.blob_store.aclose()

        response = CloneRepoResponse(
            folder_name=payload.folder_name,
            file_count=result.file_count,
            total_size=result.total_bytes,
            message=f"Successfully processed {result.file_count} files",
        )
        return response.model_dump(by_alias=True)

    @app.post("/evaluate-submission")
    async def evaluate_submission(payload: EvaluateRequest) -> dict[str, Any]:
        repo_ref = RepositoryReference(
            owner=payload.repository.owner, name=payload.repository.name
        )
        grader = grader_factory()
        try:
            record = await grader.grade(
                payload.repository.folder_name, payload.challenge, repo_ref
            )
        finally:
            await grader.blob_store.aclose()
        return {"success": True, "evaluation": record.to_json_dict()}

    return app


def run_service(host: str = "0.0.0.0", port: int = 8000) -> None:  # pragma: no cover
    """Serve the application with uvicorn."""
    logger.info(f"Starting repograde service on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port)
