"""Contributor-facing endpoints: validate, submit, browse data folders."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from submission_gateway.dtos.submission import (
    FolderFilesResponse,
    FolderOptionsResponse,
    SubmissionStatusResponse,
    SubmitRequest,
    SubmitResponse,
    ValidateRequest,
)
from submission_gateway.middleware.auth import get_bot_client
from submission_gateway.services.data_paths import list_folder_files, list_folder_options
from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.submission_errors import SubmissionValidationError
from submission_gateway.services.submission_publisher import Submission, SubmissionPublisher
from submission_gateway.services.submission_registry import SubmissionRegistry
from submission_gateway.services.submission_validator import check_submission, validate_files

router = APIRouter(tags=["Submissions"])


@router.post("/validate")
async def validate_upload(payload: ValidateRequest):
    """Dry-run validation of files before submitting them."""
    report = validate_files(payload.files)
    return JSONResponse(
        status_code=200 if report.is_valid else 400,
        content=report.model_dump(),
    )


@router.post("/submit", response_model=SubmitResponse)
async def submit(payload: SubmitRequest, client: GitHubClient = Depends(get_bot_client)):
    """Validate a submission, push it to a new branch and open a draft PR."""
    report = check_submission(payload)
    if not report.is_valid:
        message = (
            report.errors[0]
            if len(report.errors) == 1
            else f"Submission has {len(report.errors)} validation errors"
        )
        raise SubmissionValidationError(message, errors=report.errors, warnings=report.warnings)

    publisher = SubmissionPublisher(client)
    result = await publisher.publish(
        Submission(
            name=payload.name,
            comments=payload.comments or "",
            targetPath=payload.targetPath,
            files=payload.files,
        )
    )
    return SubmitResponse(id=result.branchId, prUrl=result.prUrl)


@router.get("/paths", response_model=FolderOptionsResponse)
async def get_paths(client: GitHubClient = Depends(get_bot_client)):
    return FolderOptionsResponse(options=await list_folder_options(client))


@router.get("/list-files", response_model=FolderFilesResponse)
async def get_folder_files(
    path: str = Query(..., min_length=1, description="Folder below the data root"),
    client: GitHubClient = Depends(get_bot_client),
):
    return FolderFilesResponse(files=await list_folder_files(client, path))


@router.get("/status", response_model=SubmissionStatusResponse)
async def get_status(
    id: str = Query(..., min_length=1, description="Submission id returned by /submit"),
    client: GitHubClient = Depends(get_bot_client),
):
    return await SubmissionRegistry(client).get_submission_status(id)
