"""Maintainer endpoints. All of them act with the caller's GitHub token."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from submission_gateway.dtos.admin import (
    AdminAuthRequest,
    AdminAuthResponse,
    ApproveRequest,
    ApproveResponse,
    MaintainerUser,
    MarkReadyRequest,
    MarkReadyResponse,
    RejectRequest,
    RejectResponse,
    SubmissionDetailResponse,
    SubmissionListResponse,
)
from submission_gateway.middleware.auth import get_bot_client, get_user_client
from submission_gateway.middleware.error_codes import error_body
from submission_gateway.services.draft_converter import DraftReadinessConverter
from submission_gateway.services.github.client import GitHubClient, get_user_github_client
from submission_gateway.services.github.exceptions import (
    GithubAuthenticationError,
    GithubPermissionError,
)
from submission_gateway.services.maintainers import verify_maintainer
from submission_gateway.services.review_service import ReviewService
from submission_gateway.services.submission_registry import SubmissionRegistry

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/auth", response_model=AdminAuthResponse)
async def verify_admin(payload: AdminAuthRequest):
    """Check that a device-flow token belongs to a maintainer."""
    if not payload.token:
        return JSONResponse(status_code=400, content=error_body("Token required", 400))

    async with get_user_github_client(payload.token) as client:
        try:
            identity = await verify_maintainer(client)
        except GithubAuthenticationError as exc:
            return JSONResponse(
                status_code=401, content=error_body(str(exc), 401, authorized=False)
            )
        except GithubPermissionError as exc:
            return JSONResponse(
                status_code=403, content=error_body(str(exc), 403, authorized=False)
            )

    return AdminAuthResponse(
        authorized=True,
        user=MaintainerUser(
            username=identity.username,
            name=identity.name,
            avatarUrl=identity.avatarUrl,
            permission=identity.permission,
        ),
    )


@router.get("/submissions", response_model=SubmissionListResponse)
async def list_submissions(
    enrich: bool = Query(True, description="Scan changed files for teams and conflicts"),
    client: GitHubClient = Depends(get_user_client),
):
    registry = SubmissionRegistry(client)
    return SubmissionListResponse(submissions=await registry.list_submissions(enrich=enrich))


@router.get("/submission-details", response_model=SubmissionDetailResponse)
async def get_submission_details(
    pr: int = Query(..., description="Pull request number"),
    client: GitHubClient = Depends(get_user_client),
):
    return await SubmissionRegistry(client).get_submission_details(pr)


@router.post("/mark-ready", response_model=MarkReadyResponse, response_model_exclude_none=True)
async def mark_ready(payload: MarkReadyRequest, client: GitHubClient = Depends(get_user_client)):
    """Take a submission PR out of draft."""
    result = await DraftReadinessConverter(client).convert(payload.prNumber)
    return MarkReadyResponse(
        success=result.success,
        message=result.message,
        prNumber=None if result.alreadyReady else result.prNumber,
        alreadyReady=True if result.alreadyReady else None,
    )


@router.post("/approve", response_model=ApproveResponse)
async def approve(
    payload: ApproveRequest,
    user_client: GitHubClient = Depends(get_user_client),
    bot_client: GitHubClient = Depends(get_bot_client),
):
    return await ReviewService(user_client, bot_client).approve(payload.prNumber, payload.branch)


@router.post("/reject", response_model=RejectResponse)
async def reject(
    payload: RejectRequest,
    user_client: GitHubClient = Depends(get_user_client),
    bot_client: GitHubClient = Depends(get_bot_client),
):
    return await ReviewService(user_client, bot_client).reject(
        payload.prNumber, payload.branch, payload.reason
    )
