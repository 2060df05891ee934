"""Admin (maintainer) DTOs"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AdminAuthRequest(BaseModel):
    token: str = ""


class MaintainerUser(BaseModel):
    username: str
    name: Optional[str] = None
    avatarUrl: Optional[str] = None
    permission: str


class AdminAuthResponse(BaseModel):
    authorized: bool
    user: Optional[MaintainerUser] = None


class SubmissionSummary(BaseModel):
    number: int
    title: str
    url: str
    branch: str
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    isDraft: bool = False
    state: str = "open"
    mergeable: Optional[bool] = None
    submitter: str = ""
    comments: str = ""
    targetPath: str = ""
    fileCount: int = 0
    files: List[str] = Field(default_factory=list)
    teams: Optional[List[str]] = None
    hasConflicts: Optional[bool] = None


class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionSummary]


class SubmissionFileDetail(BaseModel):
    filename: str
    status: Optional[str] = None
    additions: Optional[int] = None
    deletions: Optional[int] = None
    changes: Optional[int] = None
    content: Optional[str] = None
    teamData: Optional[Dict[str, Any]] = None
    exists: bool = False
    size: Optional[int] = None
    error: Optional[str] = None


class SubmissionPullRequest(BaseModel):
    number: int
    title: str
    body: Optional[str] = None
    url: str
    branch: str
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    isDraft: bool = False
    state: str = "open"
    mergeable: Optional[bool] = None
    mergeable_state: Optional[str] = None


class SubmissionMetadataResponse(BaseModel):
    submitter: str = ""
    comments: str = ""
    targetPath: str = ""
    files: List[str] = Field(default_factory=list)


class SubmissionDetailResponse(BaseModel):
    pr: SubmissionPullRequest
    metadata: SubmissionMetadataResponse
    files: List[SubmissionFileDetail]


class MarkReadyRequest(BaseModel):
    prNumber: int


class MarkReadyResponse(BaseModel):
    success: bool
    message: str
    prNumber: Optional[int] = None
    alreadyReady: Optional[bool] = None


class ApproveRequest(BaseModel):
    prNumber: int
    branch: str


class ApproveResponse(BaseModel):
    success: bool
    message: str
    sha: Optional[str] = None
    merged: Optional[bool] = None


class RejectRequest(BaseModel):
    prNumber: int
    branch: str
    reason: str = Field(..., min_length=1)


class RejectResponse(BaseModel):
    success: bool
    message: str
