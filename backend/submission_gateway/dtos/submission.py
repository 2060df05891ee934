"""Submission DTOs"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SubmissionFile(BaseModel):
    name: str = ""
    content: str = Field(default="", description="Base64 encoded file content")
    size: Optional[int] = None


class SubmitRequest(BaseModel):
    name: str = ""
    comments: Optional[str] = ""
    targetPath: str = ""
    files: List[SubmissionFile] = Field(default_factory=list)


class SubmitResponse(BaseModel):
    id: str
    prUrl: str


class ValidateRequest(BaseModel):
    files: List[SubmissionFile] = Field(default_factory=list)


class FileValidationResult(BaseModel):
    filename: str
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    stats: Dict[str, Any] = Field(default_factory=dict)


class ValidationReport(BaseModel):
    totalFiles: int = 0
    validFiles: int = 0
    invalidFiles: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    fileResults: List[FileValidationResult] = Field(default_factory=list)
    summary: str = ""

    @property
    def is_valid(self) -> bool:
        return not self.errors


class FolderOption(BaseModel):
    label: str
    value: str


class FolderOptionsResponse(BaseModel):
    options: List[FolderOption]


class FolderFile(BaseModel):
    name: str
    size: int = 0
    sha: str = ""


class FolderFilesResponse(BaseModel):
    files: List[FolderFile]


class SubmissionStatusResponse(BaseModel):
    id: str
    status: str
    prNumber: Optional[int] = None
    prUrl: Optional[str] = None
