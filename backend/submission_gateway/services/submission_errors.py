"""Exceptions for the submission and review workflows."""
from __future__ import annotations

from typing import List, Optional


class SubmissionError(Exception):
    """Base exception for submission workflow failures."""


class SubmissionValidationError(SubmissionError):
    """Raised when a submission is rejected before anything reaches GitHub."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.errors = errors or [message]
        self.warnings = warnings or []


class SubmissionPublishError(SubmissionError):
    """
    Raised when a publish step fails at GitHub.

    Publishing is not transactional: ``branch`` is set once the branch has
    been created, and ``uploaded`` lists files already committed to it.
    """

    def __init__(
        self,
        message: str,
        step: str,
        upstream_status: int,
        branch: Optional[str] = None,
        uploaded: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.step = step
        self.upstream_status = upstream_status
        self.branch = branch
        self.uploaded = uploaded or []


class DraftConversionError(SubmissionError):
    """Raised when the ready-for-review mutation itself is refused."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


class DraftConversionPendingError(SubmissionError):
    """
    Raised when the mutation succeeded but the PR still reads as draft.

    The conversion may still complete; callers should re-check instead of
    re-issuing the mutation.
    """

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details
