"""
Tracing Context - per-request context for log correlation.

Uses contextvars so concurrent requests served by the same event loop
never see each other's values.

Usage:
    # Set context when a request or operation starts
    TracingContext.set(correlation_id="abc-123", operation="publish")

    # Attach submission facts as they become known
    TracingContext.set(submission_id="submission/alice-1700000000000")

    # Get context (automatically added to JSONFormatter logs)
    ctx = TracingContext.get()

    # Clear context at the end
    TracingContext.clear()
"""

import uuid
from contextvars import ContextVar
from typing import Dict

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
_submission_id: ContextVar[str] = ContextVar("submission_id", default="")
_pr_number: ContextVar[str] = ContextVar("pr_number", default="")
_operation: ContextVar[str] = ContextVar("operation", default="")


class TracingContext:
    """Request-scoped tracing context."""

    @staticmethod
    def set(
        correlation_id: str = "",
        submission_id: str = "",
        pr_number: str | int = "",
        operation: str = "",
    ) -> None:
        """Set tracing fields for the current execution; empty values are ignored."""
        if correlation_id:
            _correlation_id.set(correlation_id)
        if submission_id:
            _submission_id.set(submission_id)
        if pr_number:
            _pr_number.set(str(pr_number))
        if operation:
            _operation.set(operation)

    @staticmethod
    def get() -> Dict[str, str]:
        """Get current tracing context as dict."""
        return {
            "correlation_id": _correlation_id.get(),
            "submission_id": _submission_id.get(),
            "pr_number": _pr_number.get(),
            "operation": _operation.get(),
        }

    @staticmethod
    def get_correlation_id() -> str:
        return _correlation_id.get()

    @staticmethod
    def generate_correlation_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def clear() -> None:
        _correlation_id.set("")
        _submission_id.set("")
        _pr_number.set("")
        _operation.set("")
