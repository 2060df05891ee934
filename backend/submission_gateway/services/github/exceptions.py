"""Exceptions raised while talking to GitHub."""

from __future__ import annotations

from typing import Any


class GithubError(Exception):
    """Base exception for GitHub failures."""


class GithubConfigurationError(GithubError):
    """Raised when required configuration is missing."""


class GithubApiError(GithubError):
    """Raised when the GitHub API answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def remote_message(self) -> str:
        """The ``message`` field GitHub puts in error bodies, if any."""
        if isinstance(self.payload, dict):
            return str(self.payload.get("message") or "")
        if isinstance(self.payload, str):
            return self.payload
        return ""


class GithubNotFoundError(GithubApiError):
    """Raised for 404 answers."""


class GithubAuthenticationError(GithubError):
    """Raised when a bearer token is missing or rejected."""


class GithubPermissionError(GithubError):
    """
    Raised when the caller is authenticated but lacks repository rights.

    Review actions require push, maintain or admin on the target repository.
    """


class GithubGraphQLError(GithubError):
    """Raised when a GraphQL response carries an ``errors`` array."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []
