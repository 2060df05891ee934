"""GitHub API access scoped to the submissions repository"""

from .client import GitHubClient, get_bot_github_client, get_user_github_client
from .exceptions import (
    GithubApiError,
    GithubAuthenticationError,
    GithubConfigurationError,
    GithubError,
    GithubGraphQLError,
    GithubNotFoundError,
    GithubPermissionError,
)

__all__ = [
    "GitHubClient",
    "get_bot_github_client",
    "get_user_github_client",
    # Errors
    "GithubError",
    "GithubApiError",
    "GithubNotFoundError",
    "GithubAuthenticationError",
    "GithubPermissionError",
    "GithubConfigurationError",
    "GithubGraphQLError",
]
