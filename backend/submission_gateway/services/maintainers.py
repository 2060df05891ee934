"""Resolve the caller behind a GitHub token and check repository rights."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.github.exceptions import (
    GithubApiError,
    GithubAuthenticationError,
    GithubPermissionError,
)

logger = logging.getLogger(__name__)

REVIEW_PERMISSIONS = ("admin", "maintain", "push")


@dataclass
class MaintainerIdentity:
    username: str
    name: Optional[str]
    avatarUrl: Optional[str]
    permission: str


def _highest_permission(permissions: dict | None) -> Optional[str]:
    if not permissions:
        return None
    for level in REVIEW_PERMISSIONS:
        if permissions.get(level):
            return level
    return None


async def verify_maintainer(client: GitHubClient) -> MaintainerIdentity:
    """
    Require push, maintain or admin on the configured repository.

    Raises:
        GithubAuthenticationError: token rejected by GitHub
        GithubPermissionError: repository not visible or rights too low
    """
    try:
        user = await client.get_authenticated_user()
    except GithubApiError as exc:
        raise GithubAuthenticationError("Invalid authorization token") from exc

    try:
        repository = await client.get_repository()
    except GithubApiError as exc:
        raise GithubPermissionError(
            "Cannot access repository. You may not have permissions."
        ) from exc

    permission = _highest_permission(repository.get("permissions"))
    if permission is None:
        logger.info("User %s denied: no push access", user.get("login"))
        raise GithubPermissionError("Insufficient permissions. Push access required.")

    return MaintainerIdentity(
        username=user.get("login", ""),
        name=user.get("name"),
        avatarUrl=user.get("avatar_url"),
        permission=permission,
    )
