"""Request dependencies that hand GitHub clients to the routers."""
from typing import AsyncIterator, Optional

import httpx
from fastapi import Header

from submission_gateway.config import settings
from submission_gateway.services.github.client import (
    GitHubClient,
    get_bot_github_client,
    get_user_github_client,
)
from submission_gateway.services.github.exceptions import GithubAuthenticationError

BEARER_PREFIX = "Bearer "


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> str:
    """Extract the maintainer's GitHub token from ``Authorization: Bearer``."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise GithubAuthenticationError("Authorization required")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise GithubAuthenticationError("Authorization required")
    return token


async def get_user_client(
    authorization: Optional[str] = Header(default=None),
) -> AsyncIterator[GitHubClient]:
    async with get_user_github_client(get_bearer_token(authorization)) as client:
        yield client


async def get_bot_client() -> AsyncIterator[GitHubClient]:
    async with get_bot_github_client() as client:
        yield client


async def get_oauth_http() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
        yield http
