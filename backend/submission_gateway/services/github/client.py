"""Thin async GitHub REST/GraphQL client scoped to one repository."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from submission_gateway.config import settings
from submission_gateway.services.github.exceptions import (
    GithubApiError,
    GithubConfigurationError,
    GithubGraphQLError,
    GithubNotFoundError,
)

logger = logging.getLogger(__name__)

MAX_PAGES = 10


class GitHubClient:
    """
    Authenticated calls against one repository.

    Every non-2xx answer is raised as ``GithubApiError`` carrying the remote
    status code; the client never retries.
    """

    def __init__(
        self,
        token: str,
        *,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self.owner = owner or settings.REPO_OWNER
        self.repo = repo or settings.REPO_NAME
        self._client = httpx.AsyncClient(
            base_url=(api_url or settings.GITHUB_API_URL).rstrip("/"),
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "User-Agent": settings.USER_AGENT,
            },
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _rest_request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        response = await self._client.request(method, path, params=params, json=json)
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        message = f"GitHub {method} {path} failed with {response.status_code}"
        error_cls = GithubNotFoundError if response.status_code == 404 else GithubApiError
        raise error_cls(message, status_code=response.status_code, payload=payload)

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> dict:
        """Run a GraphQL document; ``errors`` in the answer raise ``GithubGraphQLError``."""
        result = await self._rest_request(
            "POST", "/graphql", json={"query": query, "variables": variables or {}}
        )
        errors = (result or {}).get("errors")
        if errors:
            first = errors[0].get("message") if isinstance(errors[0], dict) else None
            raise GithubGraphQLError(first or "GraphQL request failed", errors=errors)
        return (result or {}).get("data") or {}

    # ------------------------------------------------------------------
    # Users and repository
    # ------------------------------------------------------------------

    async def get_authenticated_user(self) -> dict:
        return await self._rest_request("GET", "/user")

    async def get_repository(self) -> dict:
        return await self._rest_request("GET", self.repo_path)

    # ------------------------------------------------------------------
    # Git refs
    # ------------------------------------------------------------------

    async def get_branch_sha(self, branch: str) -> str:
        data = await self._rest_request(
            "GET", f"{self.repo_path}/git/ref/heads/{quote(branch, safe='')}"
        )
        return data["object"]["sha"]

    async def create_branch(self, branch: str, sha: str) -> dict:
        return await self._rest_request(
            "POST",
            f"{self.repo_path}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    async def delete_branch(self, branch: str) -> None:
        await self._rest_request(
            "DELETE", f"{self.repo_path}/git/refs/heads/{quote(branch, safe='/')}"
        )

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    async def put_file(self, path: str, content_b64: str, message: str, branch: str) -> dict:
        return await self._rest_request(
            "PUT",
            f"{self.repo_path}/contents/{quote(path, safe='/')}",
            json={"message": message, "content": content_b64, "branch": branch},
        )

    async def get_contents(self, path: str, ref: Optional[str] = None) -> Any:
        params = {"ref": ref} if ref else None
        return await self._rest_request(
            "GET", f"{self.repo_path}/contents/{quote(path, safe='/')}", params=params
        )

    async def get_file_bytes(self, path: str, ref: Optional[str] = None) -> tuple[bytes, int]:
        """Return (raw bytes, size) of a file; content is empty above 1 MB."""
        data = await self.get_contents(path, ref=ref)
        return base64.b64decode(data.get("content") or ""), data.get("size", 0)

    async def file_exists(self, path: str, ref: Optional[str] = None) -> bool:
        try:
            await self.get_contents(path, ref=ref)
        except GithubNotFoundError:
            return False
        return True

    async def list_directory(self, path: str, ref: Optional[str] = None) -> List[dict]:
        data = await self.get_contents(path, ref=ref)
        return data if isinstance(data, list) else []

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    async def create_pull_request(
        self, title: str, head: str, base: str, body: str, draft: bool = True
    ) -> dict:
        return await self._rest_request(
            "POST",
            f"{self.repo_path}/pulls",
            json={"title": title, "head": head, "base": base, "body": body, "draft": draft},
        )

    async def get_pull_request(self, number: int) -> dict:
        return await self._rest_request("GET", f"{self.repo_path}/pulls/{number}")

    async def update_pull_request(self, number: int, **fields: Any) -> dict:
        return await self._rest_request(
            "PATCH", f"{self.repo_path}/pulls/{number}", json=fields
        )

    async def list_pull_requests(
        self, state: str = "open", base: Optional[str] = None, head: Optional[str] = None
    ) -> List[dict]:
        params: Dict[str, Any] = {"state": state, "per_page": 100}
        if base:
            params["base"] = base
        if head:
            params["head"] = head
        return await self._paginate(f"{self.repo_path}/pulls", params)

    async def list_pull_request_files(self, number: int) -> List[dict]:
        return await self._paginate(
            f"{self.repo_path}/pulls/{number}/files", {"per_page": 100}
        )

    async def merge_pull_request(
        self, number: int, commit_title: str, commit_message: str, merge_method: str = "squash"
    ) -> dict:
        return await self._rest_request(
            "PUT",
            f"{self.repo_path}/pulls/{number}/merge",
            json={
                "commit_title": commit_title,
                "commit_message": commit_message,
                "merge_method": merge_method,
            },
        )

    async def mark_ready_for_review(self, node_id: str) -> dict:
        data = await self.graphql(
            """
            mutation($id: ID!) {
              markPullRequestReadyForReview(input: { pullRequestId: $id }) {
                pullRequest { id number isDraft }
              }
            }
            """,
            {"id": node_id},
        )
        return (data.get("markPullRequestReadyForReview") or {}).get("pullRequest") or {}

    # ------------------------------------------------------------------
    # Issues (labels and comments on pull requests)
    # ------------------------------------------------------------------

    async def add_labels(self, number: int, labels: List[str]) -> List[dict]:
        return await self._rest_request(
            "POST", f"{self.repo_path}/issues/{number}/labels", json={"labels": labels}
        )

    async def create_issue_comment(self, number: int, body: str) -> dict:
        return await self._rest_request(
            "POST", f"{self.repo_path}/issues/{number}/comments", json={"body": body}
        )

    async def _paginate(self, path: str, params: Dict[str, Any]) -> List[dict]:
        items: List[dict] = []
        per_page = params.get("per_page", 100)
        for page in range(1, MAX_PAGES + 1):
            batch = await self._rest_request("GET", path, params={**params, "page": page})
            if not isinstance(batch, list):
                break
            items.extend(batch)
            if len(batch) < per_page:
                break
        return items


def get_bot_github_client(**kwargs: Any) -> GitHubClient:
    """Client authenticated with the server's own token."""
    if not settings.GITHUB_TOKEN:
        raise GithubConfigurationError("Missing GITHUB_TOKEN")
    return GitHubClient(settings.GITHUB_TOKEN, **kwargs)


def get_user_github_client(token: str, **kwargs: Any) -> GitHubClient:
    """Client authenticated with a maintainer's OAuth token."""
    return GitHubClient(token, **kwargs)
