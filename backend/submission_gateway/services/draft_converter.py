"""
Draft Readiness Converter - moves a draft PR to "ready for review".

REST cannot clear the draft flag, so the conversion goes through the
GraphQL ``markPullRequestReadyForReview`` mutation addressed by the PR's
node id. GitHub may apply the mutation asynchronously, so the PR is then
re-read at a fixed interval until the flag clears or the attempts run out.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from submission_gateway.config import settings
from submission_gateway.core.tracing import TracingContext
from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.github.exceptions import (
    GithubApiError,
    GithubGraphQLError,
)
from submission_gateway.services.maintainers import MaintainerIdentity, verify_maintainer
from submission_gateway.services.submission_errors import (
    DraftConversionError,
    DraftConversionPendingError,
)

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    success: bool
    message: str
    prNumber: int
    alreadyReady: bool = False


class DraftReadinessConverter:
    def __init__(
        self,
        client: GitHubClient,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.DRAFT_POLL_INTERVAL_SECONDS
        )
        self.max_attempts = max_attempts or settings.DRAFT_POLL_ATTEMPTS
        self.sleep = sleep

    async def convert(
        self, pr_number: int, identity: Optional[MaintainerIdentity] = None
    ) -> ConversionResult:
        """
        Convert ``pr_number`` out of draft.

        Args:
            pr_number: Pull request number
            identity: Already verified caller; verification runs when omitted

        Raises:
            GithubAuthenticationError / GithubPermissionError: caller not allowed
            GithubApiError: PR could not be read
            DraftConversionError: mutation refused
            DraftConversionPendingError: mutation accepted but not yet visible
        """
        TracingContext.set(pr_number=pr_number, operation="mark_ready")
        if identity is None:
            identity = await verify_maintainer(self.client)
        logger.info("User %s marking PR #%s ready", identity.username, pr_number)

        pr = await self.client.get_pull_request(pr_number)
        if not pr.get("draft"):
            return ConversionResult(
                success=True,
                message="PR is already marked as ready for review",
                prNumber=pr_number,
                alreadyReady=True,
            )

        try:
            await self.client.mark_ready_for_review(pr["node_id"])
        except GithubGraphQLError as exc:
            raise DraftConversionError("Failed to mark PR as ready", details=str(exc)) from exc
        except GithubApiError as exc:
            raise DraftConversionError(
                "Failed to mark PR as ready for review",
                details=exc.remote_message or f"GitHub returned {exc.status_code}",
            ) from exc

        if await self._wait_until_ready(pr_number):
            return ConversionResult(
                success=True,
                message="PR successfully marked as ready for review",
                prNumber=pr_number,
            )

        logger.warning(
            "Draft conversion of PR #%s not visible after %d checks",
            pr_number,
            self.max_attempts,
        )
        raise DraftConversionPendingError(
            "PR conversion may still be in progress. "
            "Please wait a moment and check again.",
            details="Conversion initiated but not yet verified",
        )

    async def _wait_until_ready(self, pr_number: int) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            await self.sleep(self.poll_interval)
            try:
                pr = await self.client.get_pull_request(pr_number)
            except GithubApiError as exc:
                logger.debug("Poll %d/%d failed: %s", attempt, self.max_attempts, exc)
                continue
            logger.debug("Poll %d/%d: draft=%s", attempt, self.max_attempts, pr.get("draft"))
            if not pr.get("draft"):
                return True
        return False
