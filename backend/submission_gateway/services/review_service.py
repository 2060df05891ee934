"""Approve / reject submissions on behalf of a verified maintainer."""
from __future__ import annotations

import logging

from submission_gateway.core.tracing import TracingContext
from submission_gateway.dtos.admin import ApproveResponse, RejectResponse
from submission_gateway.services.draft_converter import DraftReadinessConverter
from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.github.exceptions import GithubApiError
from submission_gateway.services.maintainers import verify_maintainer

logger = logging.getLogger(__name__)


class ReviewService:
    """
    The maintainer's token proves who is acting; writes use the bot token so
    that merges and comments come from one service account.
    """

    def __init__(
        self,
        user_client: GitHubClient,
        bot_client: GitHubClient,
        converter: DraftReadinessConverter | None = None,
    ):
        self.user_client = user_client
        self.bot_client = bot_client
        self.converter = converter or DraftReadinessConverter(bot_client)

    async def _delete_branch(self, branch: str) -> None:
        try:
            await self.bot_client.delete_branch(branch)
        except GithubApiError as exc:
            logger.warning("Failed to delete branch %s: %s", branch, exc.status_code)

    async def approve(self, pr_number: int, branch: str) -> ApproveResponse:
        TracingContext.set(pr_number=pr_number, submission_id=branch, operation="approve")
        identity = await verify_maintainer(self.user_client)

        pr = await self.bot_client.get_pull_request(pr_number)
        if pr.get("draft"):
            await self.converter.convert(pr_number, identity=identity)

        try:
            await self.bot_client.create_issue_comment(
                pr_number, f"✅ Approved by @{identity.username} via admin dashboard"
            )
        except GithubApiError as exc:
            logger.warning("Failed to add approval comment: %s", exc.status_code)

        merge = await self.bot_client.merge_pull_request(
            pr_number,
            commit_title=f"Merge PR #{pr_number}: {pr.get('title', '')}",
            commit_message=f"Approved and merged by @{identity.username}",
            merge_method="squash",
        )
        logger.info("PR #%s merged by %s", pr_number, identity.username)

        await self._delete_branch(branch)
        return ApproveResponse(
            success=True,
            message="Submission approved and merged",
            sha=merge.get("sha"),
            merged=merge.get("merged"),
        )

    async def reject(self, pr_number: int, branch: str, reason: str) -> RejectResponse:
        TracingContext.set(pr_number=pr_number, submission_id=branch, operation="reject")
        identity = await verify_maintainer(self.user_client)

        await self.bot_client.create_issue_comment(
            pr_number, f"❌ **Rejected by @{identity.username}**\n\n**Reason:** {reason}"
        )
        await self.bot_client.update_pull_request(pr_number, state="closed")
        logger.info("PR #%s rejected by %s", pr_number, identity.username)

        await self._delete_branch(branch)
        return RejectResponse(success=True, message="Submission rejected and closed")
