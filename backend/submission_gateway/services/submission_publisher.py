"""
Submission Publisher - pushes a validated submission to GitHub.

Publishing is a three-step saga with no compensation:

1. create ``submission/<slug>-<millis>`` from the base branch head
2. commit each file to ``<DATA_ROOT>/<targetPath>/<filename>``
3. open a draft pull request (then label it)

A failure at step 2 leaves the branch with the files committed so far; a
failure at step 3 leaves a fully populated branch without a PR; a labeling
failure leaves an unlabeled PR. None of these are rolled back, and the
raised ``SubmissionPublishError`` says which branch was left behind.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, List

from submission_gateway.config import settings
from submission_gateway.core.tracing import TracingContext
from submission_gateway.dtos.submission import SubmissionFile
from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.github.exceptions import GithubApiError
from submission_gateway.services.submission_body import (
    SubmissionMetadata,
    encode_submission_body,
)
from submission_gateway.services.submission_errors import SubmissionPublishError

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "submission/"
_SLUG_INVALID = re.compile(r"[^a-z0-9\-_]+")


def slug(value: str | None) -> str:
    cleaned = _SLUG_INVALID.sub("-", (value or "").lower()).strip("-")
    return cleaned or "user"


def build_branch_name(name: str, timestamp_ms: int) -> str:
    return f"{BRANCH_PREFIX}{slug(name)}-{timestamp_ms}"


def build_pr_title(name: str, file_count: int) -> str:
    plural = "s" if file_count > 1 else ""
    return f"Submission from {name} ({file_count} file{plural})"


def build_file_path(target_path: str, filename: str) -> str:
    return "/".join(
        part.strip("/") for part in (settings.DATA_ROOT, target_path, filename) if part
    )


@dataclass
class Submission:
    name: str
    targetPath: str
    files: List[SubmissionFile]
    comments: str = ""


@dataclass
class PublishResult:
    branchId: str
    prUrl: str
    prNumber: int


class SubmissionPublisher:
    def __init__(
        self,
        client: GitHubClient,
        base_branch: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.base_branch = base_branch or settings.BASE_BRANCH
        self.clock = clock

    async def publish(self, submission: Submission) -> PublishResult:
        name = submission.name.strip()
        branch = build_branch_name(name, int(self.clock() * 1000))
        TracingContext.set(submission_id=branch, operation="publish")

        try:
            base_sha = await self.client.get_branch_sha(self.base_branch)
        except GithubApiError as exc:
            raise SubmissionPublishError(
                f"Failed base branch {self.base_branch}: {exc.status_code}",
                step="resolve_base",
                upstream_status=exc.status_code,
            ) from exc

        try:
            await self.client.create_branch(branch, base_sha)
        except GithubApiError as exc:
            raise SubmissionPublishError(
                f"Failed branch create: {exc.status_code}",
                step="create_branch",
                upstream_status=exc.status_code,
            ) from exc
        logger.info("Created branch %s at %s", branch, base_sha)

        uploaded: List[str] = []
        for entry in submission.files:
            path = build_file_path(submission.targetPath.strip(), entry.name)
            try:
                await self.client.put_file(
                    path,
                    entry.content,
                    message=f"Add {entry.name} to {submission.targetPath.strip()}",
                    branch=branch,
                )
            except GithubApiError as exc:
                logger.warning(
                    "Upload of %s failed; branch %s left with %d of %d files",
                    entry.name,
                    branch,
                    len(uploaded),
                    len(submission.files),
                )
                raise SubmissionPublishError(
                    f"Failed to upload {entry.name}: {exc.remote_message or exc.status_code}",
                    step="upload_file",
                    upstream_status=exc.status_code,
                    branch=branch,
                    uploaded=uploaded,
                ) from exc
            uploaded.append(entry.name)

        body = encode_submission_body(
            SubmissionMetadata(
                submitter=name,
                comments=submission.comments or "",
                targetPath=submission.targetPath.strip(),
                files=[entry.name for entry in submission.files],
            )
        )
        try:
            pr = await self.client.create_pull_request(
                title=build_pr_title(name, len(submission.files)),
                head=branch,
                base=self.base_branch,
                body=body,
                draft=True,
            )
        except GithubApiError as exc:
            logger.warning("Branch %s populated but pull request creation failed", branch)
            raise SubmissionPublishError(
                f"Failed to open PR: {exc.status_code}",
                step="open_pull_request",
                upstream_status=exc.status_code,
                branch=branch,
                uploaded=uploaded,
            ) from exc

        TracingContext.set(pr_number=pr["number"])
        try:
            await self.client.add_labels(pr["number"], [settings.SUBMISSION_LABEL])
        except GithubApiError as exc:
            logger.warning(
                "Could not label PR #%s as %s: %s",
                pr["number"],
                settings.SUBMISSION_LABEL,
                exc.status_code,
            )

        logger.info("Opened draft PR #%s for %s", pr["number"], branch)
        return PublishResult(branchId=branch, prUrl=pr["html_url"], prNumber=pr["number"])
