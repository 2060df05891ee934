"""
Submission Registry - read side of the submission workflow.

Open pull requests labeled as submissions are the registry: their bodies
carry the metadata and their changed files carry the team facts. Reads
degrade per item; a file that cannot be fetched or parsed becomes a
``ProbeSkipped`` and never fails the listing.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from submission_gateway.config import settings
from submission_gateway.dtos.admin import (
    SubmissionDetailResponse,
    SubmissionFileDetail,
    SubmissionMetadataResponse,
    SubmissionPullRequest,
    SubmissionSummary,
)
from submission_gateway.dtos.submission import SubmissionStatusResponse
from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.github.exceptions import GithubApiError
from submission_gateway.services.submission_body import parse_submission_body
from submission_gateway.services.submission_validator import WRAPPER_FIELD, decode_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeOk:
    filename: str
    teams: Tuple[str, ...]
    exists_on_base: bool


@dataclass(frozen=True)
class ProbeSkipped:
    filename: str
    reason: str
    exists_on_base: bool = False


FileProbe = Union[ProbeOk, ProbeSkipped]


def _as_team_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str) and item.strip()]
    return []


def extract_teams(data: Any) -> List[str]:
    """Team names from ``team``/``teams`` at the top level or inside the wrapper."""
    if not isinstance(data, dict):
        return []
    teams = _as_team_list(data.get("team")) + _as_team_list(data.get("teams"))
    wrapper = data.get(WRAPPER_FIELD)
    if isinstance(wrapper, dict):
        teams += _as_team_list(wrapper.get("team")) + _as_team_list(wrapper.get("teams"))
    return teams


def extract_team_data(data: Any) -> Dict[str, Any]:
    """Team/event/season facts shown on the submission detail view."""
    if not isinstance(data, dict):
        return {"hasTeamData": False}
    source = data.get(WRAPPER_FIELD) if isinstance(data.get(WRAPPER_FIELD), dict) else data
    teams = extract_teams(data)
    if not (teams or source.get("event") or source.get("season")):
        return {"hasTeamData": False}
    return {
        "hasTeamData": True,
        "team": source.get("team"),
        "teams": teams,
        "event": source.get("event"),
        "season": source.get("season"),
    }


def merge_probes(probes: Iterable[FileProbe]) -> Tuple[List[str], bool]:
    """Union of team names (first-seen order) and whether any file already exists."""
    teams: Dict[str, None] = {}
    has_conflicts = False
    for probe in probes:
        has_conflicts = has_conflicts or probe.exists_on_base
        if isinstance(probe, ProbeOk):
            teams.update(dict.fromkeys(probe.teams))
    return list(teams), has_conflicts


def _load_json(raw: bytes) -> Any:
    text, _ = decode_text(raw)
    return json.loads(text)


class SubmissionRegistry:
    def __init__(
        self,
        client: GitHubClient,
        base_branch: Optional[str] = None,
        label: Optional[str] = None,
        enrichment_limit: Optional[int] = None,
    ):
        self.client = client
        self.base_branch = base_branch or settings.BASE_BRANCH
        self.label = label or settings.SUBMISSION_LABEL
        self.enrichment_limit = (
            enrichment_limit if enrichment_limit is not None else settings.ENRICHMENT_FILE_LIMIT
        )

    def _is_submission(self, pr: dict) -> bool:
        return any(label.get("name") == self.label for label in pr.get("labels") or [])

    @staticmethod
    def summarize(pr: dict) -> SubmissionSummary:
        metadata = parse_submission_body(pr.get("body"))
        return SubmissionSummary(
            number=pr["number"],
            title=pr.get("title", ""),
            url=pr.get("html_url", ""),
            branch=(pr.get("head") or {}).get("ref", ""),
            createdAt=pr.get("created_at"),
            updatedAt=pr.get("updated_at"),
            isDraft=bool(pr.get("draft")),
            state=pr.get("state", "open"),
            mergeable=pr.get("mergeable"),
            submitter=metadata.submitter,
            comments=metadata.comments,
            targetPath=metadata.targetPath,
            fileCount=len(metadata.files),
            files=metadata.files,
        )

    async def list_submissions(self, enrich: bool = True) -> List[SubmissionSummary]:
        """Open submission PRs against the base branch, optionally enriched."""
        pulls = await self.client.list_pull_requests(state="open", base=self.base_branch)
        submissions = [pr for pr in pulls if self._is_submission(pr)]
        logger.info("Found %d submissions among %d open PRs", len(submissions), len(pulls))

        summaries = []
        for pr in submissions:
            summary = self.summarize(pr)
            if enrich:
                probes = await self.probe_pull_request(pr)
                summary.teams, summary.hasConflicts = merge_probes(probes)
            summaries.append(summary)
        return summaries

    async def probe_pull_request(self, pr: dict) -> List[FileProbe]:
        """Probe the first ``enrichment_limit`` changed files of a PR concurrently."""
        try:
            changed = await self.client.list_pull_request_files(pr["number"])
        except GithubApiError as exc:
            logger.warning("Skipping enrichment of PR #%s: %s", pr["number"], exc)
            return []

        head_ref = (pr.get("head") or {}).get("ref")
        selected = changed[: self.enrichment_limit]
        return list(
            await asyncio.gather(
                *(self.probe_file(item["filename"], head_ref) for item in selected)
            )
        )

    async def probe_file(self, filename: str, head_ref: Optional[str]) -> FileProbe:
        try:
            exists = await self.client.file_exists(filename, ref=self.base_branch)
        except GithubApiError as exc:
            return ProbeSkipped(filename, f"existence check failed ({exc.status_code})")

        if not filename.lower().endswith(".json"):
            return ProbeSkipped(filename, "not a JSON file", exists)

        try:
            raw, _ = await self.client.get_file_bytes(filename, ref=head_ref)
        except GithubApiError as exc:
            return ProbeSkipped(filename, f"content unavailable ({exc.status_code})", exists)

        try:
            data = _load_json(raw)
        except (UnicodeDecodeError, ValueError):
            return ProbeSkipped(filename, "content is not parsable JSON", exists)

        return ProbeOk(filename, tuple(extract_teams(data)), exists)

    async def get_submission_details(self, number: int) -> SubmissionDetailResponse:
        pr = await self.client.get_pull_request(number)
        changed = await self.client.list_pull_request_files(number)
        head_ref = (pr.get("head") or {}).get("ref")
        base_ref = (pr.get("base") or {}).get("ref") or self.base_branch

        files = await asyncio.gather(
            *(self._file_detail(item, head_ref, base_ref) for item in changed)
        )
        metadata = parse_submission_body(pr.get("body"))
        return SubmissionDetailResponse(
            pr=SubmissionPullRequest(
                number=pr["number"],
                title=pr.get("title", ""),
                body=pr.get("body"),
                url=pr.get("html_url", ""),
                branch=head_ref or "",
                createdAt=pr.get("created_at"),
                updatedAt=pr.get("updated_at"),
                isDraft=bool(pr.get("draft")),
                state=pr.get("state", "open"),
                mergeable=pr.get("mergeable"),
                mergeable_state=pr.get("mergeable_state"),
            ),
            metadata=SubmissionMetadataResponse(
                submitter=metadata.submitter,
                comments=metadata.comments,
                targetPath=metadata.targetPath,
                files=metadata.files,
            ),
            files=list(files),
        )

    async def _file_detail(
        self, item: dict, head_ref: Optional[str], base_ref: str
    ) -> SubmissionFileDetail:
        filename = item["filename"]
        detail = SubmissionFileDetail(
            filename=filename,
            status=item.get("status"),
            additions=item.get("additions"),
            deletions=item.get("deletions"),
            changes=item.get("changes"),
        )
        try:
            detail.exists = await self.client.file_exists(filename, ref=base_ref)
        except GithubApiError:
            detail.exists = False

        if not filename.lower().endswith(".json"):
            detail.error = "Not a JSON file"
            return detail

        try:
            raw, detail.size = await self.client.get_file_bytes(filename, ref=head_ref)
        except GithubApiError:
            detail.error = "Failed to fetch content"
            return detail

        try:
            detail.content, _ = decode_text(raw)
            detail.teamData = extract_team_data(json.loads(detail.content))
        except (UnicodeDecodeError, ValueError) as exc:
            detail.teamData = {"hasTeamData": False, "error": str(exc)}
        return detail

    async def get_submission_status(self, branch: str) -> SubmissionStatusResponse:
        """Lifecycle of the PR opened for a submission id (its branch name)."""
        pulls = await self.client.list_pull_requests(
            state="all", head=f"{self.client.owner}:{branch}"
        )
        if not pulls:
            return SubmissionStatusResponse(id=branch, status="not_found")

        pr = pulls[0]
        if pr.get("merged_at"):
            status = "merged"
        elif pr.get("state") == "closed":
            status = "closed"
        elif pr.get("draft"):
            status = "pending"
        else:
            status = "ready"
        return SubmissionStatusResponse(
            id=branch, status=status, prNumber=pr.get("number"), prUrl=pr.get("html_url")
        )
