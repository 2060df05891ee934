"""Browse the battle-result data folder of the target repository."""

from __future__ import annotations

from typing import List

from submission_gateway.config import settings
from submission_gateway.dtos.submission import FolderFile, FolderOption
from submission_gateway.services.github.client import GitHubClient
from submission_gateway.services.github.exceptions import GithubNotFoundError


async def list_folder_options(client: GitHubClient) -> List[FolderOption]:
    """
    Two-level listing of DATA_ROOT.

    ``season/event`` subfolders become options; a first-level folder with no
    subfolders is an option on its own.
    """
    options: List[FolderOption] = []
    for item in await client.list_directory(settings.DATA_ROOT, ref=settings.BASE_BRANCH):
        if item.get("type") != "dir":
            continue
        children = [
            child
            for child in await client.list_directory(item["path"], ref=settings.BASE_BRANCH)
            if child.get("type") == "dir"
        ]
        if not children:
            options.append(FolderOption(label=item["name"], value=item["name"]))
            continue
        options.extend(
            FolderOption(
                label=f"{item['name']} / {child['name']}",
                value=f"{item['name']}/{child['name']}",
            )
            for child in children
        )
    return options


async def list_folder_files(client: GitHubClient, path: str) -> List[FolderFile]:
    """Files in ``DATA_ROOT/<path>`` on the base branch; a missing folder is empty."""
    full_path = f"{settings.DATA_ROOT}/{path.strip('/')}"
    try:
        contents = await client.list_directory(full_path, ref=settings.BASE_BRANCH)
    except GithubNotFoundError:
        return []
    return [
        FolderFile(name=item["name"], size=item.get("size", 0), sha=item.get("sha", ""))
        for item in contents
        if item.get("type") == "file"
    ]
