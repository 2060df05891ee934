#!/usr/bin/env python3
"""Log in with GitHub's device flow and check maintainer access.

Usage:
    python scripts/device_login.py --client-id Iv1.abc123
    python scripts/device_login.py --max-wait 300 --list
"""

import asyncio
import sys
from argparse import ArgumentParser

sys.path.insert(0, ".")

from submission_gateway.config import settings
from submission_gateway.core.logging import setup_logging
from submission_gateway.services.device_flow import (
    DeviceAuthFlow,
    DeviceFlowError,
    PollPolicy,
)
from submission_gateway.services.github.client import get_user_github_client
from submission_gateway.services.github.exceptions import GithubError
from submission_gateway.services.maintainers import verify_maintainer
from submission_gateway.services.submission_registry import SubmissionRegistry


async def run(client_id: str, scope: str, max_wait: float | None, list_pending: bool) -> int:
    flow = DeviceAuthFlow(
        client_id,
        scope,
        policy=PollPolicy(max_attempts=settings.DEVICE_FLOW_MAX_ATTEMPTS, max_elapsed=max_wait),
    )
    try:
        session = await flow.start()
        print(f"Open {session.verification_uri} and enter the code: {session.user_code}")
        token = await flow.wait_for_token(session)
    except DeviceFlowError as exc:
        print(f"Login failed: {exc}", file=sys.stderr)
        return 1

    try:
        async with get_user_github_client(token) as client:
            identity = await verify_maintainer(client)
            print(f"Logged in as {identity.username} ({identity.permission})")
            if list_pending:
                for item in await SubmissionRegistry(client).list_submissions(enrich=False):
                    state = "draft" if item.isDraft else "ready"
                    print(f"#{item.number} [{state}] {item.submitter}: {item.fileCount} file(s)")
    except GithubError as exc:
        print(f"Access check failed: {exc}", file=sys.stderr)
        return 2

    print(token)
    return 0


def main() -> int:
    parser = ArgumentParser(description="GitHub device flow login for maintainers")
    parser.add_argument("--client-id", default=settings.GITHUB_CLIENT_ID)
    parser.add_argument("--scope", default=settings.GITHUB_DEVICE_SCOPE)
    parser.add_argument("--max-wait", type=float, default=None, help="seconds")
    parser.add_argument("--list", action="store_true", help="list open submissions")
    args = parser.parse_args()

    if not args.client_id:
        parser.error("--client-id is required (or set GITHUB_CLIENT_ID)")

    setup_logging()
    return asyncio.run(run(args.client_id, args.scope, args.max_wait, args.list))


if __name__ == "__main__":
    sys.exit(main())
