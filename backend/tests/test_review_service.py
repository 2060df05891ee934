import unittest

from submission_gateway.services.data_paths import list_folder_files, list_folder_options
from submission_gateway.services.draft_converter import DraftReadinessConverter
from submission_gateway.services.github.exceptions import (
    GithubApiError,
    GithubPermissionError,
)
from submission_gateway.services.review_service import ReviewService
from tests.fake_github import FakeGitHub

BRANCH = "submission/alice-1700000000500"
USER = {"login": "octocat"}
PUSH_REPO = {"permissions": {"push": True}}


async def no_sleep(_seconds):
    return None


class TestReviewService(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.user_github = FakeGitHub()
        self.user_github.add("GET", "/user", (200, USER))
        self.user_github.repo("GET", "", (200, PUSH_REPO))

        self.bot_github = FakeGitHub()
        self.bot_github.repo(
            "GET",
            "/pulls/5",
            (200, {"number": 5, "node_id": "PR_5", "draft": False, "title": "Sub"}),
        )
        self.bot_github.repo("POST", "/issues/5/comments", (201, {"id": 1}))
        self.bot_github.repo("PUT", "/pulls/5/merge", (200, {"sha": "abc123", "merged": True}))
        self.bot_github.repo("PATCH", "/pulls/5", (200, {"number": 5, "state": "closed"}))
        self.bot_github.repo("DELETE", f"/git/refs/heads/{BRANCH}", (204, None))

        self.user_client = self.user_github.client("maintainer-token")
        self.bot_client = self.bot_github.client("bot-token")
        self.service = ReviewService(
            self.user_client,
            self.bot_client,
            converter=DraftReadinessConverter(self.bot_client, max_attempts=2, sleep=no_sleep),
        )

    async def asyncTearDown(self):
        await self.user_client.aclose()
        await self.bot_client.aclose()

    async def test_approve_merges_and_removes_branch(self):
        result = await self.service.approve(5, BRANCH)

        self.assertTrue(result.success)
        self.assertEqual(result.sha, "abc123")
        merge = FakeGitHub.body(self.bot_github.calls("PUT", "/repos/owner/repo/pulls/5/merge")[0])
        self.assertEqual(merge["merge_method"], "squash")
        self.assertIn("@octocat", merge["commit_message"])
        self.assertEqual(len(self.bot_github.calls("DELETE")), 1)
        self.assertEqual(self.bot_github.calls("POST", "/graphql"), [])

    async def test_approve_converts_draft_first(self):
        self.bot_github.repo(
            "GET",
            "/pulls/5",
            (200, {"number": 5, "node_id": "PR_5", "draft": True}),
            (200, {"number": 5, "node_id": "PR_5", "draft": True}),
            (200, {"number": 5, "node_id": "PR_5", "draft": False}),
        )
        self.bot_github.add("POST", "/graphql", (200, {"data": {}}))

        result = await self.service.approve(5, BRANCH)

        self.assertTrue(result.success)
        self.assertEqual(len(self.bot_github.calls("POST", "/graphql")), 1)

    async def test_branch_cleanup_failure_is_not_fatal(self):
        self.bot_github.repo("DELETE", f"/git/refs/heads/{BRANCH}", (422, {"message": "nope"}))

        result = await self.service.approve(5, BRANCH)

        self.assertTrue(result.success)

    async def test_merge_conflict_propagates(self):
        self.bot_github.repo("PUT", "/pulls/5/merge", (405, {"message": "Not mergeable"}))

        with self.assertRaises(GithubApiError) as ctx:
            await self.service.approve(5, BRANCH)

        self.assertEqual(ctx.exception.status_code, 405)
        self.assertEqual(self.bot_github.calls("DELETE"), [])

    async def test_reject_comments_and_closes(self):
        result = await self.service.reject(5, BRANCH, "Duplicate of #4")

        self.assertTrue(result.success)
        comment = FakeGitHub.body(self.bot_github.calls("POST", "/repos/owner/repo/issues")[0])
        self.assertIn("Duplicate of #4", comment["body"])
        self.assertIn("@octocat", comment["body"])
        close = FakeGitHub.body(self.bot_github.calls("PATCH")[0])
        self.assertEqual(close, {"state": "closed"})

    async def test_reject_requires_push_access(self):
        self.user_github.repo("GET", "", (200, {"permissions": {"pull": True}}))

        with self.assertRaises(GithubPermissionError):
            await self.service.reject(5, BRANCH, "spam")

        self.assertEqual(self.bot_github.requests, [])


def entry(kind: str, path: str) -> dict:
    return {"type": kind, "name": path.rsplit("/", 1)[-1], "path": f"apps/analyzer/BR_Data/{path}"}


class TestDataPaths(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.github = FakeGitHub()
        root = "/contents/apps/analyzer/BR_Data"
        self.github.repo(
            "GET",
            root,
            (
                200,
                [
                    entry("dir", "season1"),
                    entry("dir", "intake"),
                    entry("file", "README.md"),
                ],
            ),
        )
        self.github.repo(
            "GET",
            f"{root}/season1",
            (
                200,
                [
                    entry("dir", "season1/ranked"),
                    entry("file", "season1/x.json"),
                ],
            ),
        )
        self.github.repo(
            "GET",
            f"{root}/intake",
            (200, [{"type": "file", "name": "a.json", "size": 120, "sha": "s1"}]),
        )
        self.client = self.github.client()

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_folder_options(self):
        options = await list_folder_options(self.client)

        self.assertEqual(
            [(option.label, option.value) for option in options],
            [("season1 / ranked", "season1/ranked"), ("intake", "intake")],
        )

    async def test_folder_files(self):
        files = await list_folder_files(self.client, "intake")

        self.assertEqual([(f.name, f.size, f.sha) for f in files], [("a.json", 120, "s1")])
        self.assertEqual(self.github.requests[-1].url.params["ref"], "dev-branch")

    async def test_missing_folder_is_empty(self):
        self.assertEqual(await list_folder_files(self.client, "nowhere"), [])


if __name__ == "__main__":
    unittest.main()
