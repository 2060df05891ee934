import unittest

from submission_gateway.dtos.submission import SubmissionFile
from submission_gateway.services.submission_body import parse_submission_body
from submission_gateway.services.submission_errors import SubmissionPublishError
from submission_gateway.services.submission_publisher import (
    Submission,
    SubmissionPublisher,
    build_branch_name,
    build_file_path,
    build_pr_title,
    slug,
)
from tests.fake_github import FakeGitHub

NOW = 1700000000.5
BRANCH = "submission/alice-1700000000500"
BASE_REF = "/git/ref/heads/dev-branch"
PR = {"number": 42, "html_url": "https://github.test/owner/repo/pull/42", "node_id": "PR_42"}


def alice_submission(*names: str) -> Submission:
    return Submission(
        name="Alice",
        targetPath="intake",
        files=[SubmissionFile(name=name, content="e30=") for name in names or ("a.json",)],
    )


class TestNaming(unittest.TestCase):
    def test_slug(self):
        self.assertEqual(slug("Alice"), "alice")
        self.assertEqual(slug("Son Goku!!"), "son-goku")
        self.assertEqual(slug("***"), "user")
        self.assertEqual(slug(None), "user")

    def test_branch_name(self):
        self.assertEqual(build_branch_name("Alice", 1700000000500), BRANCH)

    def test_title_pluralises(self):
        self.assertEqual(build_pr_title("Alice", 1), "Submission from Alice (1 file)")
        self.assertEqual(build_pr_title("Alice", 3), "Submission from Alice (3 files)")

    def test_file_path_sits_under_data_root(self):
        self.assertEqual(
            build_file_path("intake", "a.json"), "apps/analyzer/BR_Data/intake/a.json"
        )
        self.assertEqual(
            build_file_path("/season3/", "b.json"), "apps/analyzer/BR_Data/season3/b.json"
        )


class TestSubmissionPublisher(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.github = FakeGitHub()
        self.github.repo("GET", BASE_REF, (200, {"object": {"sha": "base-sha"}}))
        self.github.repo("POST", "/git/refs", (201, {"ref": f"refs/heads/{BRANCH}"}))
        self.github.repo("PUT", "/contents/apps/analyzer/BR_Data/intake/a.json", (201, {}))
        self.github.repo("PUT", "/contents/apps/analyzer/BR_Data/intake/b.json", (201, {}))
        self.github.repo("POST", "/pulls", (201, PR))
        self.github.repo("POST", "/issues/42/labels", (200, [{"name": "data-submission"}]))
        self.client = self.github.client()
        self.publisher = SubmissionPublisher(self.client, clock=lambda: NOW)

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_publishes_draft_pull_request(self):
        result = await self.publisher.publish(alice_submission())

        self.assertEqual(result.branchId, BRANCH)
        self.assertEqual(result.prNumber, 42)
        self.assertEqual(result.prUrl, PR["html_url"])

        ref_call = self.github.calls("POST", "/repos/owner/repo/git/refs")[0]
        self.assertEqual(
            FakeGitHub.body(ref_call), {"ref": f"refs/heads/{BRANCH}", "sha": "base-sha"}
        )

        put_call = self.github.calls("PUT")[0]
        self.assertEqual(
            put_call.url.path,
            "/repos/owner/repo/contents/apps/analyzer/BR_Data/intake/a.json",
        )
        self.assertEqual(FakeGitHub.body(put_call)["branch"], BRANCH)
        self.assertEqual(FakeGitHub.body(put_call)["content"], "e30=")

        pr_body = FakeGitHub.body(self.github.calls("POST", "/repos/owner/repo/pulls")[0])
        self.assertTrue(pr_body["draft"])
        self.assertEqual(pr_body["base"], "dev-branch")
        self.assertEqual(pr_body["head"], BRANCH)
        self.assertIn("Submitter: Alice", pr_body["body"])
        self.assertEqual(parse_submission_body(pr_body["body"]).files, ["a.json"])

        label_call = self.github.calls("POST", "/repos/owner/repo/issues/42/labels")[0]
        self.assertEqual(FakeGitHub.body(label_call), {"labels": ["data-submission"]})

    async def test_base_branch_failure_creates_nothing(self):
        self.github.repo("GET", BASE_REF, (404, {"message": "Not Found"}))

        with self.assertRaises(SubmissionPublishError) as ctx:
            await self.publisher.publish(alice_submission())

        self.assertEqual(str(ctx.exception), "Failed base branch dev-branch: 404")
        self.assertEqual(ctx.exception.step, "resolve_base")
        self.assertEqual(ctx.exception.upstream_status, 404)
        self.assertIsNone(ctx.exception.branch)
        self.assertEqual(self.github.calls("POST"), [])

    async def test_branch_create_failure(self):
        self.github.repo("POST", "/git/refs", (422, {"message": "Reference already exists"}))

        with self.assertRaises(SubmissionPublishError) as ctx:
            await self.publisher.publish(alice_submission())

        self.assertEqual(ctx.exception.step, "create_branch")
        self.assertEqual(ctx.exception.upstream_status, 422)
        self.assertEqual(self.github.calls("PUT"), [])

    async def test_upload_failure_reports_partial_branch(self):
        self.github.repo(
            "PUT",
            "/contents/apps/analyzer/BR_Data/intake/b.json",
            (409, {"message": "conflict"}),
        )

        with self.assertRaises(SubmissionPublishError) as ctx:
            await self.publisher.publish(alice_submission("a.json", "b.json"))

        self.assertEqual(ctx.exception.step, "upload_file")
        self.assertEqual(ctx.exception.branch, BRANCH)
        self.assertEqual(ctx.exception.uploaded, ["a.json"])
        self.assertIn("b.json", str(ctx.exception))
        self.assertEqual(self.github.calls("POST", "/repos/owner/repo/pulls"), [])

    async def test_pull_request_failure_keeps_branch_name(self):
        self.github.repo("POST", "/pulls", (422, {"message": "Validation Failed"}))

        with self.assertRaises(SubmissionPublishError) as ctx:
            await self.publisher.publish(alice_submission())

        self.assertEqual(ctx.exception.step, "open_pull_request")
        self.assertEqual(ctx.exception.branch, BRANCH)
        self.assertEqual(ctx.exception.uploaded, ["a.json"])

    async def test_label_failure_does_not_fail_publish(self):
        self.github.repo("POST", "/issues/42/labels", (403, {"message": "Forbidden"}))

        with self.assertLogs("submission_gateway.services.submission_publisher", "WARNING"):
            result = await self.publisher.publish(alice_submission())

        self.assertEqual(result.prNumber, 42)


if __name__ == "__main__":
    unittest.main()
