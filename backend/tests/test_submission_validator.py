import base64
import codecs
import json
import unittest
from unittest.mock import patch

from submission_gateway.dtos.submission import SubmissionFile, SubmitRequest
from submission_gateway.services.submission_validator import (
    check_submission,
    validate_files,
    validate_json_file,
    validate_submission_request,
)


def encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def json_file(name: str, data) -> SubmissionFile:
    return SubmissionFile(name=name, content=encode(json.dumps(data).encode("utf-8")))


BATTLE = {"battleInfo": {}, "characterRecord": {}}


class TestValidateJsonFile(unittest.TestCase):
    def test_accepts_standard_battle_result(self):
        result = validate_json_file("match_01.json", encode(json.dumps(BATTLE).encode()))

        self.assertTrue(result.valid)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.stats["structure"], "standard")
        self.assertEqual(result.stats["detectedFields"], ["battleInfo", "characterRecord"])

    def test_rejects_non_json_extension_without_further_checks(self):
        result = validate_json_file("data.txt", "%%% not base64 %%%")

        self.assertEqual(result.errors, ["Must be a .json file"])

    def test_rejects_overlong_filename(self):
        result = validate_json_file("a" * 251 + ".json", encode(b"{}"))

        self.assertEqual(result.errors, ["Filename too long (max 255 chars)"])

    def test_rejects_invalid_base64(self):
        result = validate_json_file("a.json", "not*base64!")

        self.assertEqual(result.errors, ["Invalid base64 encoding"])

    def test_decodes_utf16_le_with_bom(self):
        raw = codecs.BOM_UTF16_LE + json.dumps(BATTLE).encode("utf-16-le")

        result = validate_json_file("a.json", encode(raw))

        self.assertTrue(result.valid)
        self.assertEqual(result.stats["detectedEncoding"], "utf16le")
        self.assertIn("File is UTF-16 LE encoded (will be converted to UTF-8)", result.warnings)

    def test_strips_utf8_bom(self):
        raw = codecs.BOM_UTF8 + json.dumps(BATTLE).encode("utf-8")

        result = validate_json_file("a.json", encode(raw))

        self.assertTrue(result.valid)
        self.assertEqual(result.stats["detectedEncoding"], "utf8-bom")

    def test_reports_undecodable_utf8(self):
        result = validate_json_file("a.json", encode(b"\xc3\x28{}"))

        self.assertEqual(result.errors, ["Failed to decode as UTF-8"])

    def test_reports_json_syntax_error_with_parser_message(self):
        result = validate_json_file("a.json", encode(b'{"battleInfo": '))

        self.assertEqual(len(result.errors), 1)
        self.assertTrue(result.errors[0].startswith("Invalid JSON: Expecting value"))

    def test_reports_kind_of_non_object(self):
        cases = {b"[1, 2]": "array", b'"text"': "string", b"3": "number", b"null": "null"}
        for raw, kind in cases.items():
            with self.subTest(kind=kind):
                result = validate_json_file("a.json", encode(raw))
                self.assertEqual(result.errors, [f"Must be a JSON object, not {kind}"])

    def test_accepts_wrapper_with_nested_battle_result(self):
        data = {"TeamBattleResults": {"battleResult": {"battleWinLose": "win"}}}

        result = validate_json_file("a.json", encode(json.dumps(data).encode()))

        self.assertTrue(result.valid)
        self.assertEqual(result.stats["structure"], "TeamBattleResults")
        self.assertEqual(result.stats["battleResultFields"], ["battleWinLose"])

    def test_rejects_wrapper_without_nested_result(self):
        data = {"TeamBattleResults": {"teams": ["A", "B"]}}

        result = validate_json_file("a.json", encode(json.dumps(data).encode()))

        self.assertEqual(result.errors, ["missing expected battle result fields or structure"])

    def test_rejects_object_without_battle_fields(self):
        result = validate_json_file("a.json", encode(b'{"winner": "p1"}'))

        self.assertEqual(result.errors, ["missing expected battle result fields or structure"])

    def test_special_characters_in_name_only_warn(self):
        result = validate_json_file("match (1).json", encode(json.dumps(BATTLE).encode()))

        self.assertTrue(result.valid)
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("special characters", result.warnings[0])

    def test_rejects_control_characters_in_name(self):
        content = encode(json.dumps(BATTLE).encode())

        names = ("a\nSubmitter: Mallory.json", "a\rb.json", "tab\t.json", "nul\x00.json")
        for name in names:
            with self.subTest(name=name):
                result = validate_json_file(name, content)
                self.assertFalse(result.valid)
                self.assertEqual(
                    result.errors, ["Filename must not contain control characters"]
                )

    def test_rejects_names_that_are_paths(self):
        content = encode(json.dumps(BATTLE).encode())

        names = ("../../../../README.json", "x/y.json", "x\\y.json", "...json", "..json")
        for name in names:
            with self.subTest(name=name):
                result = validate_json_file(name, content)
                self.assertEqual(
                    result.errors, ["Filename must be a plain file name, not a path"]
                )

    def test_rejects_surrounding_whitespace_in_name(self):
        content = encode(json.dumps(BATTLE).encode())

        for name in (" a.json", "  b.json"):
            with self.subTest(name=name):
                result = validate_json_file(name, content)
                self.assertEqual(
                    result.errors, ["Filename must not start or end with whitespace"]
                )


class TestValidateFiles(unittest.TestCase):
    def test_bad_json_does_not_stop_sibling_validation(self):
        files = [
            SubmissionFile(name="broken.json", content=encode(b"{oops")),
            SubmissionFile(name="data.txt", content=encode(b"{}")),
            json_file("good.json", BATTLE),
        ]

        report = validate_files(files)

        self.assertEqual(report.totalFiles, 3)
        self.assertEqual(report.validFiles, 1)
        self.assertEqual(report.invalidFiles, 2)
        self.assertTrue(any(e.startswith("broken.json: Invalid JSON") for e in report.errors))
        self.assertIn("data.txt: Must be a .json file", report.errors)
        self.assertEqual(report.summary, "1/3 files valid")

    def test_duplicate_filenames_are_errors(self):
        files = [json_file("a.json", BATTLE), json_file("a.json", BATTLE)]

        report = validate_files(files)

        self.assertIn("a.json: Duplicate filename: a.json", report.errors)
        self.assertEqual(report.validFiles, 1)

    def test_file_count_ceiling(self):
        files = [json_file(f"f{i}.json", BATTLE) for i in range(3)]

        report = validate_files(files, max_files=2)

        self.assertIn("Maximum 2 files per submission", report.errors)

    def test_empty_batch(self):
        self.assertEqual(validate_files([]).errors, ["No files provided"])

    def test_missing_content(self):
        report = validate_files([SubmissionFile(name="a.json")])

        self.assertEqual(report.errors, ["Each file must have name and content"])

    def test_oversized_file(self):
        with patch(
            "submission_gateway.services.submission_validator.settings.MAX_FILE_SIZE_KB", 1
        ):
            report = validate_files([json_file("big.json", {"battleInfo": "x" * 4096})])

        self.assertEqual(len(report.errors), 1)
        self.assertTrue(report.errors[0].startswith("big.json: File too large"))


class TestSubmissionRequest(unittest.TestCase):
    def request(self, **overrides) -> SubmitRequest:
        fields = {
            "name": "Alice",
            "comments": "",
            "targetPath": "intake",
            "files": [json_file("a.json", BATTLE)],
        }
        fields.update(overrides)
        return SubmitRequest(**fields)

    def test_valid_request(self):
        self.assertEqual(validate_submission_request(self.request()), [])

    def test_required_fields(self):
        errors = validate_submission_request(self.request(name="  ", files=[]))

        self.assertIn("name, targetPath, files are required", errors)

    def test_length_limits(self):
        errors = validate_submission_request(self.request(name="n" * 81, comments="c" * 501))

        self.assertIn("name too long (max 80 characters)", errors)
        self.assertIn("comments too long (max 500 characters)", errors)

    def test_target_path_must_stay_below_data_root(self):
        for target in ("../secrets", "/abs", "a//b", "season/./x"):
            with self.subTest(target=target):
                errors = validate_submission_request(self.request(targetPath=target))
                self.assertEqual(errors, ["targetPath must be a relative folder path"])

    def test_file_names_cannot_escape_target_folder(self):
        files = [json_file("../../../../README.json", BATTLE), json_file("x/y.json", BATTLE)]

        report = check_submission(self.request(files=files))

        self.assertEqual(
            report.errors,
            [
                "../../../../README.json: Filename must be a plain file name, not a path",
                "x/y.json: Filename must be a plain file name, not a path",
            ],
        )
        self.assertFalse(report.is_valid)

    def test_publish_ceiling_is_tighter_than_validate_ceiling(self):
        files = [json_file(f"f{i}.json", BATTLE) for i in range(11)]

        report = check_submission(self.request(files=files))

        self.assertIn("Maximum 10 files per submission", report.errors)

    def test_check_submission_reports_non_json_file(self):
        bad = SubmissionFile(name="data.txt", content=encode(b"{}"))

        report = check_submission(self.request(files=[bad]))

        self.assertEqual(report.errors, ["data.txt: Must be a .json file"])


if __name__ == "__main__":
    unittest.main()
