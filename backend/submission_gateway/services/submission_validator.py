"""
Submission Validator - local checks for battle-result uploads.

Runs before anything is sent to GitHub. Every file goes through the same
ordered checks (name, base64, text encoding, JSON syntax, object shape,
battle-result structure); a failing check stops the remaining checks for
that file only, so one broken file never hides problems in its siblings.
"""

import base64
import binascii
import json
import logging
import re
from typing import Any, List, Optional, Sequence

from submission_gateway.config import settings
from submission_gateway.dtos.submission import (
    FileValidationResult,
    SubmissionFile,
    SubmitRequest,
    ValidationReport,
)

logger = logging.getLogger(__name__)

BATTLE_RESULT_FIELDS = ("battleInfo", "matchups", "characterRecord", "mapRecord")
WRAPPER_FIELD = "TeamBattleResults"
NESTED_RESULT_FIELD = "battleResult"
NESTED_RESULT_DETAIL_FIELDS = ("characterRecord", "mapRecord", "battleWinLose")

SAFE_FILENAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+\.json$", re.IGNORECASE)
CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")

UTF16_LE_BOM = b"\xff\xfe"
UTF8_BOM = b"\xef\xbb\xbf"


def _json_kind(value: Any) -> str:
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _fail(result: FileValidationResult, message: str) -> FileValidationResult:
    result.errors.append(message)
    result.valid = False
    return result


def _filename_error(filename: str) -> Optional[str]:
    # Names end up both in the commit path and as a line of the PR body.
    if CONTROL_CHARACTERS.search(filename):
        return "Filename must not contain control characters"
    stem = filename[: -len(".json")]
    if "/" in filename or "\\" in filename or stem in ("", ".", ".."):
        return "Filename must be a plain file name, not a path"
    if filename != filename.strip():
        return "Filename must not start or end with whitespace"
    return None


def decode_text(raw: bytes) -> tuple[str, str]:
    """
    Decode file bytes using byte-order-mark sniffing.

    Returns:
        Tuple of (text, detected_encoding). Raises UnicodeDecodeError.
    """
    if raw.startswith(UTF16_LE_BOM):
        return raw[len(UTF16_LE_BOM):].decode("utf-16-le"), "utf16le"
    if raw.startswith(UTF8_BOM):
        return raw[len(UTF8_BOM):].decode("utf-8"), "utf8-bom"
    return raw.decode("utf-8").lstrip("\ufeff"), "utf8"


def validate_json_file(filename: str, content_b64: str) -> FileValidationResult:
    """
    Validate a single uploaded file.

    Args:
        filename: Name as given by the contributor
        content_b64: Base64 encoded content

    Returns:
        FileValidationResult with unprefixed error/warning messages
    """
    result = FileValidationResult(filename=filename)

    if not filename.lower().endswith(".json"):
        return _fail(result, "Must be a .json file")

    if len(filename) > settings.MAX_FILENAME_LENGTH:
        return _fail(
            result, f"Filename too long (max {settings.MAX_FILENAME_LENGTH} chars)"
        )

    name_error = _filename_error(filename)
    if name_error:
        return _fail(result, name_error)

    try:
        raw = base64.b64decode("".join(content_b64.split()), validate=True)
    except (binascii.Error, ValueError):
        return _fail(result, "Invalid base64 encoding")

    result.stats["sizeBytes"] = len(raw)
    size_kb = len(raw) / 1024
    if size_kb > settings.MAX_FILE_SIZE_KB:
        return _fail(
            result,
            f"File too large ({size_kb:.0f} KB, max {settings.MAX_FILE_SIZE_KB} KB)",
        )

    try:
        text, encoding = decode_text(raw)
    except UnicodeDecodeError:
        if raw.startswith(UTF16_LE_BOM):
            return _fail(result, "Failed to decode UTF-16 LE")
        return _fail(result, "Failed to decode as UTF-8")

    result.stats["detectedEncoding"] = encoding
    if encoding == "utf16le":
        result.warnings.append("File is UTF-16 LE encoded (will be converted to UTF-8)")
    elif encoding == "utf8-bom":
        result.warnings.append("File has UTF-8 BOM (will be removed)")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        return _fail(result, f"Invalid JSON: {exc}")

    if not isinstance(parsed, dict):
        return _fail(result, f"Must be a JSON object, not {_json_kind(parsed)}")

    found_fields = [field for field in BATTLE_RESULT_FIELDS if field in parsed]
    result.stats["detectedFields"] = found_fields

    wrapper = parsed.get(WRAPPER_FIELD)
    if found_fields:
        result.stats["structure"] = "standard"
    elif isinstance(wrapper, dict) and NESTED_RESULT_FIELD in wrapper:
        result.stats["structure"] = WRAPPER_FIELD
        result.warnings.append(f"File uses {WRAPPER_FIELD} wrapper structure")
        nested = wrapper.get(NESTED_RESULT_FIELD)
        nested_fields = (
            [field for field in NESTED_RESULT_DETAIL_FIELDS if field in nested]
            if isinstance(nested, dict)
            else []
        )
        result.stats["battleResultFields"] = nested_fields
        if not nested_fields:
            result.warnings.append(
                f"No recognized battle result fields in {WRAPPER_FIELD}.{NESTED_RESULT_FIELD}"
            )
    else:
        return _fail(result, "missing expected battle result fields or structure")

    if not SAFE_FILENAME_PATTERN.match(filename):
        result.warnings.append(
            "Filename contains special characters "
            "(recommend: alphanumeric, dash, underscore only)"
        )

    return result


def validate_files(
    files: Sequence[SubmissionFile], max_files: Optional[int] = None
) -> ValidationReport:
    """
    Validate a batch of files, collecting every error before returning.

    Args:
        files: Candidate files
        max_files: Ceiling on the number of files (defaults to MAX_VALIDATE_FILES)

    Returns:
        ValidationReport; ``errors`` and ``warnings`` are prefixed with the filename
    """
    limit = max_files if max_files is not None else settings.MAX_VALIDATE_FILES
    report = ValidationReport(totalFiles=len(files))

    if not files:
        report.errors.append("No files provided")
    elif len(files) > limit:
        report.errors.append(f"Maximum {limit} files per submission")

    seen_names: set[str] = set()
    for entry in files:
        if not entry.name or not entry.content:
            report.errors.append("Each file must have name and content")
            report.invalidFiles += 1
            continue

        file_result = validate_json_file(entry.name, entry.content)

        if entry.name in seen_names:
            file_result.errors.append(f"Duplicate filename: {entry.name}")
            file_result.valid = False
        seen_names.add(entry.name)

        report.fileResults.append(file_result)
        report.errors.extend(f"{entry.name}: {message}" for message in file_result.errors)
        report.warnings.extend(
            f"{entry.name}: {message}" for message in file_result.warnings
        )
        if file_result.valid:
            report.validFiles += 1
        else:
            report.invalidFiles += 1

    report.summary = f"{report.validFiles}/{report.totalFiles} files valid"
    if report.errors:
        logger.info(
            "Validation rejected %d of %d files (%d errors)",
            report.invalidFiles,
            report.totalFiles,
            len(report.errors),
        )
    return report


def _is_safe_target_path(target_path: str) -> bool:
    if target_path.startswith("/") or "\\" in target_path:
        return False
    return all(part not in ("", ".", "..") for part in target_path.split("/"))


def validate_submission_request(request: SubmitRequest) -> List[str]:
    """
    Check submission metadata and request-level limits.

    Returns:
        List of error messages (empty if valid)
    """
    errors: List[str] = []
    name = (request.name or "").strip()
    comments = request.comments or ""
    target_path = (request.targetPath or "").strip()

    if not name or not target_path or not request.files:
        errors.append("name, targetPath, files are required")

    if len(name) > settings.MAX_NAME_LENGTH:
        errors.append(f"name too long (max {settings.MAX_NAME_LENGTH} characters)")

    if len(comments) > settings.MAX_COMMENTS_LENGTH:
        errors.append(f"comments too long (max {settings.MAX_COMMENTS_LENGTH} characters)")

    if target_path and not _is_safe_target_path(target_path):
        errors.append("targetPath must be a relative folder path")

    for entry in request.files:
        if len(entry.content) > settings.MAX_FILE_CONTENT_CHARS:
            errors.append(f"{entry.name}: too large")

    return errors


def check_submission(request: SubmitRequest) -> ValidationReport:
    """Full publish-time validation: request limits plus every file check."""
    report = validate_files(
        request.files, max_files=min(settings.MAX_SUBMIT_FILES, settings.MAX_VALIDATE_FILES)
    )
    request_errors = [
        error for error in validate_submission_request(request) if error not in report.errors
    ]
    report.errors = request_errors + report.errors
    return report
