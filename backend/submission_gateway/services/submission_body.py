"""
Submission metadata <-> pull request body.

The PR body is the only place submission metadata lives, so the encoder and
the decoder here must stay exact inverses for the fields they define:

    Automated submission via analyzer UI.

    Submitter: <name>
    Comments: <comments or n/a>
    Target path: <targetPath>
    Files:
    - <file 1>
    - <file 2>

Values are single-line; line breaks and backslashes inside values, file
names included, are escaped (``\\n``, ``\\\\``). Comments that are literally
``n/a`` are written as ``n\\/a`` so they do not read back as empty. Unknown
lines are ignored when decoding because maintainers may edit the body on
GitHub.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

BODY_PREAMBLE = "Automated submission via analyzer UI."
EMPTY_COMMENTS = "n/a"
LITERAL_EMPTY_COMMENTS = "n\\/a"

SUBMITTER_TAG = "Submitter:"
COMMENTS_TAG = "Comments:"
TARGET_PATH_TAG = "Target path:"
FILES_TAG = "Files:"
FILE_ITEM_PREFIX = "- "


@dataclass
class SubmissionMetadata:
    submitter: str = ""
    comments: str = ""
    targetPath: str = ""
    files: List[str] = field(default_factory=list)


def _escape(value: str) -> str:
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    return value.replace("\\", "\\\\").replace("\n", "\\n")


def _unescape(value: str) -> str:
    out: List[str] = []
    chars = iter(value)
    for char in chars:
        if char != "\\":
            out.append(char)
            continue
        following = next(chars, "")
        if following == "n":
            out.append("\n")
        elif following in ("\\", "/"):
            out.append(following)
        else:
            out.append(char + following)
    return "".join(out)


def _encode_comments(comments: str) -> str:
    if not comments:
        return EMPTY_COMMENTS
    if comments == EMPTY_COMMENTS:
        return LITERAL_EMPTY_COMMENTS
    return _escape(comments)


def encode_submission_body(metadata: SubmissionMetadata) -> str:
    lines = [
        BODY_PREAMBLE,
        "",
        f"{SUBMITTER_TAG} {_escape(metadata.submitter.strip())}",
        f"{COMMENTS_TAG} {_encode_comments(metadata.comments.strip())}",
        f"{TARGET_PATH_TAG} {_escape(metadata.targetPath.strip())}",
        FILES_TAG,
    ]
    lines.extend(f"{FILE_ITEM_PREFIX}{_escape(name)}" for name in metadata.files)
    return "\n".join(lines)


def parse_submission_body(body: str | None) -> SubmissionMetadata:
    """Decode a PR body; tolerant of CRLF, edits and unknown lines."""
    metadata = SubmissionMetadata()
    in_files_section = False

    for line in (body or "").splitlines():
        if line.startswith(SUBMITTER_TAG):
            metadata.submitter = _unescape(line[len(SUBMITTER_TAG):].strip())
        elif line.startswith(COMMENTS_TAG):
            comments = line[len(COMMENTS_TAG):].strip()
            metadata.comments = "" if comments == EMPTY_COMMENTS else _unescape(comments)
        elif line.startswith(TARGET_PATH_TAG):
            metadata.targetPath = _unescape(line[len(TARGET_PATH_TAG):].strip())
        elif line.startswith(FILES_TAG):
            in_files_section = True
        elif in_files_section and line.startswith(FILE_ITEM_PREFIX):
            metadata.files.append(_unescape(line[len(FILE_ITEM_PREFIX):]))

    return metadata
