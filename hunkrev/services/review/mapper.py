"""Turn extracted findings into line-anchored review comments."""

import math
from dataclasses import dataclass
from typing import Any

import structlog

from hunkrev.core.metrics import record_finding_dropped
from hunkrev.services.github.models import ReviewComment
from hunkrev.services.review.diff_parser import FileChange
from hunkrev.services.review.extractor import Finding

logger = structlog.get_logger()

LINE_FIELD = "lineNumber"
BODY_FIELD = "reviewComment"


@dataclass(frozen=True)
class CommentRecord:
    """A validated comment anchored to a file and a line of the new revision."""

    path: str
    line: int
    body: str

    def to_review_comment(self) -> ReviewComment:
        return ReviewComment(path=self.path, line=self.line, body=self.body)


def coerce_line_number(value: Any) -> int | None:
    """
    Coerce a model-supplied line identifier to a positive integer.

    Accepts ints, integral floats and strings holding either. Anything else,
    including booleans, fractions and values below 1, gives None.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                return None

    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = int(value)

    if not isinstance(value, int) or value < 1:
        return None
    return value


def to_comments(file_change: FileChange, findings: list[Finding]) -> list[CommentRecord]:
    """
    Map findings for one hunk of ``file_change`` to comment records.

    Findings that cannot be anchored are dropped one by one: everything for a
    deleted file, entries that are not objects, entries whose line is not a
    positive integer and entries without a comment body. Order is kept and
    duplicates are allowed.
    """
    if file_change.destination_path is None:
        for _ in findings:
            record_finding_dropped("deleted_file")
        return []

    path = file_change.destination_path
    comments: list[CommentRecord] = []

    for finding in findings:
        if not isinstance(finding, dict):
            logger.warning("Skipping malformed finding", path=path, finding=repr(finding)[:200])
            record_finding_dropped("not_an_object")
            continue

        line = coerce_line_number(finding.get(LINE_FIELD))
        if line is None:
            logger.warning(
                "Skipping finding with invalid line number",
                path=path,
                line=finding.get(LINE_FIELD),
            )
            record_finding_dropped("invalid_line")
            continue

        body = finding.get(BODY_FIELD)
        if not isinstance(body, str) or not body.strip():
            logger.warning("Skipping finding without a comment body", path=path, line=line)
            record_finding_dropped("invalid_body")
            continue

        comments.append(CommentRecord(path=path, line=line, body=body))

    return comments
