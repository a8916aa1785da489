"""Review service package.

Import the pipeline from ``hunkrev.services.review.pipeline``.
"""

from hunkrev.services.review.diff_parser import DiffLine, DiffParser, FileChange, Hunk, LineType
from hunkrev.services.review.exclusion import filter_excluded, split_patterns
from hunkrev.services.review.extractor import extract_findings
from hunkrev.services.review.mapper import CommentRecord, to_comments

__all__ = [
    "CommentRecord",
    "DiffLine",
    "DiffParser",
    "FileChange",
    "Hunk",
    "LineType",
    "extract_findings",
    "filter_excluded",
    "split_patterns",
    "to_comments",
]
