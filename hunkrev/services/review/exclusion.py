"""Glob-based exclusion of changed files."""

import structlog
from wcmatch import glob

from hunkrev.services.review.diff_parser import FileChange

logger = structlog.get_logger()

# minimatch defaults: `*` stays inside one path segment, `**` spans any number
# of segments, matching is case-sensitive and dotfiles need an explicit dot.
GLOB_FLAGS = glob.GLOBSTAR | glob.CASE


def split_patterns(raw: str | None) -> list[str]:
    """Split a comma separated pattern list, dropping blanks."""
    if not raw:
        return []
    return [pattern.strip() for pattern in raw.split(",") if pattern.strip()]


def matches_pattern(path: str, pattern: str) -> bool:
    """
    Match a path against a glob pattern.

    ``*`` never crosses a ``/``; ``**`` matches zero or more directories, so
    ``**/*.gen.py`` matches ``a.gen.py`` as well as ``a/b/c.gen.py``.
    """
    return glob.globmatch(path, pattern, flags=GLOB_FLAGS)


def is_excluded(file_change: FileChange, patterns: list[str]) -> bool:
    path = file_change.destination_path or ""
    return any(matches_pattern(path, pattern) for pattern in patterns)


def filter_excluded(file_changes: list[FileChange], patterns: list[str]) -> list[FileChange]:
    """Remove every file whose destination path matches one of the patterns."""
    if not patterns:
        return list(file_changes)

    kept: list[FileChange] = []
    for file_change in file_changes:
        if is_excluded(file_change, patterns):
            logger.info("Excluding file from review", path=file_change.path)
            continue
        kept.append(file_change)
    return kept
