import pytest

from hunkrev.services.review.diff_parser import DiffParser
from hunkrev.services.review.exclusion import filter_excluded, matches_pattern, split_patterns
from tests.fixtures.sample_diffs import GENERATED_AND_SOURCE, MULTIPLE_FILES


class TestSplitPatterns:
    def test_comma_separated(self) -> None:
        assert split_patterns("**/*.generated.swift, docs/*.md ,,") == [
            "**/*.generated.swift",
            "docs/*.md",
        ]

    @pytest.mark.parametrize("raw", [None, "", "  ,  "])
    def test_blank(self, raw: str | None) -> None:
        assert split_patterns(raw) == []


class TestMatchesPattern:
    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            ("Sources/API.generated.swift", "**/*.generated.swift", True),
            ("Sources/Deep/Nested/API.generated.swift", "**/*.generated.swift", True),
            ("API.generated.swift", "**/*.generated.swift", True),
            ("Sources/Client.swift", "**/*.generated.swift", False),
            ("docs/guide.md", "docs/*.md", True),
            ("src/docs/guide.md", "docs/*.md", False),
            ("package-lock.json", "package-lock.json", True),
            ("Sources/Client.swift", "sources/*.swift", False),
            ("README.md", "*.md", True),
            ("docs/nested/guide.md", "*.md", False),
            ("src/a/b.swift", "src/*.swift", False),
            ("src/a/b.swift", "src/**/*.swift", True),
            ("src/b.swift", "src/**/*.swift", True),
            ("docs/nested/guide.md", "**/*.md", True),
        ],
    )
    def test_glob_matching(self, path: str, pattern: str, expected: bool) -> None:
        assert matches_pattern(path, pattern) is expected


class TestFilterExcluded:
    """Tests for removing excluded files before review."""

    def test_generated_file_is_removed(self) -> None:
        file_changes = DiffParser().parse(GENERATED_AND_SOURCE)

        kept = filter_excluded(file_changes, ["**/*.generated.swift"])

        assert [f.path for f in kept] == ["Sources/Client.swift"]

    def test_no_patterns_keeps_everything(self) -> None:
        file_changes = DiffParser().parse(MULTIPLE_FILES)

        assert filter_excluded(file_changes, []) == file_changes

    def test_any_pattern_excludes(self) -> None:
        file_changes = DiffParser().parse(MULTIPLE_FILES)

        kept = filter_excluded(file_changes, ["tests/*", "src/utils.py"])

        assert [f.path for f in kept] == ["src/main.py"]

    def test_order_is_kept(self) -> None:
        file_changes = DiffParser().parse(MULTIPLE_FILES)

        kept = filter_excluded(file_changes, ["nothing/matches/*"])

        assert [f.path for f in kept] == ["src/main.py", "src/utils.py", "tests/test_main.py"]
