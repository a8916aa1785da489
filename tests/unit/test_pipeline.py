import asyncio
import json
import re
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from hunkrev.core.exceptions import GitHubError, PublishError
from hunkrev.services.github.models import DiffRequest, PRContext, Review
from hunkrev.services.review.diff_parser import DiffParser
from hunkrev.services.review.mapper import CommentRecord
from hunkrev.services.review.pipeline import (
    ReviewPipeline,
    review_file_changes,
    reviewable_hunks,
)
from hunkrev.services.review.summary import RunSummary
from tests.fixtures.sample_diffs import (
    DELETED_FILE,
    GENERATED_AND_SOURCE,
    MULTIPLE_FILES,
    THREE_ADDED_LINES,
)

SWIFT_PATH = "App/Feature/ProfileViewModel.swift"
ONE_FINDING = '{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}'
FILE_IN_PROMPT = re.compile(r'## Git diff to review \(file: "([^"]*)"\)')


def reviews(*findings: tuple[int, str]) -> str:
    return json.dumps(
        {"reviews": [{"lineNumber": line, "reviewComment": body} for line, body in findings]}
    )


class TestReviewFileChanges:
    """Tests for reviewing parsed file changes hunk by hunk."""

    @pytest.mark.asyncio
    async def test_single_hunk_single_finding(
        self, pr_context: PRContext, stub_model: Callable
    ) -> None:
        model = stub_model([ONE_FINDING])
        file_changes = DiffParser().parse(THREE_ADDED_LINES)

        comments = await review_file_changes(file_changes, pr_context, model)

        assert comments == [
            CommentRecord(path=SWIFT_PATH, line=11, body="use optional binding here")
        ]
        assert len(model.prompts) == 1
        assert "11 +        let name = repository.cachedName!" in model.prompts[0]

    @pytest.mark.asyncio
    async def test_fenced_empty_response(self, pr_context: PRContext, stub_model: Callable) -> None:
        model = stub_model(['```json\n{"reviews":[]}\n```'])

        comments = await review_file_changes(
            DiffParser().parse(THREE_ADDED_LINES), pr_context, model
        )

        assert comments == []

    @pytest.mark.asyncio
    async def test_malformed_response_is_absorbed(
        self, pr_context: PRContext, stub_model: Callable
    ) -> None:
        model = stub_model(['Sure! {"reviews": [}'])

        comments = await review_file_changes(
            DiffParser().parse(THREE_ADDED_LINES), pr_context, model
        )

        assert comments == []

    @pytest.mark.asyncio
    async def test_deleted_file_is_never_prompted(
        self, pr_context: PRContext, stub_model: Callable
    ) -> None:
        model = stub_model([ONE_FINDING, ONE_FINDING])
        file_changes = DiffParser().parse(DELETED_FILE + THREE_ADDED_LINES)

        comments = await review_file_changes(file_changes, pr_context, model)

        assert len(file_changes) == 2
        assert len(model.prompts) == 1
        assert "src/legacy.py" not in model.prompts[0]
        assert [c.path for c in comments] == [SWIFT_PATH]

    @pytest.mark.asyncio
    async def test_one_model_call_per_hunk_in_diff_order(
        self, pr_context: PRContext, stub_model: Callable
    ) -> None:
        model = stub_model(
            [
                reviews((1, "main")),
                reviews((4, "utils first")),
                reviews((24, "utils second")),
                reviews((1, "tests"), (4, "tests again")),
            ]
        )

        comments = await review_file_changes(
            DiffParser().parse(MULTIPLE_FILES), pr_context, model
        )

        assert [FILE_IN_PROMPT.search(p).group(1) for p in model.prompts] == [
            "src/main.py",
            "src/utils.py",
            "src/utils.py",
            "tests/test_main.py",
        ]
        assert [(c.path, c.line, c.body) for c in comments] == [
            ("src/main.py", 1, "main"),
            ("src/utils.py", 4, "utils first"),
            ("src/utils.py", 24, "utils second"),
            ("tests/test_main.py", 1, "tests"),
            ("tests/test_main.py", 4, "tests again"),
        ]

    @pytest.mark.asyncio
    async def test_failed_model_call_only_loses_its_hunk(self, pr_context: PRContext) -> None:
        calls = 0

        async def flaky_model(prompt: str) -> str | None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("connection reset")
            if calls == 2:
                return None
            return reviews((1, "still reviewed"))

        comments = await review_file_changes(
            DiffParser().parse(MULTIPLE_FILES), pr_context, flaky_model
        )

        assert calls == 4
        assert [(c.path, c.body) for c in comments] == [
            ("src/utils.py", "still reviewed"),
            ("tests/test_main.py", "still reviewed"),
        ]

    @pytest.mark.asyncio
    async def test_unparseable_response_only_loses_its_hunk(self, pr_context: PRContext) -> None:
        calls = 0

        async def model(prompt: str) -> str | None:
            nonlocal calls
            calls += 1
            if calls == 1:
                return '{"reviews":[{"lineNumber": ' + "1" * 5000 + ', "reviewComment": "x"}]}'
            return reviews((1, "still reviewed"))

        comments = await review_file_changes(DiffParser().parse(MULTIPLE_FILES), pr_context, model)

        assert calls == 4
        assert len(comments) == 3
        assert all(c.body == "still reviewed" for c in comments)

    @pytest.mark.asyncio
    async def test_concurrent_review_keeps_sequential_order(self, pr_context: PRContext) -> None:
        delays = {"src/main.py": 0.03, "src/utils.py": 0.02, "tests/test_main.py": 0.0}

        async def slow_model(prompt: str) -> str:
            path = FILE_IN_PROMPT.search(prompt).group(1)
            await asyncio.sleep(delays[path])
            return reviews((1, path))

        file_changes = DiffParser().parse(MULTIPLE_FILES)

        sequential = await review_file_changes(file_changes, pr_context, slow_model)
        concurrent = await review_file_changes(
            file_changes, pr_context, slow_model, concurrency=4
        )

        assert concurrent == sequential
        assert [c.body for c in concurrent] == [
            "src/main.py",
            "src/utils.py",
            "src/utils.py",
            "tests/test_main.py",
        ]

    def test_reviewable_hunks_skip_deleted_files(self) -> None:
        file_changes = DiffParser().parse(DELETED_FILE + MULTIPLE_FILES)

        units = reviewable_hunks(file_changes)

        assert [(f.path, h.new_start) for f, h in units] == [
            ("src/main.py", 1),
            ("src/utils.py", 1),
            ("src/utils.py", 23),
            ("tests/test_main.py", 1),
        ]


class TestReviewPipeline:
    """Tests for the review pipeline."""

    @pytest.fixture
    def mock_github_client(self, pr_context: PRContext) -> MagicMock:
        client = MagicMock()
        client.get_pr_context = AsyncMock(return_value=pr_context)
        client.get_diff = AsyncMock(return_value=THREE_ADDED_LINES)
        client.create_review = AsyncMock(return_value={"id": 7})
        client.close = AsyncMock()
        return client

    @pytest.fixture
    def mock_notifier(self) -> MagicMock:
        notifier = MagicMock()
        notifier.notify = AsyncMock(return_value=True)
        return notifier

    def make_pipeline(
        self,
        github: MagicMock,
        notifier: MagicMock,
        model: Callable,
        exclude_patterns: list[str] | None = None,
    ) -> ReviewPipeline:
        return ReviewPipeline(
            github_client=github,
            model_invoke=model,
            notifier=notifier,
            exclude_patterns=exclude_patterns or [],
            concurrency=1,
        )

    @pytest.mark.asyncio
    async def test_execute_success(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        """Test successful pipeline execution."""
        pipeline = self.make_pipeline(mock_github_client, mock_notifier, stub_model([ONE_FINDING]))

        result = await pipeline.execute("owner", "repo", 42)

        assert result.status == "completed"
        assert result.files_reviewed == 1
        assert result.hunks_reviewed == 1
        assert result.total_comments == 1
        assert result.review_posted
        assert result.github_review_id == 7
        assert result.notification_sent

        mock_github_client.get_diff.assert_called_once_with(
            "owner", "repo", 42, DiffRequest.full()
        )
        review: Review = mock_github_client.create_review.call_args.args[3]
        assert review.event == "COMMENT"
        assert [(c.path, c.line, c.body) for c in review.comments] == [
            (SWIFT_PATH, 11, "use optional binding here")
        ]

        summary: RunSummary = mock_notifier.notify.call_args.args[0]
        assert summary.comment_count == 1
        assert summary.pr_url == "https://github.com/owner/repo/pull/42"

    @pytest.mark.asyncio
    async def test_execute_empty_diff_is_skipped(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        mock_github_client.get_diff.return_value = ""
        model = stub_model([ONE_FINDING])
        pipeline = self.make_pipeline(mock_github_client, mock_notifier, model)

        result = await pipeline.execute("owner", "repo", 42)

        assert result.status == "skipped"
        assert model.prompts == []
        mock_github_client.create_review.assert_not_called()
        mock_notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_execute_without_comments_still_notifies(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        pipeline = self.make_pipeline(
            mock_github_client, mock_notifier, stub_model(['{"reviews": []}'])
        )

        result = await pipeline.execute("owner", "repo", 42)

        assert result.total_comments == 0
        assert not result.review_posted
        mock_github_client.create_review.assert_not_called()
        assert mock_notifier.notify.call_args.args[0].comment_count == 0

    @pytest.mark.asyncio
    async def test_execute_without_posting(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        """Dry runs produce comments without side effects."""
        pipeline = self.make_pipeline(mock_github_client, mock_notifier, stub_model([ONE_FINDING]))

        result = await pipeline.execute("owner", "repo", 42, post_review=False)

        assert result.total_comments == 1
        assert not result.review_posted
        assert not result.notification_sent
        mock_github_client.create_review.assert_not_called()
        mock_notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_execute_excludes_matching_files(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        mock_github_client.get_diff.return_value = GENERATED_AND_SOURCE
        model = stub_model([reviews((2, "shared singleton"))])
        pipeline = self.make_pipeline(
            mock_github_client,
            mock_notifier,
            model,
            exclude_patterns=["**/*.generated.swift"],
        )

        result = await pipeline.execute("owner", "repo", 42)

        assert len(model.prompts) == 1
        assert "API.generated.swift" not in model.prompts[0]
        assert result.files_reviewed == 1
        assert [c.path for c in result.comments] == ["Sources/Client.swift"]

    @pytest.mark.asyncio
    async def test_execute_delta_diff(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        pipeline = self.make_pipeline(mock_github_client, mock_notifier, stub_model([]))
        request = DiffRequest.delta("aaa111", "bbb222")

        await pipeline.execute("owner", "repo", 42, diff_request=request)

        mock_github_client.get_diff.assert_called_once_with("owner", "repo", 42, request)

    @pytest.mark.asyncio
    async def test_execute_publish_failure(
        self,
        mock_github_client: MagicMock,
        mock_notifier: MagicMock,
        stub_model: Callable,
    ) -> None:
        mock_github_client.create_review.side_effect = GitHubError("Unprocessable Entity")
        pipeline = self.make_pipeline(mock_github_client, mock_notifier, stub_model([ONE_FINDING]))

        with pytest.raises(PublishError, match="Unprocessable Entity"):
            await pipeline.execute("owner", "repo", 42)

        mock_notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_close(self, mock_github_client: MagicMock, mock_notifier: MagicMock) -> None:
        model = MagicMock()
        model.close = AsyncMock()
        pipeline = self.make_pipeline(mock_github_client, mock_notifier, model)

        await pipeline.close()

        mock_github_client.close.assert_awaited_once()
        model.close.assert_awaited_once()
