from unittest.mock import patch

import pytest

from hunkrev.services.review.extractor import (
    ExtractionOutcome,
    extract_findings,
    extract_findings_with_outcome,
    slice_json_object,
    strip_code_fence,
)

FINDING = {"lineNumber": 11, "reviewComment": "use optional binding here"}


class TestStripCodeFence:
    def test_fence_with_language_tag(self) -> None:
        assert strip_code_fence('```json\n{"reviews":[]}\n```') == '{"reviews":[]}'

    def test_fence_without_language_tag(self) -> None:
        assert strip_code_fence('```\n{"reviews":[]}\n```') == '{"reviews":[]}'

    def test_unfenced_text_is_unchanged(self) -> None:
        assert strip_code_fence('{"reviews":[]}') == '{"reviews":[]}'

    def test_crlf_fence(self) -> None:
        assert strip_code_fence('```json\r\n{"reviews":[]}\r\n```') == '{"reviews":[]}'


class TestSliceJsonObject:
    def test_surrounding_prose_is_cut(self) -> None:
        text = 'Here you go: {"reviews": []} Hope that helps!'
        assert slice_json_object(text) == '{"reviews": []}'

    def test_text_without_braces_is_unchanged(self) -> None:
        assert slice_json_object("no json here") == "no json here"

    def test_braces_in_wrong_order_are_ignored(self) -> None:
        assert slice_json_object("} nope {") == "} nope {"


class TestExtractFindings:
    """Tests for recovering the reviews array from model output."""

    def test_plain_json(self) -> None:
        raw = '{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}'

        findings, outcome = extract_findings_with_outcome(raw)

        assert findings == [FINDING]
        assert outcome == ExtractionOutcome.FINDINGS

    def test_fenced_empty_reviews(self) -> None:
        findings, outcome = extract_findings_with_outcome('```json\n{"reviews":[]}\n```')

        assert findings == []
        assert outcome == ExtractionOutcome.EMPTY

    def test_malformed_text_is_absorbed(self) -> None:
        findings, outcome = extract_findings_with_outcome('Sure! {"reviews": [}')

        assert findings == []
        assert outcome == ExtractionOutcome.UNPARSEABLE

    def test_oversized_integer_is_absorbed(self) -> None:
        raw = '{"reviews":[{"lineNumber": ' + "1" * 5000 + ', "reviewComment": "x"}]}'

        findings, outcome = extract_findings_with_outcome(raw)

        assert findings == []
        assert outcome == ExtractionOutcome.UNPARSEABLE

    @pytest.mark.parametrize(
        "wrapped",
        [
            '{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}',
            '```json\n{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}\n```',
            '```\n{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}\n```',
            'Sure, here is my review:\n{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}\nThanks.',
            '  \n{"reviews":[{"lineNumber":11,"reviewComment":"use optional binding here"}]}\n\n',
        ],
    )
    def test_fences_and_prose_do_not_change_the_result(self, wrapped: str) -> None:
        assert extract_findings(wrapped) == [FINDING]

    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_no_response(self, raw: str | None) -> None:
        findings, outcome = extract_findings_with_outcome(raw)

        assert findings == []
        assert outcome == ExtractionOutcome.NO_RESPONSE

    def test_missing_reviews_field_counts_as_empty(self) -> None:
        findings, outcome = extract_findings_with_outcome('{"comments": []}')

        assert findings == []
        assert outcome == ExtractionOutcome.EMPTY

    @pytest.mark.parametrize(
        "raw",
        [
            '{"reviews": "none"}',
            '{"reviews": {"lineNumber": 1}}',
            '{"reviews": 3}',
        ],
    )
    def test_reviews_field_must_be_an_array(self, raw: str) -> None:
        findings, outcome = extract_findings_with_outcome(raw)

        assert findings == []
        assert outcome == ExtractionOutcome.SCHEMA_MISMATCH

    def test_entries_are_returned_as_is(self) -> None:
        raw = '{"reviews": [1, "two", {"lineNumber": "3"}, null]}'

        assert extract_findings(raw) == [1, "two", {"lineNumber": "3"}, None]

    def test_outcome_is_recorded(self) -> None:
        with patch(
            "hunkrev.services.review.extractor.record_extraction_outcome"
        ) as mock_record:
            extract_findings('Sure! {"reviews": [}')
            extract_findings('{"reviews": []}')
            extract_findings(None)

        recorded = [call.args[0] for call in mock_record.call_args_list]
        assert recorded == ["unparseable", "empty", "no_response"]
