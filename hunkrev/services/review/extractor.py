"""Recover review findings from raw model output."""

import json
import re
from enum import Enum
from typing import Any

import structlog

from hunkrev.core.metrics import record_extraction_outcome

logger = structlog.get_logger()

REVIEWS_FIELD = "reviews"

# A raw entry of the "reviews" array. Shape is validated by the mapper.
Finding = Any

OPENING_FENCE_PATTERN = re.compile(r"^```[a-zA-Z0-9_+-]*[ \t]*\r?\n?")
CLOSING_FENCE_PATTERN = re.compile(r"\r?\n?```$")


class ExtractionOutcome(str, Enum):
    FINDINGS = "findings"
    EMPTY = "empty"  # model answered with no reviews
    NO_RESPONSE = "no_response"  # model call failed or returned nothing
    UNPARSEABLE = "unparseable"
    SCHEMA_MISMATCH = "schema_mismatch"


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` fence, with or without a language tag."""
    if not text.startswith("```"):
        return text
    text = OPENING_FENCE_PATTERN.sub("", text, count=1)
    text = CLOSING_FENCE_PATTERN.sub("", text)
    return text.strip()


def slice_json_object(text: str) -> str:
    """Cut the text down to the span between the first '{' and the last '}'."""
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last != -1 and first < last:
        return text[first : last + 1]
    return text


def extract_findings_with_outcome(raw_text: str | None) -> tuple[list[Finding], ExtractionOutcome]:
    """Extract findings and report how the extraction ended."""
    if raw_text is None:
        return [], ExtractionOutcome.NO_RESPONSE

    text = raw_text.strip()
    if not text:
        return [], ExtractionOutcome.NO_RESPONSE

    text = slice_json_object(strip_code_fence(text))

    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        logger.warning(
            "Failed to parse model response as JSON",
            response=raw_text[:500],
            error=str(e),
        )
        return [], ExtractionOutcome.UNPARSEABLE

    if not isinstance(data, dict):
        logger.warning("Model response is not a JSON object", response=raw_text[:500])
        return [], ExtractionOutcome.SCHEMA_MISMATCH

    reviews = data.get(REVIEWS_FIELD)
    if reviews is None:
        return [], ExtractionOutcome.EMPTY

    if not isinstance(reviews, list):
        logger.warning(
            "Model response field is not an array",
            field=REVIEWS_FIELD,
            value_type=type(reviews).__name__,
        )
        return [], ExtractionOutcome.SCHEMA_MISMATCH

    if not reviews:
        return [], ExtractionOutcome.EMPTY
    return reviews, ExtractionOutcome.FINDINGS


def extract_findings(raw_text: str | None) -> list[Finding]:
    """
    Recover the ``reviews`` array from a model response.

    Never raises: a missing, unparseable or mis-shaped response yields an
    empty list, exactly like a response with no reviews. The two cases are
    told apart only through the extraction outcome metric and log event.

    Args:
        raw_text: Model output, or None when the model call failed.

    Returns:
        The array entries as-is, in order.
    """
    findings, outcome = extract_findings_with_outcome(raw_text)
    record_extraction_outcome(outcome.value)
    logger.debug("Extracted findings", outcome=outcome.value, count=len(findings))
    return findings
