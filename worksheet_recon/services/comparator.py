from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence

from ..models.comparison_request import DEFAULT_MATCH_THRESHOLD
from ..models.comparison_result import (
    ComparisonResult,
    ComparisonStatus,
    RowOutcome,
    SimilarityLevel,
)
from ..models.config_models import DEFAULT_THRESHOLDS, MatchThresholds
from ..models.dataset import NormalizedDataset
from .header_matcher import build_header_mapping, headers_compatible, match_headers
from .row_matcher import match_rows

"""Worksheet comparison: header matching + row matching + classification.

compare_worksheets never raises. Structural mismatches, cancellations and
unexpected faults all come back as a ComparisonResult with status ERROR and a
summary message carrying the reason.
"""

__all__ = [
    "ComparisonCancelledError",
    "determine_similarity_level",
    "determine_comparison_status",
    "render_summary_message",
    "compare_worksheets",
    "specific_differences",
]

logger = logging.getLogger(__name__)


class ComparisonCancelledError(Exception):
    """Raised inside the row loop when the deadline passed or cancel was requested."""


def determine_similarity_level(
    score: float, thresholds: MatchThresholds = DEFAULT_THRESHOLDS
) -> SimilarityLevel:
    if score >= thresholds.exact_match:
        return SimilarityLevel.EXACT_MATCH
    if score >= thresholds.near_identical:
        return SimilarityLevel.NEAR_IDENTICAL
    if score >= thresholds.high_similarity:
        return SimilarityLevel.HIGH_SIMILARITY
    if score >= thresholds.moderate_similarity:
        return SimilarityLevel.MODERATE_SIMILARITY
    if score >= thresholds.low_similarity:
        return SimilarityLevel.LOW_SIMILARITY
    return SimilarityLevel.DIFFERENT


def determine_comparison_status(
    score: float, thresholds: MatchThresholds = DEFAULT_THRESHOLDS
) -> ComparisonStatus:
    if score >= thresholds.high_similarity:
        return ComparisonStatus.SUCCESS
    if score >= thresholds.low_similarity:
        return ComparisonStatus.WARNING
    return ComparisonStatus.ERROR


def render_summary_message(
    status: ComparisonStatus, level: SimilarityLevel, similarity: float
) -> str:
    """Fixed lookup from (status, level, similarity) to a one-line summary."""
    pct = f"{similarity:.1%}"
    if status is ComparisonStatus.SUCCESS:
        if level is SimilarityLevel.EXACT_MATCH:
            return "Perfect match - all data is identical between worksheets"
        if level is SimilarityLevel.NEAR_IDENTICAL:
            return f"Near perfect match - {pct} similarity, excellent data consistency"
        return f"Good data consistency - {pct} similarity, minor differences detected"
    if status is ComparisonStatus.WARNING:
        return f"Some differences found - {pct} similarity, review recommended"
    return f"Significant differences - {pct} similarity, data may not be consistent"


def _difference_samples(outcomes: Sequence[RowOutcome], limit: int) -> list[str]:
    """Unmatched rows and matched rows with differing values, in source-row order."""
    samples: list[str] = []
    for outcome in outcomes:
        if len(samples) >= limit:
            break
        row_no = outcome.source_row_index + 1
        if not outcome.is_match:
            samples.append(f"Row {row_no}: No matching row found")
        elif outcome.field_differences:
            details = ", ".join(outcome.field_differences[:2])
            samples.append(f"Row {row_no} vs Row {outcome.target_row_index + 1}: {details}")
    return samples


def _failed_result(total_rows: int, message: str) -> ComparisonResult:
    return ComparisonResult(
        total_rows=total_rows,
        matching_rows=0,
        different_rows=total_rows,
        headers_match=False,
        missing_headers=[],
        extra_headers=[],
        matched_headers=[],
        header_matches=[],
        similarity_percentage=0.0,
        similarity_level=SimilarityLevel.DIFFERENT,
        status=ComparisonStatus.ERROR,
        summary_message=message,
        sample_differences=[],
    )


def compare_worksheets(
    dataset_a: NormalizedDataset,
    dataset_b: NormalizedDataset,
    match_threshold: float = DEFAULT_MATCH_THRESHOLD,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
    *,
    cancel_event: threading.Event | None = None,
    deadline: float | None = None,
) -> ComparisonResult:
    """Compare two worksheets position-independently.

    Args:
        dataset_a: Source ("left") worksheet; similarity is relative to its rows
        dataset_b: Target worksheet
        match_threshold: Minimum averaged row similarity for a row match
        thresholds: Header/classification thresholds and performance bounds
        cancel_event: Checked once per source row; set() aborts the comparison
        deadline: time.monotonic() value after which the comparison aborts

    Returns:
        ComparisonResult. Never raises.
    """
    rows_a = dataset_a.rows
    rows_b = dataset_b.rows
    total_rows = max(len(rows_a), len(rows_b))
    logger.info(
        "comparing '%s' (%d headers, %d rows) with '%s' (%d headers, %d rows)",
        dataset_a.name,
        len(dataset_a.headers),
        len(rows_a),
        dataset_b.name,
        len(dataset_b.headers),
        len(rows_b),
    )

    def check_cancelled() -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ComparisonCancelledError("comparison cancelled")
        if deadline is not None and time.monotonic() > deadline:
            raise ComparisonCancelledError("comparison deadline exceeded")

    try:
        header_matches = match_headers(dataset_a.headers, dataset_b.headers, thresholds)
        header_mapping = build_header_mapping(header_matches, thresholds)
        matched_headers = list(header_mapping.keys())
        mapped_targets = set(header_mapping.values())
        missing_headers = [h for h in dataset_a.headers if h not in header_mapping]
        extra_headers = [h for h in dataset_b.headers if h not in mapped_targets]
        headers_match = headers_compatible(
            len(header_mapping), len(dataset_a.headers), len(dataset_b.headers), thresholds
        )

        if not headers_match:
            logger.warning(
                "header structure mismatch '%s' vs '%s': %d missing, %d extra",
                dataset_a.name,
                dataset_b.name,
                len(missing_headers),
                len(extra_headers),
            )
            return ComparisonResult(
                total_rows=total_rows,
                matching_rows=0,
                different_rows=total_rows,
                headers_match=False,
                missing_headers=missing_headers,
                extra_headers=extra_headers,
                matched_headers=matched_headers,
                header_matches=header_matches,
                similarity_percentage=0.0,
                similarity_level=SimilarityLevel.DIFFERENT,
                status=ComparisonStatus.ERROR,
                summary_message=(
                    f"Header mismatch: {len(missing_headers)} missing, "
                    f"{len(extra_headers)} extra headers"
                ),
                sample_differences=[],
            )

        outcomes = match_rows(
            rows_a,
            rows_b,
            header_mapping,
            match_threshold,
            thresholds,
            check_cancelled=check_cancelled,
        )
        matching_rows = sum(1 for o in outcomes if o.is_match)
        similarity = matching_rows / len(rows_a) if rows_a else 1.0
        level = determine_similarity_level(similarity, thresholds)
        status = determine_comparison_status(similarity, thresholds)

        logger.info(
            "comparison '%s' vs '%s' complete: %d/%d rows matched, %.2f%% similarity, status=%s level=%s",
            dataset_a.name,
            dataset_b.name,
            matching_rows,
            len(rows_a),
            similarity * 100,
            status.value,
            level.value,
        )
        return ComparisonResult(
            total_rows=total_rows,
            matching_rows=matching_rows,
            different_rows=total_rows - matching_rows,
            headers_match=True,
            missing_headers=missing_headers,
            extra_headers=extra_headers,
            matched_headers=matched_headers,
            header_matches=header_matches,
            similarity_percentage=similarity,
            similarity_level=level,
            status=status,
            summary_message=render_summary_message(status, level, similarity),
            sample_differences=_difference_samples(
                outcomes, thresholds.difference_sample_size
            ),
        )

    except ComparisonCancelledError as e:
        logger.warning("comparison '%s' vs '%s' aborted: %s", dataset_a.name, dataset_b.name, e)
        return _failed_result(total_rows, f"Comparison failed: {e}")
    except Exception as e:
        logger.exception("error during comparison '%s' vs '%s'", dataset_a.name, dataset_b.name)
        return _failed_result(total_rows, f"Comparison failed: {e}")


def specific_differences(result: ComparisonResult) -> list[str]:
    """Human readable difference list for an integrity report."""
    differences: list[str] = []
    if not result.headers_match:
        if result.missing_headers:
            differences.append(f"Missing columns: {', '.join(result.missing_headers)}")
        if result.extra_headers:
            differences.append(f"Extra columns: {', '.join(result.extra_headers)}")

    if result.different_rows > 0:
        differences.append(
            f"{result.different_rows} of {result.total_rows} rows have differences"
        )
        differences.extend(result.sample_differences[:3])

    if not differences:
        if result.status is ComparisonStatus.ERROR:
            differences.append(result.summary_message)
        else:
            differences.append("All data matches exactly")
    return differences
