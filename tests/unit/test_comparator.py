from __future__ import annotations

import threading
import time
from unittest.mock import patch

import pytest

from worksheet_recon.models import (
    ComparisonStatus,
    MatchReason,
    MatchThresholds,
    NormalizedDataset,
    SimilarityLevel,
)
from worksheet_recon.services.comparator import (
    compare_worksheets,
    determine_comparison_status,
    determine_similarity_level,
    render_summary_message,
    specific_differences,
)

HEADERS = ["ID", "Name", "City"]
ROWS = [
    ["1", "Ann", "Oslo"],
    ["2", "Bob", "Bergen"],
    ["3", "Cid", "Tromso"],
]


@pytest.mark.parametrize(
    "score,level,status",
    [
        (1.0, SimilarityLevel.EXACT_MATCH, ComparisonStatus.SUCCESS),
        (0.99, SimilarityLevel.NEAR_IDENTICAL, ComparisonStatus.SUCCESS),
        (0.98, SimilarityLevel.NEAR_IDENTICAL, ComparisonStatus.SUCCESS),
        (0.95, SimilarityLevel.HIGH_SIMILARITY, ComparisonStatus.SUCCESS),
        (0.90, SimilarityLevel.HIGH_SIMILARITY, ComparisonStatus.SUCCESS),
        (0.85, SimilarityLevel.MODERATE_SIMILARITY, ComparisonStatus.WARNING),
        (0.80, SimilarityLevel.MODERATE_SIMILARITY, ComparisonStatus.WARNING),
        (0.60, SimilarityLevel.LOW_SIMILARITY, ComparisonStatus.WARNING),
        (0.50, SimilarityLevel.LOW_SIMILARITY, ComparisonStatus.WARNING),
        (0.49, SimilarityLevel.DIFFERENT, ComparisonStatus.ERROR),
        (0.0, SimilarityLevel.DIFFERENT, ComparisonStatus.ERROR),
    ],
)
def test_classification_table(score, level, status):
    assert determine_similarity_level(score) is level
    assert determine_comparison_status(score) is status


def test_summary_messages():
    assert render_summary_message(
        ComparisonStatus.SUCCESS, SimilarityLevel.EXACT_MATCH, 1.0
    ) == "Perfect match - all data is identical between worksheets"
    assert render_summary_message(
        ComparisonStatus.SUCCESS, SimilarityLevel.NEAR_IDENTICAL, 0.985
    ) == "Near perfect match - 98.5% similarity, excellent data consistency"
    assert render_summary_message(
        ComparisonStatus.SUCCESS, SimilarityLevel.HIGH_SIMILARITY, 0.9
    ) == "Good data consistency - 90.0% similarity, minor differences detected"
    assert render_summary_message(
        ComparisonStatus.WARNING, SimilarityLevel.LOW_SIMILARITY, 0.5
    ) == "Some differences found - 50.0% similarity, review recommended"
    assert render_summary_message(
        ComparisonStatus.ERROR, SimilarityLevel.DIFFERENT, 0.25
    ) == "Significant differences - 25.0% similarity, data may not be consistent"


class TestCompareWorksheets:
    def test_identical_worksheets(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS)
        b = dataset_factory("B", HEADERS, ROWS)
        result = compare_worksheets(a, b)
        assert result.status is ComparisonStatus.SUCCESS
        assert result.similarity_level is SimilarityLevel.EXACT_MATCH
        assert result.similarity_percentage == 1.0
        assert result.matching_rows == 3
        assert result.different_rows == 0
        assert result.headers_match is True
        assert result.matched_headers == HEADERS
        assert result.missing_headers == []
        assert result.extra_headers == []
        assert result.sample_differences == []
        assert result.summary_message.startswith("Perfect match")

    def test_row_order_and_header_case_do_not_matter(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS)
        b = dataset_factory("B", ["city", "name", "id"], [list(reversed(r)) for r in reversed(ROWS)])
        result = compare_worksheets(a, b)
        assert result.similarity_percentage == 1.0
        assert result.status is ComparisonStatus.SUCCESS
        assert [m.target_header for m in result.header_matches] == ["id", "name", "city"]

    def test_swapped_rows_match(self, dataset_factory):
        a = dataset_factory("A", ["ID", "Name"], [["1", "Ann"], ["2", "Bob"]])
        b = dataset_factory("B", ["ID", "Name"], [["2", "Bob"], ["1", "Ann"]])
        result = compare_worksheets(a, b)
        assert result.matching_rows == 2
        assert result.similarity_level is SimilarityLevel.EXACT_MATCH

    def test_near_match_depends_on_row_threshold(self, dataset_factory):
        a = dataset_factory("A", ["ID", "Name"], [["1", "Bob"]])
        b = dataset_factory("B", ["ID", "Name"], [["1", "Robert"]])

        strict = compare_worksheets(a, b, 0.9)
        assert strict.matching_rows == 0
        assert strict.status is ComparisonStatus.ERROR
        assert strict.sample_differences == ["Row 1: No matching row found"]

        loose = compare_worksheets(a, b, 0.6)
        assert loose.matching_rows == 1
        assert loose.status is ComparisonStatus.SUCCESS
        assert loose.sample_differences == ["Row 1 vs Row 1: Name: 'Bob' vs 'Robert'"]

    def test_partial_match_is_warning(self, dataset_factory):
        a = dataset_factory("A", ["ID", "Name"], [["1", "Ann"], ["2", "Zed"]])
        b = dataset_factory("B", ["ID", "Name"], [["1", "Ann"], ["9", "Qqq"]])
        result = compare_worksheets(a, b)
        assert result.similarity_percentage == 0.5
        assert result.similarity_level is SimilarityLevel.LOW_SIMILARITY
        assert result.status is ComparisonStatus.WARNING
        assert result.different_rows == 1
        assert result.summary_message == "Some differences found - 50.0% similarity, review recommended"
        assert result.sample_differences == ["Row 2: No matching row found"]

    def test_header_mismatch_is_error(self, dataset_factory):
        a = dataset_factory("A", ["a", "b", "c", "d", "e"], [["1", "2", "3", "4", "5"]])
        b = dataset_factory("B", ["a", "b", "c", "x", "y"], [["1", "2", "3", "4", "5"]])
        result = compare_worksheets(a, b)
        assert result.headers_match is False
        assert result.status is ComparisonStatus.ERROR
        assert result.similarity_level is SimilarityLevel.DIFFERENT
        assert result.similarity_percentage == 0.0
        assert result.matching_rows == 0
        assert result.different_rows == 1
        assert result.missing_headers == ["d", "e"]
        assert result.extra_headers == ["x", "y"]
        assert result.matched_headers == ["a", "b", "c"]
        assert len(result.header_matches) == 5
        assert result.summary_message == "Header mismatch: 2 missing, 2 extra headers"

    def test_coverage_gate_uses_smaller_header_set(self, dataset_factory):
        a = dataset_factory("A", ["ID", "Name"], [["1", "Ann"]])
        b = dataset_factory("B", ["ID", "Name", "City", "Zip", "Phone"], [["1", "Ann", "", "", ""]])
        result = compare_worksheets(a, b)
        assert result.headers_match is True
        assert result.extra_headers == ["City", "Zip", "Phone"]
        assert result.status is ComparisonStatus.SUCCESS

    def test_empty_source_rows_score_one(self, dataset_factory):
        a = dataset_factory("A", HEADERS, [])
        b = dataset_factory("B", HEADERS, ROWS)
        result = compare_worksheets(a, b)
        assert result.similarity_percentage == 1.0
        assert result.status is ComparisonStatus.SUCCESS
        assert result.total_rows == 3
        assert result.matching_rows == 0
        assert result.different_rows == 3

    def test_extra_target_rows_do_not_lower_similarity(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS[:1])
        b = dataset_factory("B", HEADERS, ROWS)
        result = compare_worksheets(a, b)
        assert result.similarity_percentage == 1.0
        assert result.total_rows == 3
        assert result.different_rows == 2

    def test_custom_thresholds(self, dataset_factory):
        a = dataset_factory("A", ["ID", "Name"], [["1", "Ann"], ["2", "Zed"]])
        b = dataset_factory("B", ["ID", "Name"], [["1", "Ann"], ["9", "Qqq"]])
        lenient = MatchThresholds(high_similarity=0.5, moderate_similarity=0.4, low_similarity=0.3)
        result = compare_worksheets(a, b, thresholds=lenient)
        assert result.status is ComparisonStatus.SUCCESS

    def test_cancel_event_returns_error(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS)
        cancel = threading.Event()
        cancel.set()
        result = compare_worksheets(a, a, cancel_event=cancel)
        assert result.status is ComparisonStatus.ERROR
        assert result.similarity_level is SimilarityLevel.DIFFERENT
        assert result.summary_message == "Comparison failed: comparison cancelled"
        assert result.header_matches == []

    def test_expired_deadline_returns_error(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS)
        result = compare_worksheets(a, a, deadline=time.monotonic() - 1)
        assert result.status is ComparisonStatus.ERROR
        assert result.summary_message == "Comparison failed: comparison deadline exceeded"

    def test_unexpected_fault_never_raises(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS)
        with patch(
            "worksheet_recon.services.comparator.match_rows", side_effect=RuntimeError("boom")
        ):
            result = compare_worksheets(a, a)
        assert result.status is ComparisonStatus.ERROR
        assert result.summary_message == "Comparison failed: boom"
        assert result.total_rows == 3
        assert result.different_rows == 3

    def test_samples_are_bounded(self, dataset_factory):
        a = dataset_factory("A", ["ID"], [[str(i)] for i in range(10)])
        b = dataset_factory("B", ["ID"], [["x"]])
        result = compare_worksheets(a, b)
        assert len(result.sample_differences) == 3
        assert result.sample_differences[0] == "Row 1: No matching row found"


class TestSpecificDifferences:
    def test_identical(self, dataset_factory):
        a = dataset_factory("A", HEADERS, ROWS)
        assert specific_differences(compare_worksheets(a, a)) == ["All data matches exactly"]

    def test_header_mismatch_lists_columns(self, dataset_factory):
        a = dataset_factory("A", ["a", "b", "c", "d", "e"], [["1", "2", "3", "4", "5"]])
        b = dataset_factory("B", ["a", "b", "c", "x", "y"], [["1", "2", "3", "4", "5"]])
        assert specific_differences(compare_worksheets(a, b)) == [
            "Missing columns: d, e",
            "Extra columns: x, y",
            "1 of 1 rows have differences",
        ]

    def test_row_differences_include_samples(self, dataset_factory):
        a = dataset_factory("A", ["ID", "Name"], [["1", "Ann"], ["2", "Zed"]])
        b = dataset_factory("B", ["ID", "Name"], [["1", "Ann"], ["9", "Qqq"]])
        assert specific_differences(compare_worksheets(a, b)) == [
            "1 of 2 rows have differences",
            "Row 2: No matching row found",
        ]

    def test_failed_comparison_without_rows_reports_message(self, dataset_factory):
        a = dataset_factory("A", HEADERS, [])
        with patch(
            "worksheet_recon.services.comparator.match_rows", side_effect=RuntimeError("boom")
        ):
            result = compare_worksheets(a, a)
        assert specific_differences(result) == ["Comparison failed: boom"]


def test_permuted_headers_and_reordered_rows_scenario():
    a = NormalizedDataset(
        "A", ("ID", "Name"), ({"ID": "1", "Name": "Bob"}, {"ID": "2", "Name": "Ann"})
    )
    b = NormalizedDataset(
        "B", ("Name", "ID"), ({"Name": "Ann", "ID": "2"}, {"Name": "Bob", "ID": "1"})
    )
    result = compare_worksheets(a, b)
    assert [m.reason for m in result.header_matches] == [MatchReason.EXACT, MatchReason.EXACT]
    assert result.matching_rows == 2
    assert result.similarity_percentage == 1.0
