from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

from ..models.comparison_result import RowOutcome
from ..models.config_models import DEFAULT_THRESHOLDS, MatchThresholds
from .similarity import field_similarity

"""Position-independent row matching.

RowIndex turns the row search from rows_A x rows_B into roughly
rows_A x candidates by indexing the target rows on the values of the first
few mapped headers. RowMatcher assigns target rows greedily in source-row
order; each target row is consumed at most once per comparison.
"""

__all__ = [
    "RowIndex",
    "RowMatcher",
    "row_similarity",
    "row_differences",
    "match_rows",
]

logger = logging.getLogger(__name__)

Row = Mapping[str, str]


def _index_value(value: str | None) -> str:
    return (value or "").strip().lower()


def row_similarity(row_a: Row, row_b: Row, header_mapping: Mapping[str, str],
                   thresholds: MatchThresholds = DEFAULT_THRESHOLDS) -> float:
    """Average field similarity over every mapped header pair.

    Unmapped headers do not take part. An empty mapping scores 0.0.
    """
    if not header_mapping:
        return 0.0
    total = 0.0
    for source_header, target_header in header_mapping.items():
        total += field_similarity(
            row_a.get(source_header, ""), row_b.get(target_header, ""), thresholds
        )
    return total / len(header_mapping)


def row_differences(row_a: Row, row_b: Row, header_mapping: Mapping[str, str],
                    limit: int = 3) -> list[str]:
    """Differences among the first `limit` mapped headers, case-insensitive.

    Formatted as "header: 'v1' vs 'v2'" using the source header name.
    """
    differences: list[str] = []
    for source_header, target_header in list(header_mapping.items())[:limit]:
        value_a = (row_a.get(source_header) or "").strip()
        value_b = (row_b.get(target_header) or "").strip()
        if value_a.lower() != value_b.lower():
            differences.append(f"{source_header}: '{value_a}' vs '{value_b}'")
    return differences


class RowIndex:
    """Inverted lookup "targetHeader:value" -> target row positions.

    Built once per worksheet pair from the target rows. Only the first
    `key_headers` mapped headers (mapping order) are indexed and empty values
    are skipped.
    """

    def __init__(self, rows: Sequence[Row], header_mapping: Mapping[str, str],
                 key_headers: int = DEFAULT_THRESHOLDS.index_key_headers) -> None:
        self.key_pairs: list[tuple[str, str]] = list(header_mapping.items())[:key_headers]
        self._index: dict[str, list[int]] = {}
        for position, row in enumerate(rows):
            for _, target_header in self.key_pairs:
                value = _index_value(row.get(target_header))
                if value:
                    self._index.setdefault(self._key(target_header, value), []).append(position)

    @staticmethod
    def _key(header: str, value: str) -> str:
        return f"{header}:{value}"

    def __len__(self) -> int:
        return len(self._index)

    def lookup(self, header: str, value: str) -> list[int]:
        """Target positions indexed under header for value (trimmed, lowercased)."""
        return self._index.get(self._key(header, _index_value(value)), [])

    def candidates_for(self, source_row: Row) -> list[int]:
        """Positions of target rows sharing a key value with source_row (may repeat)."""
        hits: list[int] = []
        for source_header, target_header in self.key_pairs:
            value = source_row.get(source_header)
            if value:
                hits.extend(self.lookup(target_header, value))
        return hits


class RowMatcher:
    """Finds the best unused target row for each source row.

    The consumed set is owned by the matcher instance; create one matcher per
    worksheet comparison.
    """

    def __init__(self, target_rows: Sequence[Row], header_mapping: Mapping[str, str],
                 match_threshold: float,
                 thresholds: MatchThresholds = DEFAULT_THRESHOLDS) -> None:
        self.target_rows = target_rows
        self.header_mapping = dict(header_mapping)
        self.match_threshold = match_threshold
        self.thresholds = thresholds
        self.index = RowIndex(target_rows, self.header_mapping, thresholds.index_key_headers)
        self.consumed: set[int] = set()

    def candidates(self, source_row: Row) -> list[int]:
        """Index hits not yet consumed, else every unconsumed row; deduplicated and capped."""
        found = [p for p in self.index.candidates_for(source_row) if p not in self.consumed]
        if not found:
            found = [p for p in range(len(self.target_rows)) if p not in self.consumed]
        # dict.fromkeys keeps first-seen order
        return list(dict.fromkeys(found))[: self.thresholds.max_candidates]

    def find_best_match(self, source_row: Row) -> tuple[int, float] | None:
        best: tuple[int, float] | None = None
        for position in self.candidates(source_row):
            score = row_similarity(
                source_row, self.target_rows[position], self.header_mapping, self.thresholds
            )
            if score >= self.match_threshold and (best is None or score > best[1]):
                best = (position, score)
        return best

    def match(self, source_index: int, source_row: Row) -> RowOutcome:
        best = self.find_best_match(source_row)
        if best is None:
            return RowOutcome(source_index, None, 0.0)
        position, score = best
        self.consumed.add(position)
        differences = row_differences(
            source_row,
            self.target_rows[position],
            self.header_mapping,
            self.thresholds.difference_sample_size,
        )
        return RowOutcome(source_index, position, score, tuple(differences))


def match_rows(
    source_rows: Sequence[Row],
    target_rows: Sequence[Row],
    header_mapping: Mapping[str, str],
    match_threshold: float,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
    check_cancelled: Callable[[], None] | None = None,
) -> list[RowOutcome]:
    """Match every source row in order; returns one RowOutcome per source row.

    check_cancelled is invoked once per source row and may raise to abort.
    """
    matcher = RowMatcher(target_rows, header_mapping, match_threshold, thresholds)
    logger.debug(
        "row matching %d vs %d rows, threshold=%.2f, index_keys=%d",
        len(source_rows),
        len(target_rows),
        match_threshold,
        len(matcher.index),
    )
    outcomes: list[RowOutcome] = []
    for source_index, source_row in enumerate(source_rows):
        if check_cancelled is not None:
            check_cancelled()
        outcomes.append(matcher.match(source_index, source_row))
    return outcomes
