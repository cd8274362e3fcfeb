from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Comparison result models.

These are immutable value results created per comparison invocation.
ComparisonResult is the contract handed to reporting consumers; its fields are
exactly the ones listed here.
"""

__all__ = [
    "ComparisonStatus",
    "SimilarityLevel",
    "MatchReason",
    "HeaderMatch",
    "RowOutcome",
    "ComparisonResult",
]


class ComparisonStatus(Enum):
    """Coarse classification used for decisions.

    - SUCCESS: similarity >= 90%
    - WARNING: similarity >= 50%
    - ERROR: below 50%, structural mismatch or failed comparison
    """
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class SimilarityLevel(Enum):
    """Finer classification for reporting granularity."""
    EXACT_MATCH = "exact_match"
    NEAR_IDENTICAL = "near_identical"
    HIGH_SIMILARITY = "high_similarity"
    MODERATE_SIMILARITY = "moderate_similarity"
    LOW_SIMILARITY = "low_similarity"
    DIFFERENT = "different"


class MatchReason(Enum):
    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY = "fuzzy"
    NONE = "none"


@dataclass(frozen=True)
class HeaderMatch:
    """Decision for one source header.

    target_header is None when reason is NONE; confidence then carries the
    best score seen (or 0.0 when there was no candidate at all).
    """
    source_header: str
    target_header: str | None
    confidence: float
    reason: MatchReason

    @property
    def is_match(self) -> bool:
        return self.reason is not MatchReason.NONE

    def to_dict(self) -> dict[str, object]:
        return {
            "source_header": self.source_header,
            "target_header": self.target_header,
            "confidence": self.confidence,
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class RowOutcome:
    """Outcome for one source row; target_row_index None means unmatched."""
    source_row_index: int
    target_row_index: int | None
    similarity: float
    field_differences: tuple[str, ...] = ()

    @property
    def is_match(self) -> bool:
        return self.target_row_index is not None


@dataclass(frozen=True)
class ComparisonResult:
    """Aggregated comparison of one worksheet pair."""
    total_rows: int
    matching_rows: int
    different_rows: int
    headers_match: bool
    missing_headers: list[str]
    extra_headers: list[str]
    matched_headers: list[str]
    header_matches: list[HeaderMatch]
    similarity_percentage: float
    similarity_level: SimilarityLevel
    status: ComparisonStatus
    summary_message: str
    sample_differences: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_rows": self.total_rows,
            "matching_rows": self.matching_rows,
            "different_rows": self.different_rows,
            "headers_match": self.headers_match,
            "missing_headers": list(self.missing_headers),
            "extra_headers": list(self.extra_headers),
            "matched_headers": list(self.matched_headers),
            "header_matches": [m.to_dict() for m in self.header_matches],
            "similarity_percentage": self.similarity_percentage,
            "similarity_level": self.similarity_level.value,
            "status": self.status.value,
            "summary_message": self.summary_message,
            "sample_differences": list(self.sample_differences),
        }
