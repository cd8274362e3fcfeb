from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .comparison_result import ComparisonResult, ComparisonStatus, SimilarityLevel

"""File-level integrity models.

A WorksheetComparison is one resolved request together with its
ComparisonResult. FileIntegritySummary groups every comparison whose left side
came from the same original file and classifies the group as a whole.
"""

__all__ = [
    "FileIntegrityStatus",
    "WorksheetComparison",
    "FileIntegritySummary",
]


class FileIntegrityStatus(Enum):
    """Overall status of one source file across its comparisons.

    - EXCELLENT_MATCH: all comparisons SUCCESS and at least one EXACT_MATCH
    - GOOD_MATCH: all comparisons SUCCESS, none EXACT_MATCH
    - HAS_DIFFERENCES: some but not all comparisons SUCCESS
    - POOR_MATCH: no comparison reached SUCCESS
    - NO_COMPARISON: no request for this file could be resolved
    """
    EXCELLENT_MATCH = "excellent_match"
    GOOD_MATCH = "good_match"
    HAS_DIFFERENCES = "has_differences"
    POOR_MATCH = "poor_match"
    NO_COMPARISON = "no_comparison"


@dataclass(frozen=True)
class WorksheetComparison:
    source_file_id: str
    source_file_name: str
    source_worksheet_name: str
    compared_with_file_id: str
    compared_with_file_name: str
    compared_with_worksheet_name: str
    result: ComparisonResult
    specific_differences: list[str] = field(default_factory=list)

    @property
    def status(self) -> ComparisonStatus:
        return self.result.status

    @property
    def similarity_level(self) -> SimilarityLevel:
        return self.result.similarity_level

    @property
    def similarity_score(self) -> float:
        return self.result.similarity_percentage

    def to_dict(self) -> dict[str, object]:
        return {
            "source_file_id": self.source_file_id,
            "source_file_name": self.source_file_name,
            "source_worksheet_name": self.source_worksheet_name,
            "compared_with_file_id": self.compared_with_file_id,
            "compared_with_file_name": self.compared_with_file_name,
            "compared_with_worksheet_name": self.compared_with_worksheet_name,
            "similarity_score": self.similarity_score,
            "similarity_level": self.similarity_level.value,
            "status": self.status.value,
            "specific_differences": list(self.specific_differences),
            "detailed_comparison": self.result.to_dict(),
        }


def _derive_overall_status(comparisons: list[WorksheetComparison]) -> FileIntegrityStatus:
    if not comparisons:
        return FileIntegrityStatus.NO_COMPARISON
    successes = [c for c in comparisons if c.status is ComparisonStatus.SUCCESS]
    if not successes:
        return FileIntegrityStatus.POOR_MATCH
    if len(successes) < len(comparisons):
        return FileIntegrityStatus.HAS_DIFFERENCES
    if any(c.similarity_level is SimilarityLevel.EXACT_MATCH for c in comparisons):
        return FileIntegrityStatus.EXCELLENT_MATCH
    return FileIntegrityStatus.GOOD_MATCH


@dataclass(frozen=True)
class FileIntegritySummary:
    file_id: str
    file_name: str
    comparisons: list[WorksheetComparison] = field(default_factory=list)

    @property
    def overall_status(self) -> FileIntegrityStatus:
        return _derive_overall_status(self.comparisons)

    def to_dict(self) -> dict[str, object]:
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "overall_status": self.overall_status.value,
            "comparisons": [c.to_dict() for c in self.comparisons],
        }
