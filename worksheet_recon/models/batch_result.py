from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from .comparison_result import ComparisonStatus
from .error_record import ErrorRecord
from .integrity import FileIntegritySummary, WorksheetComparison

"""Aggregated results of one batch reconciliation run.

Contains everything needed for the SUMMARY line and the JSON report.
"""

__all__ = [
    "BatchResult",
]


@dataclass(frozen=True)
class BatchResult:
    """Outcome of reconcile_batch.

    comparisons keeps request order; skipped requests (resolution failures or
    isolated per-request faults) are absent from it and counted in `skipped`.
    """
    comparisons: list[WorksheetComparison]
    file_summaries: list[FileIntegritySummary]
    requested: int  # number of requests received
    skipped: int  # requests that produced no comparison
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    errors: list[ErrorRecord] = field(default_factory=list)

    @property
    def compared(self) -> int:
        return len(self.comparisons)

    def status_counts(self) -> dict[ComparisonStatus, int]:
        counter = Counter(c.status for c in self.comparisons)
        return {status: counter.get(status, 0) for status in ComparisonStatus}

    @property
    def all_successful(self) -> bool:
        """True when nothing was skipped and every comparison is SUCCESS."""
        return self.skipped == 0 and all(
            c.status is ComparisonStatus.SUCCESS for c in self.comparisons
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "requested": self.requested,
            "compared": self.compared,
            "skipped": self.skipped,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "elapsed_seconds": self.elapsed_seconds,
            "comparisons": [c.to_dict() for c in self.comparisons],
            "file_summaries": [s.to_dict() for s in self.file_summaries],
        }
