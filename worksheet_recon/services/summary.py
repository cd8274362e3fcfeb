from __future__ import annotations

from ..models.batch_result import BatchResult
from ..models.comparison_result import ComparisonStatus

"""SUMMARY line rendering for batch reconciliation runs."""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # Avoid scientific notation for very small numbers
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a BatchResult.

    Format:
    SUMMARY requests={n} compared={n} skipped={n} success={n} warning={n}
    error={n} files={n} elapsed_sec={s}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = BatchResult(
        ...     comparisons=[], file_summaries=[], requested=1, skipped=1,
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY requests=1 compared=0 skipped=1 success=0 warning=0 error=0 files=0 elapsed_sec=2'
    """
    counts = result.status_counts()
    return (
        f"SUMMARY requests={result.requested} "
        f"compared={result.compared} "
        f"skipped={result.skipped} "
        f"success={counts[ComparisonStatus.SUCCESS]} "
        f"warning={counts[ComparisonStatus.WARNING]} "
        f"error={counts[ComparisonStatus.ERROR]} "
        f"files={len(result.file_summaries)} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
