from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import UTC, datetime

from ..logging.error_log import ErrorLogBuffer
from ..models.batch_result import BatchResult
from ..models.comparison_request import ComparisonRequest
from ..models.comparison_result import ComparisonResult, ComparisonStatus
from ..models.config_models import DEFAULT_THRESHOLDS, MatchThresholds
from ..models.dataset import NormalizedDataset, SourceFile
from ..models.error_record import (
    COMPUTATION_FAILURE,
    FILE_LEVEL,
    RESOLUTION_FAILURE,
    STRUCTURAL_MISMATCH,
    ErrorRecord,
)
from ..models.integrity import FileIntegritySummary, WorksheetComparison
from .comparator import compare_worksheets, specific_differences
from .progress import ProgressTracker

"""Batch reconciliation across many file/worksheet pairs.

This module coordinates a whole run: resolving each request against the
supplied source files, comparing the resolved worksheet pairs (optionally on
a bounded thread pool), and grouping the results into per-file integrity
summaries.

Failures are isolated per request. A request whose file or worksheet cannot
be resolved is skipped and recorded in the error log; a comparison that fails
internally comes back as an ERROR result. reconcile_batch itself only raises
ReconcileError for invalid arguments.
"""

__all__ = [
    "ReconcileError",
    "ResolutionError",
    "ResolvedRequest",
    "resolve_request",
    "reconcile_batch",
]

logger = logging.getLogger(__name__)


class ReconcileError(Exception):
    """Raised for invalid batch arguments (fatal, nothing was compared)."""


@dataclass(frozen=True)
class ResolvedRequest:
    request: ComparisonRequest
    file1: SourceFile
    worksheet1: NormalizedDataset
    file2: SourceFile
    worksheet2: NormalizedDataset


def _index_files(files: Iterable[SourceFile]) -> dict[str, SourceFile]:
    by_id: dict[str, SourceFile] = {}
    for f in files:
        # first file wins on duplicate ids
        by_id.setdefault(f.file_id, f)
    return by_id


class ResolutionError(Exception):
    """A requested file or worksheet does not exist in the supplied set."""

    def __init__(self, message: str, worksheet: str = FILE_LEVEL) -> None:
        super().__init__(message)
        self.worksheet = worksheet


def resolve_request(
    request: ComparisonRequest, files_by_id: dict[str, SourceFile]
) -> ResolvedRequest:
    """Resolve both sides by file id and exact worksheet name.

    Raises:
        ResolutionError: If either file or either worksheet is missing
    """
    file1 = files_by_id.get(request.file1_id)
    file2 = files_by_id.get(request.file2_id)
    if file1 is None or file2 is None:
        raise ResolutionError(
            f"file not found: file1={request.file1_id} file2={request.file2_id}"
        )

    worksheet1 = file1.worksheet(request.file1_worksheet_name)
    worksheet2 = file2.worksheet(request.file2_worksheet_name)
    if worksheet1 is None or worksheet2 is None:
        raise ResolutionError(
            f"worksheet not found: '{request.file1_worksheet_name}' in {file1.file_name}, "
            f"'{request.file2_worksheet_name}' in {file2.file_name}",
            worksheet=request.file1_worksheet_name,
        )
    return ResolvedRequest(request, file1, worksheet1, file2, worksheet2)


def _compare_resolved(
    resolved: ResolvedRequest,
    thresholds: MatchThresholds,
    cancel_event: threading.Event | None,
    deadline: float | None,
) -> WorksheetComparison:
    logger.info(
        "comparing %s[%s] vs %s[%s]",
        resolved.file1.file_name,
        resolved.worksheet1.name,
        resolved.file2.file_name,
        resolved.worksheet2.name,
    )
    if logger.isEnabledFor(logging.DEBUG):
        fingerprint = resolved.worksheet1.data_hash()
        if fingerprint == resolved.worksheet2.data_hash():
            logger.debug("worksheets are identical exports (md5=%s)", fingerprint)
    result = compare_worksheets(
        resolved.worksheet1,
        resolved.worksheet2,
        resolved.request.match_threshold,
        thresholds,
        cancel_event=cancel_event,
        deadline=deadline,
    )
    return WorksheetComparison(
        source_file_id=resolved.file1.file_id,
        source_file_name=resolved.file1.file_name,
        source_worksheet_name=resolved.worksheet1.name,
        compared_with_file_id=resolved.file2.file_id,
        compared_with_file_name=resolved.file2.file_name,
        compared_with_worksheet_name=resolved.worksheet2.name,
        result=result,
        specific_differences=specific_differences(result),
    )


def _error_type_for(result: ComparisonResult) -> str | None:
    """Error-log classification of a result; None when nothing needs logging.

    Low similarity is a regular outcome. Header matching produces one entry
    per source header, so an ERROR result without header_matches failed
    before or during header matching.
    """
    if result.status is not ComparisonStatus.ERROR or result.headers_match:
        return None
    if result.header_matches:
        return STRUCTURAL_MISMATCH
    return COMPUTATION_FAILURE


def _group_by_source_file(
    requests: Sequence[ComparisonRequest],
    slots: Sequence[WorksheetComparison | None],
    files_by_id: dict[str, SourceFile],
) -> list[FileIntegritySummary]:
    """One summary per distinct left-side file id, in first-request order."""
    grouped: dict[str, list[WorksheetComparison]] = {}
    for request, comparison in zip(requests, slots, strict=True):
        bucket = grouped.setdefault(request.file1_id, [])
        if comparison is not None:
            bucket.append(comparison)

    summaries: list[FileIntegritySummary] = []
    for file_id, comparisons in grouped.items():
        source = files_by_id.get(file_id)
        summary = FileIntegritySummary(
            file_id=file_id,
            file_name=source.file_name if source is not None else file_id,
            comparisons=comparisons,
        )
        logger.info(
            "file %s: %d comparison(s), overall=%s",
            summary.file_name,
            len(comparisons),
            summary.overall_status.value,
        )
        summaries.append(summary)
    return summaries


def reconcile_batch(
    requests: Sequence[ComparisonRequest],
    files: Iterable[SourceFile],
    *,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
    max_workers: int = 1,
    timeout_seconds: float | None = None,
    cancel_event: threading.Event | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> BatchResult:
    """Run every comparison request against the supplied source files.

    Args:
        requests: Comparison requests; output keeps their order
        files: Already-normalized source files (read only)
        thresholds: Matching thresholds shared by all comparisons
        max_workers: Size of the comparison thread pool (1 = sequential)
        timeout_seconds: Overall deadline for the batch; late comparisons
            come back as ERROR results
        cancel_event: Shared cancellation token
        error_log: Buffer receiving skipped/failed request records

    Returns:
        BatchResult with at most len(requests) comparisons

    Raises:
        ReconcileError: If max_workers or timeout_seconds is not positive
    """
    if max_workers < 1:
        raise ReconcileError(f"max_workers must be >= 1: {max_workers}")
    if timeout_seconds is not None and timeout_seconds <= 0:
        raise ReconcileError(f"timeout_seconds must be positive: {timeout_seconds}")

    start_time = datetime.now(UTC)
    deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    files_by_id = _index_files(files)

    logger.info(
        "starting batch: %d request(s) across %d file(s), workers=%d",
        len(requests),
        len(files_by_id),
        max_workers,
    )

    slots: list[WorksheetComparison | None] = [None] * len(requests)
    pending: list[tuple[int, ResolvedRequest]] = []
    unresolved = 0

    with ProgressTracker(len(requests)) as progress:
        for position, request in enumerate(requests):
            try:
                resolved = resolve_request(request, files_by_id)
            except ResolutionError as e:
                logger.warning("skipping %s: %s", request.describe(), e)
                error_log.append(
                    ErrorRecord.create(
                        file=request.file1_id,
                        worksheet=e.worksheet,
                        request=request.describe(),
                        error_type=RESOLUTION_FAILURE,
                        message=str(e),
                    )
                )
                progress.finish_request(request)
                unresolved += 1
                progress.set_postfix(skipped=unresolved)
                continue
            pending.append((position, resolved))

        def run(position: int, resolved: ResolvedRequest) -> None:
            request = resolved.request
            try:
                comparison = _compare_resolved(resolved, thresholds, cancel_event, deadline)
            except Exception as e:
                logger.exception("error comparing worksheets for %s", request.describe())
                error_log.append(
                    ErrorRecord.create(
                        file=request.file1_id,
                        worksheet=request.file1_worksheet_name,
                        request=request.describe(),
                        error_type=COMPUTATION_FAILURE,
                        message=str(e),
                    )
                )
                return
            error_type = _error_type_for(comparison.result)
            if error_type is not None:
                error_log.append(
                    ErrorRecord.create(
                        file=request.file1_id,
                        worksheet=request.file1_worksheet_name,
                        request=request.describe(),
                        error_type=error_type,
                        message=comparison.result.summary_message,
                    )
                )
            slots[position] = comparison

        if max_workers == 1 or len(pending) <= 1:
            for position, resolved in pending:
                run(position, resolved)
                progress.finish_request(resolved.request)
        else:
            # Each comparison owns its consumed sets; slots are written by index only
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = {
                    executor.submit(run, position, resolved): resolved
                    for position, resolved in pending
                }
                for future in as_completed(futures):
                    future.result()
                    progress.finish_request(futures[future].request)

    comparisons = [c for c in slots if c is not None]
    file_summaries = _group_by_source_file(requests, slots, files_by_id)

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    logger.info(
        "batch complete: %d/%d request(s) compared in %.3fs",
        len(comparisons),
        len(requests),
        elapsed_seconds,
    )
    return BatchResult(
        comparisons=comparisons,
        file_summaries=file_summaries,
        requested=len(requests),
        skipped=len(requests) - len(comparisons),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        errors=error_log.records,
    )
