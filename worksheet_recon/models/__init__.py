"""Domain models for worksheet reconciliation.

This package contains the value types passed between the matching services,
the batch reconciler and the reporting layer.
"""

from .batch_result import BatchResult
from .comparison_request import DEFAULT_MATCH_THRESHOLD, ComparisonRequest
from .comparison_result import (
    ComparisonResult,
    ComparisonStatus,
    HeaderMatch,
    MatchReason,
    RowOutcome,
    SimilarityLevel,
)
from .config_models import DEFAULT_THRESHOLDS, FileSourceConfig, MatchThresholds, ReconcileConfig
from .dataset import NormalizedDataset, SourceFile
from .error_record import ErrorRecord
from .integrity import FileIntegrityStatus, FileIntegritySummary, WorksheetComparison

__all__ = [
    # Configuration models
    "DEFAULT_THRESHOLDS",
    "FileSourceConfig",
    "MatchThresholds",
    "ReconcileConfig",
    # Input models
    "NormalizedDataset",
    "SourceFile",
    "ComparisonRequest",
    "DEFAULT_MATCH_THRESHOLD",
    # Result models
    "HeaderMatch",
    "MatchReason",
    "RowOutcome",
    "ComparisonResult",
    "ComparisonStatus",
    "SimilarityLevel",
    "WorksheetComparison",
    "FileIntegrityStatus",
    "FileIntegritySummary",
    "BatchResult",
    "ErrorRecord",
]
