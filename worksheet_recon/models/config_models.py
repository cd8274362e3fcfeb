from __future__ import annotations

from dataclasses import dataclass, field, fields

from .comparison_request import ComparisonRequest

"""Configuration dataclasses for worksheet reconciliation.

MatchThresholds keeps every tuning constant of the engine in one auditable
place, so the classification table can be tested independently of the
matching logic. ReconcileConfig is the root object produced by
worksheet_recon.config.loader.
"""

__all__ = [
    "MatchThresholds",
    "DEFAULT_THRESHOLDS",
    "FileSourceConfig",
    "ReconcileConfig",
]


@dataclass(frozen=True)
class MatchThresholds:
    """Similarity thresholds and performance bounds.

    Header matching:
        header_exact: confidence for a case-insensitive exact header match
        header_normalized: confidence when normalized header names are equal
        header_fuzzy: floor for fuzzy header matches (and for the mapping)
        header_coverage: share of min(|headers A|, |headers B|) that must match

    Field scoring:
        field_normalized: score for values equal only after normalization

    Worksheet classification (checked in descending order):
        exact_match, near_identical, high_similarity, moderate_similarity,
        low_similarity. SUCCESS starts at high_similarity, WARNING at
        low_similarity.

    Performance bounds:
        max_candidates: candidate rows examined per source row
        index_key_headers: leading mapped headers used by the row index
        difference_sample_size: row samples / field differences kept
    """
    header_exact: float = 1.0
    header_normalized: float = 0.95
    header_fuzzy: float = 0.85
    header_coverage: float = 0.80
    field_normalized: float = 0.95
    exact_match: float = 1.00
    near_identical: float = 0.98
    high_similarity: float = 0.90
    moderate_similarity: float = 0.80
    low_similarity: float = 0.50
    max_candidates: int = 50
    index_key_headers: int = 3
    difference_sample_size: int = 3

    def __post_init__(self) -> None:
        levels = (
            self.exact_match,
            self.near_identical,
            self.high_similarity,
            self.moderate_similarity,
            self.low_similarity,
        )
        if list(levels) != sorted(levels, reverse=True):
            raise ValueError("similarity level thresholds must be in descending order")
        if not self.header_fuzzy <= self.header_normalized <= self.header_exact:
            raise ValueError(
                "header thresholds must satisfy header_fuzzy <= header_normalized <= header_exact"
            )
        if self.max_candidates < 1 or self.index_key_headers < 1:
            raise ValueError("max_candidates and index_key_headers must be positive")

    @classmethod
    def from_mapping(cls, overrides: dict[str, object] | None) -> MatchThresholds:
        """Build thresholds from a partial mapping (unknown keys rejected)."""
        if not overrides:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"unknown threshold keys: {sorted(unknown)}")
        return cls(**overrides)  # type: ignore[arg-type]


DEFAULT_THRESHOLDS = MatchThresholds()


@dataclass(frozen=True)
class FileSourceConfig:
    """One input file: id used by requests, path on disk, display name."""
    file_id: str
    path: str
    name: str | None = None


@dataclass(frozen=True)
class ReconcileConfig:
    """Root configuration object for a reconciliation run."""
    files: list[FileSourceConfig]
    comparisons: list[ComparisonRequest]
    thresholds: MatchThresholds = field(default_factory=MatchThresholds)
    max_workers: int = 1
    timeout_seconds: float | None = None
    data_start_row: int = 3  # 1-based Excel row where data begins (row 2 = filters)
    output: str | None = None
