from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "DEFAULT_MATCH_THRESHOLD",
    "ComparisonRequest",
]

DEFAULT_MATCH_THRESHOLD = 0.90


@dataclass(frozen=True)
class ComparisonRequest:
    """Identifies two worksheets (by source file id and worksheet name) to compare.

    file1 is the "left" side: results are grouped by file1_id.
    """
    file1_id: str
    file1_worksheet_name: str
    file2_id: str
    file2_worksheet_name: str
    match_threshold: float = DEFAULT_MATCH_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.match_threshold <= 1.0:
            raise ValueError(f"match_threshold must be within [0, 1]: {self.match_threshold}")

    def describe(self) -> str:
        return (
            f"{self.file1_id}[{self.file1_worksheet_name}] vs "
            f"{self.file2_id}[{self.file2_worksheet_name}]"
        )
