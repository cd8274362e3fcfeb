from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

"""Dataset models for worksheet reconciliation.

A NormalizedDataset is one worksheet after the reader has trimmed header cells
and converted every value to a string. Rows are position-stable: the index of
a row is its identity for the lifetime of the dataset instance.
"""

__all__ = [
    "NormalizedDataset",
    "SourceFile",
    "normalize_header_name",
]


def normalize_header_name(header: str) -> str:
    """Canonical form of a header name used for matching and fingerprints.

    Lowercase, spaces/hyphens/periods become underscores, parentheses are
    dropped and leading/trailing underscores trimmed.
    """
    if not header:
        return ""
    normalized = header.lower()
    for ch in (" ", "-", "."):
        normalized = normalized.replace(ch, "_")
    normalized = normalized.replace("(", "").replace(")", "")
    return normalized.strip("_")


@dataclass(frozen=True)
class NormalizedDataset:
    """One named worksheet: ordered headers plus ordered rows of string fields."""

    name: str
    headers: tuple[str, ...]
    rows: tuple[dict[str, str], ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the dataset stays read-only
        object.__setattr__(self, "headers", tuple(self.headers))
        object.__setattr__(self, "rows", tuple(self.rows))
        known = set(self.headers)
        for index, row in enumerate(self.rows):
            unknown = set(row) - known
            if unknown:
                raise ValueError(
                    f"dataset '{self.name}' row {index} has keys outside headers: {sorted(unknown)}"
                )

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def data_hash(self) -> str:
        """MD5 fingerprint of normalized headers and row values (order sensitive)."""
        parts: list[str] = []
        for header in self.headers:
            parts.append(normalize_header_name(header))
            parts.append("|")
        for row in self.rows:
            for header in self.headers:
                parts.append(row.get(header, "").strip())
                parts.append("|")
            parts.append("\n")
        digest = hashlib.md5("".join(parts).encode("utf-8"), usedforsecurity=False)
        return digest.hexdigest()


@dataclass(frozen=True)
class SourceFile:
    """All normalized worksheets read from one original file."""

    file_id: str
    file_name: str
    worksheets: list[NormalizedDataset] = field(default_factory=list)

    def worksheet(self, name: str) -> NormalizedDataset | None:
        """Exact-name lookup; first worksheet wins on duplicates."""
        for dataset in self.worksheets:
            if dataset.name == name:
                return dataset
        return None
