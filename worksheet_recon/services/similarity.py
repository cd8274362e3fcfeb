from __future__ import annotations

from rapidfuzz.distance import Levenshtein

from ..models.config_models import DEFAULT_THRESHOLDS, MatchThresholds

"""Scalar text similarity.

field_similarity scores two cell values in [0, 1]. It is pure and symmetric:
field_similarity(a, b) == field_similarity(b, a) for all inputs.
"""

__all__ = [
    "levenshtein_distance",
    "levenshtein_similarity",
    "normalize_field_value",
    "field_similarity",
]


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with insert/delete/substitute cost 1."""
    if a == b:
        return 0
    return Levenshtein.distance(a, b)


def levenshtein_similarity(a: str, b: str) -> float:
    """1 - distance / max(len(a), len(b)); 1.0 for equal strings."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def normalize_field_value(value: str) -> str:
    """Lowercase, drop carriage returns, collapse tab/newline/space runs."""
    if not value:
        return ""
    return " ".join(value.lower().replace("\r", "").split())


def field_similarity(a: str, b: str, thresholds: MatchThresholds = DEFAULT_THRESHOLDS) -> float:
    """Similarity between two scalar values.

    - both empty after trimming -> 1.0
    - exactly one empty -> 0.0
    - case-insensitive equal -> 1.0
    - equal after normalization -> thresholds.field_normalized (0.95)
    - otherwise Levenshtein similarity of the normalized values
    """
    a = (a or "").strip()
    b = (b or "").strip()
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a.lower() == b.lower():
        return 1.0

    norm_a = normalize_field_value(a)
    norm_b = normalize_field_value(b)
    if norm_a == norm_b:
        return thresholds.field_normalized
    return levenshtein_similarity(norm_a, norm_b)
