from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models.comparison_result import HeaderMatch, MatchReason
from ..models.config_models import DEFAULT_THRESHOLDS, MatchThresholds
from ..models.dataset import normalize_header_name
from .similarity import field_similarity

"""Column matching between two worksheets.

Greedy, first-come assignment over the source headers in their original
order: each source header claims the best still-unused target header. This is
not a global optimum; the result is order sensitive by design of the
comparison contract and must stay so for compatibility.
"""

__all__ = [
    "score_header_pair",
    "match_headers",
    "build_header_mapping",
    "headers_compatible",
]

logger = logging.getLogger(__name__)


def score_header_pair(
    source: str, target: str, thresholds: MatchThresholds = DEFAULT_THRESHOLDS
) -> tuple[float, MatchReason]:
    """Score one header pair. Reason is NONE when below the fuzzy floor."""
    if source.lower() == target.lower():
        return thresholds.header_exact, MatchReason.EXACT

    norm_source = normalize_header_name(source)
    norm_target = normalize_header_name(target)
    if norm_source == norm_target:
        return thresholds.header_normalized, MatchReason.NORMALIZED

    score = field_similarity(norm_source, norm_target, thresholds)
    if score >= thresholds.header_fuzzy:
        return score, MatchReason.FUZZY
    return score, MatchReason.NONE


def match_headers(
    headers_a: Sequence[str],
    headers_b: Sequence[str],
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> list[HeaderMatch]:
    """Return one HeaderMatch per header of A, in A's order.

    A target header is consumed by at most one source header. Ties keep the
    first target header examined.
    """
    matches: list[HeaderMatch] = []
    used_targets: set[int] = set()

    for source in headers_a:
        best_index: int | None = None
        best_score = 0.0
        best_reason = MatchReason.NONE
        best_seen = 0.0

        for index, target in enumerate(headers_b):
            if index in used_targets:
                continue
            score, reason = score_header_pair(source, target, thresholds)
            best_seen = max(best_seen, score)
            if reason is MatchReason.NONE:
                continue
            if score > best_score:
                best_index, best_score, best_reason = index, score, reason

        if best_index is None:
            logger.debug("no match found for header '%s' (best=%.2f)", source, best_seen)
            matches.append(HeaderMatch(source, None, best_seen, MatchReason.NONE))
            continue

        used_targets.add(best_index)
        match = HeaderMatch(source, headers_b[best_index], best_score, best_reason)
        logger.debug(
            "header match '%s' -> '%s' (%.2f, %s)",
            source,
            match.target_header,
            best_score,
            best_reason.value,
        )
        matches.append(match)

    logger.debug(
        "header matching complete: %d/%d headers matched",
        sum(1 for m in matches if m.is_match),
        len(headers_a),
    )
    return matches


def build_header_mapping(
    matches: Sequence[HeaderMatch], thresholds: MatchThresholds = DEFAULT_THRESHOLDS
) -> dict[str, str]:
    """source header -> target header for matches at or above the fuzzy floor.

    Insertion order follows the source header order; the row index relies on it.
    """
    return {
        m.source_header: m.target_header
        for m in matches
        if m.target_header is not None and m.confidence >= thresholds.header_fuzzy
    }


def headers_compatible(
    matched_count: int,
    header_count_a: int,
    header_count_b: int,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """True when matched headers cover the required share of the smaller header set."""
    return matched_count >= min(header_count_a, header_count_b) * thresholds.header_coverage
