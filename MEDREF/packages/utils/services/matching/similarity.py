from __future__ import annotations

from rapidfuzz.distance import Levenshtein


# -----------------------------------------------------------------------------
def edit_distance(first: str, second: str) -> int:
    """Unit-cost insertion, deletion and substitution distance."""
    return Levenshtein.distance(first, second)


# -----------------------------------------------------------------------------
def similarity(first: str, second: str) -> float:
    """Normalized edit-distance similarity in [0, 100].

    Scored as ``(max_len - distance) / max_len * 100`` against the longer of
    the two strings. Two empty strings score 100. Thresholds are applied by
    callers, the score itself is never cut short.

    """
    max_length = max(len(first), len(second))
    if max_length == 0:
        return 100.0
    distance = edit_distance(first, second)
    return (max_length - distance) * 100.0 / max_length


__all__ = ["edit_distance", "similarity"]
