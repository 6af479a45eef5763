"""
String similarity for fuzzy name matching.

    composite = 0.7 * JaroWinkler(normalized names) + 0.3 * Jaccard(canonical tokens)

Scores are compared against thresholds unrounded; round_score() is for
reporting and storage only.
"""

from __future__ import annotations

from collections.abc import Iterable

from .normalize import normalize, token_set

# ─── Weights ─────────────────────────────────────────────────────────

JARO_WINKLER_WEIGHT = 0.7
JACCARD_WEIGHT = 0.3

PREFIX_SCALE = 0.1  # standard Winkler scaling factor
MAX_PREFIX = 4

SCORE_PLACES = 4


# ─── Public API ──────────────────────────────────────────────────────


def jaro_winkler(s1: str, s2: str) -> float:
    """Jaro-Winkler similarity in [0, 1].

    Two empty strings are identical (1.0); exactly one empty string scores 0.0.
    """
    if not s1 and not s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0

    jaro = _jaro(s1, s2)
    prefix = 0
    for a, b in zip(s1[:MAX_PREFIX], s2[:MAX_PREFIX]):
        if a != b:
            break
        prefix += 1

    return jaro + prefix * PREFIX_SCALE * (1.0 - jaro)


def jaccard(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """|A ∩ B| / |A ∪ B| over token sets (duplicates collapse, blanks ignored)."""
    set_a = {t for t in tokens_a if t}
    set_b = {t for t in tokens_b if t}
    union = len(set_a | set_b) or 1
    return len(set_a & set_b) / union


def composite_score(name_a: str, name_b: str) -> float:
    """Weighted blend used by fuzzy mode, capped at 1. Not rounded."""
    jw = jaro_winkler(normalize(name_a), normalize(name_b))
    jc = jaccard(token_set(name_a), token_set(name_b))
    return min(1.0, JARO_WINKLER_WEIGHT * jw + JACCARD_WEIGHT * jc)


def round_score(score: float) -> float:
    """Score as reported and stored: 4 decimal places."""
    return round(score, SCORE_PLACES)


# ─── Internal Helpers ────────────────────────────────────────────────


def _jaro(s1: str, s2: str) -> float:
    """Plain Jaro similarity for two non-empty strings."""
    window = max(0, max(len(s1), len(s2)) // 2 - 1)
    s1_flags = [False] * len(s1)
    s2_flags = [False] * len(s2)

    matches = 0
    for i, ch in enumerate(s1):
        lo = max(0, i - window)
        hi = min(i + window + 1, len(s2))
        for j in range(lo, hi):
            if not s2_flags[j] and s2[j] == ch:
                s1_flags[i] = s2_flags[j] = True
                matches += 1
                break

    if matches == 0:
        return 0.0

    s1_matched = [ch for ch, hit in zip(s1, s1_flags) if hit]
    s2_matched = [ch for ch, hit in zip(s2, s2_flags) if hit]
    transpositions = sum(a != b for a, b in zip(s1_matched, s2_matched)) / 2

    return (
        matches / len(s1)
        + matches / len(s2)
        + (matches - transpositions) / matches
    ) / 3
