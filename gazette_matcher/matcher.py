"""
Candidate indexing and generation across the three match modes.

  exact   index registry by normalize(name)   → O(1) lookup per notice
  tokens  index registry by signature(name)   → O(1), word-order tolerant
  fuzzy   composite Jaro-Winkler/Jaccard score against every plausible row

Fuzzy mode is O(G × E) in the worst case. Two controls keep it bounded:
  - a blocking index on 3-letter token prefixes restricts each notice to
    registry rows sharing at least one prefix (prefilter=True, the default)
  - at most top_k candidates are kept per notice

Names are split on "alias" / "aka" first, so every alias is indexed and
looked up on its own.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence

from .decision import check_thresholds, decide, parse_mode
from .exceptions import InputValidationError
from .models import (
    GazetteRecord,
    MatchCandidate,
    MatchMode,
    MatchResult,
    MatchThresholds,
    RegistryRow,
)
from .normalize import normalize, signature, split_aliases, token_set
from .similarity import composite_score

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
BLOCK_PREFIX_LEN = 3

Index = dict[str, list[RegistryRow]]


# ─── Public API ──────────────────────────────────────────────────────


def match(
    gazette_records: Sequence[GazetteRecord] | None,
    registry_rows: Sequence[RegistryRow] | None,
    mode: str | MatchMode = MatchMode.TOKENS,
    thresholds: MatchThresholds | None = None,
    top_k: int = DEFAULT_TOP_K,
    prefilter: bool = True,
) -> MatchResult:
    """Match gazette notices against registry rows and tier the results.

    Mode, thresholds and inputs are validated before any work is done.

    Returns:
        MatchResult with accepted and review candidates.
    """
    resolved_mode = parse_mode(mode)
    thresholds = thresholds or MatchThresholds()
    check_thresholds(thresholds)
    if gazette_records is None or registry_rows is None:
        raise InputValidationError(
            "Both gazette records and registry rows are required",
            {"gazette_records": gazette_records is not None, "registry_rows": registry_rows is not None},
        )
    if top_k < 1:
        raise InputValidationError(f"top_k must be at least 1, got {top_k}", {"top_k": top_k})

    rows = [r for r in registry_rows if r.name_norm]
    candidates = generate_candidates(
        gazette_records,
        rows,
        resolved_mode,
        floor=thresholds.review,
        top_k=top_k,
        prefilter=prefilter,
    )
    accepted, review = decide(candidates, thresholds)

    return MatchResult(
        mode=resolved_mode,
        thresholds=thresholds,
        accepted=accepted,
        review=review,
        gazette_total=len(gazette_records),
        registry_total=len(registry_rows),
    )


def generate_candidates(
    gazette_records: Iterable[GazetteRecord],
    registry_rows: Sequence[RegistryRow],
    mode: MatchMode,
    floor: float = 0.0,
    top_k: int = DEFAULT_TOP_K,
    prefilter: bool = True,
) -> list[MatchCandidate]:
    """Produce scored candidates in notice order (best first within a notice)."""
    if mode is MatchMode.EXACT:
        exact = build_index(registry_rows, normalize)
        candidates = _indexed_candidates(gazette_records, mode, [(exact, normalize)])
    elif mode is MatchMode.TOKENS:
        exact = build_index(registry_rows, normalize)
        tokens = build_index(registry_rows, signature)
        candidates = _indexed_candidates(
            gazette_records, mode, [(tokens, signature), (exact, normalize)]
        )
    else:
        candidates = _fuzzy_candidates(gazette_records, registry_rows, floor, top_k, prefilter)

    logger.info("Mode %s produced %d candidate pair(s)", mode.value, len(candidates))
    return candidates


def build_index(rows: Iterable[RegistryRow], key_func: Callable[[str], str]) -> Index:
    """Map key_func(alias) → registry rows, for every alias of every row."""
    index: defaultdict[str, list[RegistryRow]] = defaultdict(list)
    for row in rows:
        for key in {key_func(alias) for alias in _aliases(row.name_raw)}:
            if key:
                index[key].append(row)
    return dict(index)


def blocking_keys(name: str) -> set[str]:
    """Coarse keys for fuzzy prefiltering: the first 3 letters of each token."""
    return {token[:BLOCK_PREFIX_LEN] for token in token_set(name)}


# ─── Internal Helpers ────────────────────────────────────────────────


def _aliases(name: str) -> list[str]:
    return split_aliases(name) or [name]


def _indexed_candidates(
    gazette_records: Iterable[GazetteRecord],
    mode: MatchMode,
    lookups: list[tuple[Index, Callable[[str], str]]],
) -> list[MatchCandidate]:
    """Look each notice up in the indices in order; the first index with a hit wins."""
    candidates: list[MatchCandidate] = []
    for record in gazette_records:
        aliases = _aliases(record.name_of_deceased)
        for index, key_func in lookups:
            hits: dict[int, RegistryRow] = {}
            for alias in aliases:
                key = key_func(alias)
                for row in index.get(key, []) if key else []:
                    hits.setdefault(id(row), row)
            if hits:
                candidates.extend(
                    MatchCandidate(gazette=record, registry=row, score=1.0, mode=mode)
                    for row in hits.values()
                )
                break
    return candidates


def _fuzzy_candidates(
    gazette_records: Iterable[GazetteRecord],
    registry_rows: Sequence[RegistryRow],
    floor: float,
    top_k: int,
    prefilter: bool,
) -> list[MatchCandidate]:
    blocks: defaultdict[str, set[int]] = defaultdict(set)
    if prefilter:
        for position, row in enumerate(registry_rows):
            for alias in _aliases(row.name_raw):
                for key in blocking_keys(alias):
                    blocks[key].add(position)

    candidates: list[MatchCandidate] = []
    for record in gazette_records:
        aliases = _aliases(record.name_of_deceased)

        if prefilter:
            positions: set[int] = set()
            for alias in aliases:
                for key in blocking_keys(alias):
                    positions |= blocks.get(key, set())
            pool = [registry_rows[p] for p in sorted(positions)]
        else:
            pool = list(registry_rows)

        scored: list[tuple[float, RegistryRow]] = []
        for row in pool:
            score = max(
                composite_score(a, b) for a in aliases for b in _aliases(row.name_raw)
            )
            if score >= floor:
                scored.append((score, row))

        # Stable sort keeps registry order among equal scores.
        scored.sort(key=lambda pair: pair[0], reverse=True)
        candidates.extend(
            MatchCandidate(gazette=record, registry=row, score=score, mode=MatchMode.FUZZY)
            for score, row in scored[:top_k]
        )

    return candidates
