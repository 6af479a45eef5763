"""
Match decision engine - turns scored candidates into accept / review tiers.

    score >= accept  → ACCEPT  (persisted as "Approved")
    score >= review  → REVIEW  (returned for manual disposition, never stored)
    otherwise        → discarded

Within one run a gazette notice is reported once: candidates are deduplicated
on (name_norm, date_published, volume_no) and the first occurrence wins.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

from .exceptions import InputValidationError, UnknownModeError
from .models import (
    MatchCandidate,
    MatchMode,
    MatchRow,
    MatchStatus,
    MatchThresholds,
    MatchTier,
)
from .similarity import round_score

logger = logging.getLogger(__name__)


# ─── Preconditions ───────────────────────────────────────────────────


def parse_mode(mode: str | MatchMode | None) -> MatchMode:
    """Resolve a caller-supplied mode string. Raises UnknownModeError."""
    if isinstance(mode, MatchMode):
        return mode
    if mode is None:
        raise InputValidationError("Match mode is required", {"field": "mode"})
    try:
        return MatchMode(str(mode).strip().lower())
    except ValueError:
        raise UnknownModeError(
            f"Unknown match mode '{mode}'. Expected one of: "
            f"{', '.join(m.value for m in MatchMode)}.",
            {"mode": str(mode)},
        ) from None


def check_thresholds(thresholds: MatchThresholds) -> None:
    """Both thresholds in [0, 1] and review <= accept. Raises InputValidationError."""
    for name in ("accept", "review"):
        value = getattr(thresholds, name)
        if math.isnan(value) or not 0.0 <= value <= 1.0:
            raise InputValidationError(
                f"{name.capitalize()} threshold {value} is outside [0, 1]",
                {"field": f"{name}_threshold", "value": value},
            )
    if thresholds.review > thresholds.accept:
        raise InputValidationError(
            f"Review threshold {thresholds.review} exceeds accept threshold "
            f"{thresholds.accept}",
            {"accept_threshold": thresholds.accept, "review_threshold": thresholds.review},
        )


# ─── Decision ────────────────────────────────────────────────────────


def decide(
    candidates: Iterable[MatchCandidate],
    thresholds: MatchThresholds | None = None,
) -> tuple[list[MatchCandidate], list[MatchCandidate]]:
    """Split candidates into (accepted, review), deduplicating within the run."""
    thresholds = thresholds or MatchThresholds()
    check_thresholds(thresholds)

    accepted: list[MatchCandidate] = []
    review: list[MatchCandidate] = []
    seen: set[tuple[str, str, str]] = set()

    for candidate in candidates:
        if candidate.score >= thresholds.accept:
            tier = MatchTier.ACCEPT
        elif candidate.score >= thresholds.review:
            tier = MatchTier.REVIEW
        else:
            continue

        key = dedupe_key(candidate)
        if key in seen:
            continue
        seen.add(key)

        tiered = candidate.model_copy(update={"tier": tier})
        (accepted if tier is MatchTier.ACCEPT else review).append(tiered)

    logger.info("Decision: %d accepted, %d for review", len(accepted), len(review))
    return accepted, review


def dedupe_key(candidate: MatchCandidate) -> tuple[str, str, str]:
    g = candidate.gazette
    return (g.name_norm, g.date_published.strip(), g.volume_no.strip())


def to_match_rows(accepted: Iterable[MatchCandidate]) -> list[MatchRow]:
    """Build store rows from accepted candidates (status escalates to Approved)."""
    return [
        MatchRow(
            court_station=c.gazette.court_station,
            cause_no=c.gazette.cause_no,
            name_norm=c.gazette.name_norm,
            name_of_deceased=c.gazette.name_of_deceased,
            status_at_gp=MatchStatus.APPROVED,
            volume_no=c.gazette.volume_no,
            date_published=c.gazette.date_published,
            score=round_score(c.score),
            excel_name=c.registry.name_raw,
            match_type=c.mode.value,
        )
        for c in accepted
    ]
