"""
Main reconciliation pipeline - orchestrates the full workflow.

Flow:
  ┌──────────────┐      ┌───────────────┐
  │ Gazette text │      │ Registry rows │
  └──────┬───────┘      └───────┬───────┘
         │                      │
  ┌──────▼──────┐        ┌──────▼──────┐
  │  Extractor  │        │  Resolver   │   ← independent, pure
  └──────┬──────┘        └──────┬──────┘
         └──────────┬───────────┘
             ┌──────▼──────┐
             │   Matcher   │   ← exact / tokens / fuzzy
             └──────┬──────┘
             ┌──────▼──────┐
             │  Decision   │   ← accept / review tiers, run dedupe
             └──────┬──────┘
             ┌──────▼──────┐
             │    Store    │   ← accepted rows only
             └─────────────┘

Design principles:
  - Mode and thresholds are checked before any work starts.
  - Nothing before the store has side effects.
  - The gazette text is SHA-256 hashed for the audit trail.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .decision import check_thresholds, parse_mode, to_match_rows
from .exceptions import InputValidationError
from .extractor import extract
from .fields import build_registry_rows
from .matcher import DEFAULT_TOP_K, match
from .models import (
    CourtSummary,
    MatchCandidate,
    MatchMode,
    MatchThresholds,
    PersistedMatch,
    PersistResult,
    ReconciliationReport,
)
from .store import MatchStore
from .summary import summarize_courts

logger = logging.getLogger(__name__)


class GazetteReconciler:
    """Runs gazette-vs-registry reconciliation and owns the match store.

    Usage:
        reconciler = GazetteReconciler(MatchStore("gazette.db"))
        report = reconciler.run(gazette_text, spreadsheet_rows, mode="fuzzy")
        for candidate in report.review:
            # borderline - needs a human
            print(candidate.gazette.name_of_deceased, candidate.score)
    """

    def __init__(
        self,
        store: MatchStore | None = None,
        thresholds: MatchThresholds | None = None,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.store = store or MatchStore()
        self.thresholds = thresholds or MatchThresholds()
        self.top_k = top_k

    def run(
        self,
        gazette_text: str | None,
        registry_rows: Iterable[Mapping[str, Any]] | None,
        mode: str | MatchMode = MatchMode.TOKENS,
        thresholds: MatchThresholds | None = None,
        persist: bool = True,
    ) -> ReconciliationReport:
        """Execute the full pipeline on one gazette and one registry.

        Args:
            gazette_text: Decoded gazette text.
            registry_rows: Row mappings from the spreadsheet reader.
            mode: "exact", "tokens" or "fuzzy".
            thresholds: Overrides the reconciler's default thresholds.
            persist: Store accepted matches (False for a dry run).

        Returns:
            ReconciliationReport with accepted/review candidates and store counts.
        """
        # ── Step 0: Preconditions (no work done if these fail) ──────
        resolved_mode = parse_mode(mode)
        thresholds = thresholds or self.thresholds
        check_thresholds(thresholds)
        if gazette_text is None:
            raise InputValidationError("Gazette text is required", {"field": "gazette_text"})
        if registry_rows is None:
            raise InputValidationError("Registry rows are required", {"field": "registry_rows"})

        doc_hash = hashlib.sha256(gazette_text.encode("utf-8")).hexdigest()
        raw_rows = list(registry_rows)

        # ── Step 1: Extract notices ─────────────────────────────────
        logger.info("Extracting gazette notices...")
        records = extract(gazette_text)

        # ── Step 2: Resolve registry names ──────────────────────────
        logger.info("Resolving registry names for %d row(s)...", len(raw_rows))
        rows, unresolved = build_registry_rows(raw_rows)

        # ── Step 3: Match + decide ──────────────────────────────────
        result = match(records, rows, resolved_mode, thresholds, top_k=self.top_k)

        # ── Step 4: Persist accepted matches ────────────────────────
        stored = PersistResult()
        if persist and result.accepted:
            stored = self.persist(result.accepted)

        return ReconciliationReport(
            mode=resolved_mode,
            thresholds=thresholds,
            gazette_total=len(records),
            registry_total=len(raw_rows),
            registry_unresolved=unresolved,
            accepted=result.accepted,
            review=result.review,
            inserted_count=stored.inserted_count,
            updated_count=stored.updated_count,
            failed_batches=stored.failed_batches,
            persisted=persist,
            document_hash=doc_hash,
        )

    # ─── Store Operations ────────────────────────────────────────────

    def persist(self, accepted: Iterable[MatchCandidate]) -> PersistResult:
        """Upsert accepted candidates as Approved matches."""
        return self.store.upsert(to_match_rows(accepted))

    def list_matches(self) -> list[PersistedMatch]:
        return self.store.list_matches()

    def clear_matches(self) -> int:
        return self.store.clear()

    # ─── Reporting ───────────────────────────────────────────────────

    def summarize(self, gazette_texts: Iterable[str]) -> list[CourtSummary]:
        """Extract several gazettes and aggregate the notices per court."""
        records = [record for text in gazette_texts for record in extract(text)]
        return summarize_courts(records)
