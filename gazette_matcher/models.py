"""
Pydantic models for gazette reconciliation.

Extraction and matching types are ephemeral (built per run, never mutated).
Only MatchRow / PersistedMatch cross the persistence boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .normalize import normalize, signature
from .similarity import round_score


# ─── Enumerations ───────────────────────────────────────────────────


class MatchMode(str, Enum):
    """Name-matching strategy chosen by the caller."""

    EXACT = "exact"  # normalized string equality
    TOKENS = "tokens"  # order-insensitive token signature
    FUZZY = "fuzzy"  # Jaro-Winkler + Jaccard composite score


class MatchTier(str, Enum):
    """Confidence band assigned by the decision engine."""

    ACCEPT = "accept"
    REVIEW = "review"


class MatchStatus(str, Enum):
    """Status at Government Printer. Only ever escalates Published → Approved."""

    PUBLISHED = "Published"
    APPROVED = "Approved"


# ─── Extraction Models ──────────────────────────────────────────────


class GazetteRecord(BaseModel):
    """One estate notice pulled out of gazette text."""

    model_config = ConfigDict(frozen=True)

    court_station: str = ""
    cause_no: str = ""
    name_of_deceased: str
    volume_no: str = ""
    date_published: str = ""
    status_at_gp: MatchStatus = MatchStatus.PUBLISHED

    @property
    def name_norm(self) -> str:
        return normalize(self.name_of_deceased)

    @property
    def name_tokens(self) -> str:
        return signature(self.name_of_deceased)


class RegistryRow(BaseModel):
    """One spreadsheet row with its decedent name resolved.

    The original columns are kept untouched so callers can echo them back.
    """

    model_config = ConfigDict(frozen=True)

    name_raw: str
    columns: dict[str, Any] = Field(default_factory=dict)

    @property
    def name_norm(self) -> str:
        return normalize(self.name_raw)

    @property
    def name_tokens(self) -> str:
        return signature(self.name_raw)


# ─── Matching Models ────────────────────────────────────────────────


class MatchThresholds(BaseModel):
    """Accept / review cut-offs. Range and ordering are checked by the decision engine."""

    accept: float = 0.8
    review: float = 0.5


class MatchCandidate(BaseModel):
    """A scored (gazette record, registry row) pair."""

    gazette: GazetteRecord
    registry: RegistryRow
    score: float = Field(ge=0.0, le=1.0)
    mode: MatchMode
    tier: Optional[MatchTier] = None

    @field_serializer("score")
    def _report_score(self, score: float) -> float:
        return round_score(score)


class MatchResult(BaseModel):
    """Output of one matching run: accepted rows go to the store, review rows to a human."""

    mode: MatchMode
    thresholds: MatchThresholds
    accepted: list[MatchCandidate] = Field(default_factory=list)
    review: list[MatchCandidate] = Field(default_factory=list)
    gazette_total: int = 0
    registry_total: int = 0


# ─── Persistence Models ─────────────────────────────────────────────


class MatchRow(BaseModel):
    """A row handed to the store for upsert."""

    court_station: str = ""
    cause_no: str = ""
    name_norm: str
    name_of_deceased: str
    status_at_gp: MatchStatus = MatchStatus.PUBLISHED
    volume_no: str = ""
    date_published: str = ""
    score: float = 0.0
    excel_name: Optional[str] = None
    match_type: Optional[str] = None


class PersistedMatch(MatchRow):
    """A row as stored, unique per (court_station, cause_no, name_norm, date_published, volume_no)."""

    id: int
    duplicate: bool = False
    created_at: str = ""
    updated_at: str = ""


class PersistResult(BaseModel):
    """Outcome of an upsert call. Failed batches were rolled back, not retried."""

    inserted_count: int = 0
    updated_count: int = 0
    failed_batches: list[int] = Field(default_factory=list)


# ─── Reporting Models ───────────────────────────────────────────────


class CourtSummary(BaseModel):
    """Per-court aggregate over extracted notices."""

    court: str
    total_cases: int
    dates: list[str] = Field(default_factory=list)
    volumes: list[str] = Field(default_factory=list)
    date_range: str = "N/A"


class ReconciliationReport(BaseModel):
    """The final output of the reconciliation pipeline."""

    mode: MatchMode
    thresholds: MatchThresholds
    gazette_total: int
    registry_total: int
    registry_unresolved: int = 0
    accepted: list[MatchCandidate] = Field(default_factory=list)
    review: list[MatchCandidate] = Field(default_factory=list)
    inserted_count: int = 0
    updated_count: int = 0
    failed_batches: list[int] = Field(default_factory=list)
    persisted: bool = False
    document_hash: str = ""  # SHA-256 of the gazette text for audit trail
