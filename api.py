"""
Gazette Matcher - FastAPI Server
================================

JSON API over the reconciliation core. Callers send already-decoded gazette
text and already-read spreadsheet rows; PDF/Excel decoding and report files
live elsewhere.

Endpoints:
    POST /extract          Extract estate notices (+ per-court summary)
    POST /match            Reconcile gazette text against registry rows
    GET  /matches          Stored matches (one per notice)
    POST /clear-records    Delete all stored matches
    GET  /health           Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from gazette_matcher import __version__
from gazette_matcher.exceptions import GazetteMatchError, StoreUnavailable
from gazette_matcher.extractor import extract
from gazette_matcher.models import (
    CourtSummary,
    GazetteRecord,
    MatchMode,
    MatchThresholds,
    PersistedMatch,
    ReconciliationReport,
)
from gazette_matcher.pipeline import GazetteReconciler
from gazette_matcher.store import MatchStore
from gazette_matcher.summary import summarize_courts

# ─── Load .env if available ──────────────────────────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass

logging.basicConfig(
    level=os.environ.get("GAZETTE_LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# ─── Application Lifespan ───────────────────────────────────────────

_reconciler: GazetteReconciler | None = None


def _default_thresholds() -> MatchThresholds:
    return MatchThresholds(
        accept=float(os.environ.get("GAZETTE_ACCEPT_THRESHOLD", 0.8)),
        review=float(os.environ.get("GAZETTE_REVIEW_THRESHOLD", 0.5)),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the reconciler (store path + default thresholds) on startup."""
    global _reconciler  # noqa: PLW0603
    _reconciler = GazetteReconciler(MatchStore(), _default_thresholds())
    yield
    _reconciler = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Gazette Matcher API",
    description=(
        "Reconcile Kenya Gazette estate notices against a registry of deceased "
        "persons. Deterministic extraction, exact / token / fuzzy name matching "
        "with accept and review tiers, and a deduplicating match store."
    ),
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(GazetteMatchError)
async def _gazette_error_handler(request: Request, exc: GazetteMatchError) -> JSONResponse:
    status = 503 if isinstance(exc, StoreUnavailable) else 422
    return JSONResponse(
        status_code=status,
        content={"code": exc.code, "detail": str(exc), "details": exc.details},
    )


# ─── Request / Response Schemas ─────────────────────────────────────


class ExtractRequest(BaseModel):
    """Request body for the /extract endpoint."""

    text: str = Field(..., description="Decoded gazette text.")


class ExtractResponse(BaseModel):
    count: int
    records: list[GazetteRecord]
    courts: list[CourtSummary]


class MatchRequest(BaseModel):
    """Request body for the /match endpoint."""

    text: str = Field(..., description="Decoded gazette text.")
    rows: list[dict[str, Any]] = Field(
        ..., description="Registry rows as column-label → value mappings."
    )
    mode: str = Field(MatchMode.TOKENS.value, description="exact | tokens | fuzzy")
    accept_threshold: Optional[float] = None
    review_threshold: Optional[float] = None
    persist: bool = True

    model_config = {"json_schema_extra": {"example": {
        "text": (
            "Vol. CXXVI-No. 45\n"
            "NAIROBI, 12th March, 2021\n"
            "IN THE HIGH COURT OF KENYA AT NAIROBI\n"
            "SUCCESSION CAUSE NO. 123 OF 2020\n"
            "IN THE MATTER OF THE ESTATE OF JOHN KAMAU (DECEASED)"
        ),
        "rows": [{"Name of the Deceased": "John Kamau", "ID No.": "1234567"}],
        "mode": "tokens",
    }}}


class MatchesResponse(BaseModel):
    count: int
    rows: list[PersistedMatch]


class ClearResponse(BaseModel):
    success: bool
    deleted: int


class HealthResponse(BaseModel):
    status: str
    version: str
    db_path: str
    stored_matches: int


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_reconciler() -> GazetteReconciler:
    if _reconciler is None:
        raise HTTPException(status_code=503, detail="Reconciler not initialised")
    return _reconciler


def _thresholds_for(request: MatchRequest, reconciler: GazetteReconciler) -> MatchThresholds:
    defaults = reconciler.thresholds
    return MatchThresholds(
        accept=defaults.accept if request.accept_threshold is None else request.accept_threshold,
        review=defaults.review if request.review_threshold is None else request.review_threshold,
    )


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post("/extract", summary="Extract estate notices from gazette text", tags=["Extraction"])
def extract_notices(request: ExtractRequest) -> ExtractResponse:
    records = extract(request.text)
    return ExtractResponse(
        count=len(records),
        records=records,
        courts=summarize_courts(records),
    )


@app.post(
    "/match",
    summary="Reconcile gazette text against registry rows",
    tags=["Matching"],
    responses={
        422: {"description": "Unknown mode or invalid thresholds"},
        503: {"description": "Match store unavailable"},
    },
)
async def match_registry(request: MatchRequest) -> ReconciliationReport:
    """Run extract → resolve → match → decide → persist.

    Returns accepted matches (stored as Approved unless `persist` is false)
    and review-tier matches for manual checking.
    """
    reconciler = _get_reconciler()
    thresholds = _thresholds_for(request, reconciler)
    return await asyncio.to_thread(
        reconciler.run,
        request.text,
        request.rows,
        request.mode,
        thresholds,
        request.persist,
    )


@app.get("/matches", summary="Stored matches", tags=["Store"])
def list_matches() -> MatchesResponse:
    rows = _get_reconciler().list_matches()
    return MatchesResponse(count=len(rows), rows=rows)


@app.post("/clear-records", summary="Delete all stored matches", tags=["Store"])
def clear_records() -> ClearResponse:
    deleted = _get_reconciler().clear_matches()
    return ClearResponse(success=True, deleted=deleted)


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Reconciler or store not available"}},
)
def health_check() -> HealthResponse:
    """Returns service status and store info."""
    reconciler = _get_reconciler()
    return HealthResponse(
        status="healthy",
        version=__version__,
        db_path=str(reconciler.store.db_path),
        stored_matches=reconciler.store.count(),
    )
