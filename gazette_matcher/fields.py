"""
Registry-side field resolution.

Spreadsheets arrive with author-chosen headers ("Name of the Deceased",
"DECEASED'S NAME", "Full Name", ...). We don't guess by trying header strings
ad hoc; instead:
  1. Normalise every header label
  2. Try a fixed, ordered list of known synonyms (first hit wins)
  3. Fall back to the first non-empty column whose label contains "deceased"

A row with no usable name is a miss, not an error: it is simply left out of
matching.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .models import RegistryRow

logger = logging.getLogger(__name__)

# ─── Synonyms (priority order) ───────────────────────────────────────

NAME_COLUMN_SYNONYMS: tuple[str, ...] = (
    "name of the deceased",
    "name of deceased",
    "name deceased",
    "deceased name",
    "deceased s name",
    "name deceased s",
    "full name",
    "fullname",
    "deceased",
    "name",
)

FALLBACK_LABEL_FRAGMENT = "deceased"

_APOSTROPHES = re.compile(r"[\u2018\u2019`\u00b4]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


# ─── Public API ──────────────────────────────────────────────────────


def normalize_label(label: object) -> str:
    """'Deceased’s  Name' → 'deceased s name'."""
    text = _APOSTROPHES.sub("'", str(label).lower())
    return _NON_ALNUM.sub(" ", text).strip()


def resolve_name(row: Mapping[str, Any] | None) -> str:
    """Best-guess decedent name from one tabular row, or "" if none found."""
    if not row:
        return ""

    by_label: dict[str, str] = {}
    for label, value in row.items():
        key = normalize_label(label)
        # First column wins when two headers normalise to the same label.
        if key not in by_label:
            by_label[key] = _cell_text(value)

    for synonym in NAME_COLUMN_SYNONYMS:
        if by_label.get(synonym):
            return by_label[synonym]

    for key, value in by_label.items():
        if FALLBACK_LABEL_FRAGMENT in key and value:
            return value

    return ""


def build_registry_rows(
    rows: Iterable[Mapping[str, Any]],
) -> tuple[list[RegistryRow], int]:
    """Resolve names for every row, dropping rows without one.

    Returns:
        (registry rows, number of rows skipped for lack of a name)
    """
    resolved: list[RegistryRow] = []
    skipped = 0
    for row in rows:
        name = resolve_name(row)
        if not name:
            skipped += 1
            continue
        resolved.append(RegistryRow(name_raw=name, columns=dict(row)))

    if skipped:
        logger.info("%d registry row(s) had no recognisable name column", skipped)
    return resolved, skipped


# ─── Internal Helpers ────────────────────────────────────────────────


def _cell_text(value: Any) -> str:
    """Spreadsheet cells may be str, int, float or blank (None)."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            value = int(value)
    return " ".join(str(value).split())
