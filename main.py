#!/usr/bin/env python3
"""
Gazette Matcher - Entry Point
=============================

Reconciles a gazette text file against a registry CSV and prints the result.
With no arguments it runs on a built-in sample gazette and registry.

Usage:
    python main.py                                   # built-in sample, tokens mode
    python main.py fuzzy                             # sample, fuzzy mode
    python main.py fuzzy gazette.txt registry.csv    # your own files
    GAZETTE_DB_PATH=/tmp/g.db python main.py         # choose the match store
"""

from __future__ import annotations

import csv
import logging
import os
import sys
from pathlib import Path

from gazette_matcher.exceptions import GazetteMatchError
from gazette_matcher.models import MatchThresholds
from gazette_matcher.pipeline import GazetteReconciler
from gazette_matcher.store import MatchStore

# ─── Load .env if available (optional dependency) ────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── Sample Gazette Text - Decoded PDF, Messy On Purpose ────────────

SAMPLE_GAZETTE = """\
THE KENYA GAZETTE
Published by Authority of the Republic of Kenya
Vol. CXXVI—No. 45            NAIROBI, 12th March, 2021

GAZETTE NOTICE NO. 2291
IN THE HIGH COURT OF KENYA AT NAIROBI
SUCCESSION CAUSE NO. 123 OF 2020
IN THE MATTER OF THE ESTATE OF JOHN KAMAU MWANGI (DECEASED)
TAKE NOTICE that a petition has been filed in this registry.

SUCCESSION CAUSE NO. E456 OF 2021
BY (1) MARY WANJIKU, the widow, of P.O. Box 12, Thika,
for letters of administration to the estate of Grace Atieno Otieno, late of
Kisumu, who died at Kisumu on 3rd January, 2020.

GAZETTE NOTICE NO. 2292
IN THE CHIEF MAGISTRATE’S COURT AT KIBERA
SUCCESSION CAUSE NO. 789 OF 2021
ESTATE OF THE LATE PETER OCHIENG ODHIAMBO, who died on 1st June, 2019
"""

SAMPLE_REGISTRY = [
    {"No.": 1, "Name of the Deceased": "Kamau Mwangi John", "Station": "Nairobi"},
    {"No.": 2, "Deceased's Name": "Grace Atieno Otieno"},
    {"No.": 3, "Name of the Deceased": "Peter Ochieng Odhiambo"},
    {"No.": 4, "Name of the Deceased": "Peter Ochieng"},
    {"No.": 5, "Remarks": "no name column"},
]


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Input Helpers ───────────────────────────────────────────────────


def _read_registry(path: Path) -> list[dict]:
    """Read a CSV registry into row mappings (header row = column labels).

    Cells beyond the header row are kept as a list under "extra".
    """
    with path.open(encoding="utf-8-sig", newline="") as f:
        return list(csv.DictReader(f, restkey="extra"))


def _thresholds() -> MatchThresholds:
    return MatchThresholds(
        accept=float(os.environ.get("GAZETTE_ACCEPT_THRESHOLD", 0.8)),
        review=float(os.environ.get("GAZETTE_REVIEW_THRESHOLD", 0.5)),
    )


# ─── Pretty Printer ─────────────────────────────────────────────────


def _print_candidates(candidates, color: str, label: str) -> None:
    if not candidates:
        return
    print(f"\n  {color}{_BOLD}{label} ({len(candidates)}){_RESET}")
    for c in candidates:
        g = c.gazette
        print(f"    {color}{g.name_of_deceased}{_RESET}  {_DIM}↔{_RESET}  {c.registry.name_raw}")
        print(f"      {_DIM}{g.court_station} | Cause {g.cause_no or '-'} | score {c.score:.3f}{_RESET}")


def print_report(report) -> int:
    """Pretty-print the reconciliation report.

    Returns:
        0 if the run completed with no failed store batches, 1 otherwise.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  GAZETTE RECONCILIATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Mode:        {report.mode.value}")
    print(f"  Thresholds:  accept >= {report.thresholds.accept}, review >= {report.thresholds.review}")
    print(f"  Audit Hash:  {_DIM}{report.document_hash[:16]}...{_RESET}")
    print(f"  Notices:     {report.gazette_total}")
    print(f"  Registry:    {report.registry_total} row(s), {report.registry_unresolved} without a name")
    print(f"{'─' * _WIDTH}")

    _print_candidates(report.accepted, _GREEN, "ACCEPTED")
    _print_candidates(report.review, _YELLOW, "FOR REVIEW")

    print(f"\n{'=' * _WIDTH}")
    if report.persisted:
        print(f"  Stored: {report.inserted_count} new, {report.updated_count} updated")
    if report.failed_batches:
        print(f"  {_RED}{_BOLD}{len(report.failed_batches)} store batch(es) rolled back{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 1 if report.failed_batches else 0


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run the reconciliation pipeline and print the report."""
    logging.basicConfig(
        level=os.environ.get("GAZETTE_LOG_LEVEL", "WARNING"),
        format="%(levelname)s %(name)s: %(message)s",
    )

    args = sys.argv[1:]
    mode = args[0] if args else "tokens"
    if len(args) >= 3:
        gazette_text = Path(args[1]).read_text(encoding="utf-8")
        registry_rows = _read_registry(Path(args[2]))
    else:
        gazette_text, registry_rows = SAMPLE_GAZETTE, SAMPLE_REGISTRY

    reconciler = GazetteReconciler(MatchStore(), _thresholds())
    try:
        report = reconciler.run(gazette_text, registry_rows, mode=mode)
    except GazetteMatchError as e:
        print(f"{_RED}[{e.code}]{_RESET} {e}", file=sys.stderr)
        sys.exit(2)

    sys.exit(print_report(report))


if __name__ == "__main__":
    main()
