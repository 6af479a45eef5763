"""
Deterministic extraction of estate notices from decoded gazette text.

One forward pass over the lines, no AI and no guessing. Layout in scanned or
PDF-decoded gazettes is inconsistent, so every pattern is tolerant of spacing,
case and dash/apostrophe variants, and a notice that cannot be read cleanly is
skipped rather than half-parsed.

Passes:
  1. Header   - volume marker and publication date (global to the document)
  2. Body     - court headings, cause numbers, "ESTATE OF" blocks
  3. Fallback - only when the body pass found nothing: whole-text search for
                "estate of <NAME>", then "<NAME> deceased"

It's better to extract nothing than to extract wrong data. The extractor
never raises on malformed text; it just returns fewer records.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .models import GazetteRecord
from .normalize import signature

logger = logging.getLogger(__name__)


# ─── Scan Limits ─────────────────────────────────────────────────────

HEADER_SCAN_LIMIT = 1000  # lines searched for volume / date
DATE_WINDOW = 5  # lines either side of the volume marker
CAUSE_LOOKAHEAD = 5  # lines after a cause number searched for "ESTATE OF"
ESTATE_BLOCK_EXTRA = 2  # lines joined after the "ESTATE OF" line

UNKNOWN_COURT = "Unknown Court"


# ─── Patterns ────────────────────────────────────────────────────────

_MONTHS = (
    "January|February|March|April|May|June|July|"
    "August|September|October|November|December"
)

_DASHES = re.compile(r"[\u2010-\u2015\u2212]")
_APOSTROPHES = re.compile(r"[\u2018\u2019`]")

_VOLUME = re.compile(r"\bVol\.?\s*([A-Z0-9]+)\s*-+\s*No\.?\s*(\d+)", re.IGNORECASE)
_DATE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTHS})\s*,?\s+(\d{{4}})\b",
    re.IGNORECASE,
)

_COURT = re.compile(
    r"\bIN\s+THE\s+(HIGH\s+COURT|(?:CHIEF\s+)?MAGISTRATE'?S?'?\s+COURT)"
    r"\s+(?:OF\s+KENYA\s+)?AT\s+([A-Z][A-Z\s-]*)",
    re.IGNORECASE,
)
_CAUSE = re.compile(
    r"\bCAUSE\s+NO\.?\s*"
    r"([A-Z-]*\s*\d+(?:\s*OF\s*)?\s*\d{4}|[A-Z0-9]+/\d{4}|[A-Z0-9-]+)",
    re.IGNORECASE,
)
_ESTATE_OF = re.compile(r"ESTATE\s+OF", re.IGNORECASE)
# Heading text that sometimes runs on after the court location.
_LOCATION_STOP = re.compile(r"\b(?:SUCCESSION|CAUSE|PROBATE|MISC\w*)\b", re.IGNORECASE)

# Name clean-up, applied in order.
_ESTATE_PREFIX = re.compile(r"^.*?ESTATE\s+OF\s*", re.IGNORECASE)
_DECEASED = re.compile(r"\(?\s*\bDECEASED\b\s*\)?", re.IGNORECASE)
_THE_LATE = re.compile(r"\b(?:THE|LATE)\b", re.IGNORECASE)
_WHO_DIED = re.compile(r"\bwho\s+died\b", re.IGNORECASE)
_HEREIN = re.compile(r",?\s*\b(?:herein|hereinafter)\b.*$", re.IGNORECASE)
_TRAILING_PLACE = re.compile(r"\bof\s+[A-Z][A-Z\s]*$", re.IGNORECASE)

# Fallback patterns run over the whole text flattened to one line.
_FALLBACK_ESTATE = re.compile(
    r"\b(?:in\s+the\s+|the\s+)?estate\s+of\s+"
    r"([A-Z][A-Z ,.'()/&0-9-]{1,120}?)(?=[.,;:]|\s+who\b|$)",
    re.IGNORECASE,
)
# Upper- or Title-case words; a lower-case word ends the name.
_FALLBACK_DECEASED = re.compile(
    r"\b([A-Z][A-Za-z.'-]*(?:\s+[A-Z][A-Za-z.'-]*){1,5})\s+\(?(?i:deceased)\b"
)


# ─── Public API ──────────────────────────────────────────────────────


def extract(text: str | None) -> list[GazetteRecord]:
    """Extract estate notices from decoded gazette text.

    Args:
        text: Document text as produced by the PDF/text decoder. May be empty
            or garbled.

    Returns:
        GazetteRecord list in document order. Empty when nothing recognisable
        was found (not an error).
    """
    lines = split_lines(text)
    if not lines:
        logger.info("Gazette text is empty - nothing to extract")
        return []

    volume_no, date_published = read_header(lines)

    records = _body_pass(lines, volume_no, date_published)
    if not records:
        logger.info("No court/cause notices found - trying whole-text fallback")
        records = _fallback_pass(" ".join(lines), volume_no, date_published)

    logger.info(
        "Extracted %d gazette record(s) (volume=%r, date=%r)",
        len(records),
        volume_no,
        date_published,
    )
    return records


def split_lines(text: str | None) -> list[str]:
    """Normalise line breaks, tabs, dashes and apostrophes; keep non-empty trimmed lines."""
    if not text:
        return []
    text = str(text).replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    text = _DASHES.sub("-", text)
    text = _APOSTROPHES.sub("'", text)
    lines = (" ".join(line.split()) for line in text.split("\n"))
    return [line for line in lines if line]


def read_header(lines: list[str]) -> tuple[str, str]:
    """Find the volume marker and publication date in the first lines.

    The date is looked for near the volume marker first (the masthead), then
    anywhere in the header.

    Returns:
        (volume_no, date_published); either may be "".
    """
    header = lines[:HEADER_SCAN_LIMIT]

    volume_no = ""
    volume_at: int | None = None
    for idx, line in enumerate(header):
        match = _VOLUME.search(line)
        if match:
            volume_no = f"Vol. {match.group(1).upper()} - No. {match.group(2)}"
            volume_at = idx
            break

    date_published = ""
    if volume_at is not None:
        window = header[max(0, volume_at - DATE_WINDOW): volume_at + DATE_WINDOW + 1]
        date_published = _find_date(window)
    if not date_published:
        date_published = _find_date(header)

    return volume_no, date_published


# ─── Body Pass ───────────────────────────────────────────────────────


def _body_pass(lines: list[str], volume_no: str, date_published: str) -> list[GazetteRecord]:
    records: list[GazetteRecord] = []
    station = ""

    for i, line in enumerate(lines):
        court = _COURT.search(line)
        if court:
            station = _station_name(court)

        # A heading may carry its cause number on the same line.
        cause = _CAUSE.search(line)
        if not cause:
            continue

        cause_no = " ".join(cause.group(1).split()).upper()
        block = _estate_block(lines, i)
        if not block:
            logger.debug("Cause %s has no estate notice within %d lines", cause_no, CAUSE_LOOKAHEAD)
            continue

        name = _clean_name(_ESTATE_PREFIX.sub("", block, count=1))
        if not name:
            logger.debug("Cause %s: estate block yielded no name", cause_no)
            continue

        records.append(
            GazetteRecord(
                court_station=station or UNKNOWN_COURT,
                cause_no=cause_no,
                name_of_deceased=name,
                volume_no=volume_no,
                date_published=date_published,
            )
        )

    return records


def _station_name(match: re.Match[str]) -> str:
    """'IN THE HIGH COURT OF KENYA AT NAIROBI' → 'Nairobi High Court'."""
    kind = "High Court" if "HIGH" in match.group(1).upper() else "Magistrates Court"
    location = _LOCATION_STOP.split(match.group(2), maxsplit=1)[0]
    location = " ".join(location.split()).strip(" -").title()
    return f"{location} {kind}"


def _opens_notice(line: str) -> bool:
    """True if the line starts a new notice (court heading or cause number)."""
    return bool(_COURT.search(line) or _CAUSE.search(line))


def _estate_block(lines: list[str], start: int) -> str:
    """Join the 'ESTATE OF' line (plus up to two more) following a cause line.

    The search covers the cause line and the next CAUSE_LOOKAHEAD lines, and
    stops early where the next notice begins.
    """
    for offset in range(CAUSE_LOOKAHEAD + 1):
        idx = start + offset
        if idx >= len(lines):
            break
        line = lines[idx]
        if offset and _opens_notice(line):
            break
        if _ESTATE_OF.search(line):
            block = [line]
            for follow in lines[idx + 1: idx + 1 + ESTATE_BLOCK_EXTRA]:
                if _opens_notice(follow):
                    break
                block.append(follow)
            return " ".join(block)
    return ""


def _clean_name(raw: str) -> str:
    """Strip DECEASED / THE / LATE, then cut at 'who died', a comma or 'of <place>'.

    The name ends at a DECEASED marker that follows it, so notice text joined
    from the next lines ("TAKE NOTICE that...") does not leak into the name.
    """
    marker = _DECEASED.search(raw)
    if marker and raw[: marker.start()].strip():
        raw = raw[: marker.start()]
    name = _DECEASED.sub(" ", raw)
    name = _THE_LATE.sub(" ", name)
    name = _WHO_DIED.split(name, maxsplit=1)[0]
    name = name.split(",", 1)[0]
    name = " ".join(name.split())
    name = _TRAILING_PLACE.sub("", name)
    return name.strip(" .;:-")


# ─── Fallback Pass ───────────────────────────────────────────────────


def _fallback_pass(flat: str, volume_no: str, date_published: str) -> list[GazetteRecord]:
    """Whole-text search used only when no court/cause notice was found."""
    names = _unique_names(
        _clean_name(_HEREIN.sub("", m.group(1))) for m in _FALLBACK_ESTATE.finditer(flat)
    )
    if not names:
        names = _unique_names(
            _clean_name(m.group(1)) for m in _FALLBACK_DECEASED.finditer(flat)
        )

    # Court and cause are unknown for whole-text matches.
    return [
        GazetteRecord(
            name_of_deceased=name,
            volume_no=volume_no,
            date_published=date_published,
        )
        for name in names
    ]


def _unique_names(names: Iterable[str]) -> list[str]:
    """Keep the first name per token signature."""
    seen: set[str] = set()
    unique: list[str] = []
    for name in names:
        sig = signature(name)
        if not sig or sig in seen:
            continue
        seen.add(sig)
        unique.append(name)
    return unique


# ─── Helpers ─────────────────────────────────────────────────────────


def _find_date(lines: list[str]) -> str:
    for line in lines:
        match = _DATE.search(line)
        if match:
            day, month, year = match.groups()
            return f"{int(day)} {month.title()} {year}"
    return ""
