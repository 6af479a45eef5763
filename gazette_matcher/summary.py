"""Per-court aggregation of extracted gazette notices."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .extractor import UNKNOWN_COURT
from .models import CourtSummary, GazetteRecord
from .store import DATE_FORMAT


def summarize_courts(records: Iterable[GazetteRecord]) -> list[CourtSummary]:
    """Group notices by court station: case count, publication dates, volumes.

    Courts are returned busiest first, then alphabetically.
    """
    grouped: dict[str, dict] = {}
    for record in records:
        court = record.court_station or UNKNOWN_COURT
        entry = grouped.setdefault(court, {"total": 0, "dates": set(), "volumes": set()})
        entry["total"] += 1
        if record.date_published:
            entry["dates"].add(record.date_published)
        if record.volume_no:
            entry["volumes"].add(record.volume_no)

    summaries = []
    for court, entry in grouped.items():
        dates = sorted(entry["dates"], key=_date_sort_key)
        if len(dates) > 1:
            date_range = f"{dates[0]} - {dates[-1]}"
        else:
            date_range = dates[0] if dates else "N/A"
        summaries.append(
            CourtSummary(
                court=court,
                total_cases=entry["total"],
                dates=dates,
                volumes=sorted(entry["volumes"]),
                date_range=date_range,
            )
        )

    summaries.sort(key=lambda s: (-s.total_cases, s.court))
    return summaries


def _date_sort_key(value: str) -> tuple[int, str]:
    try:
        return (datetime.strptime(value, DATE_FORMAT).toordinal(), value)
    except ValueError:
        return (10**7, value)  # unparseable dates sort after real ones
