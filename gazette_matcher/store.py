"""
SQLite-backed store for accepted matches.

The only effectful part of the package. Rules enforced here, in SQL:
  - one row per (court_station, cause_no, name_norm, date_published, volume_no)
  - status_at_gp only escalates Published → Approved, never back
  - score is the maximum ever seen for a key
  - excel_name / match_type are filled only while still NULL

Connections are scoped: every public method opens one via connect(), uses it
and closes it on every exit path. Nothing is held at module level.

Writes are batched, one explicit transaction per batch. A failing batch is
rolled back and logged; earlier and later batches are unaffected, and the
failed one is not retried (the caller re-submits).
"""

from __future__ import annotations

import logging
import os
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from .exceptions import InputValidationError, PersistenceBatchFailure, StoreUnavailable
from .models import MatchRow, PersistedMatch, PersistResult

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "gazette.db"
DEFAULT_BATCH_SIZE = 500

DATE_FORMAT = "%d %B %Y"  # "12 March 2021", as produced by the extractor


# ─── Schema ──────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS gazette_matches (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    court_station    TEXT NOT NULL DEFAULT '',
    cause_no         TEXT NOT NULL DEFAULT '',
    name_norm        TEXT NOT NULL,
    name_of_deceased TEXT NOT NULL,
    excel_name       TEXT,
    match_type       TEXT,
    score            REAL NOT NULL DEFAULT 0,
    duplicate        INTEGER NOT NULL DEFAULT 0,
    status_at_gp     TEXT NOT NULL DEFAULT 'Published',
    volume_no        TEXT NOT NULL DEFAULT '',
    date_published   TEXT NOT NULL DEFAULT '',
    created_at       TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE UNIQUE INDEX IF NOT EXISTS ux_gazette_match
    ON gazette_matches (court_station, cause_no, name_norm, date_published, volume_no);

CREATE INDEX IF NOT EXISTS ix_gazette_station_date
    ON gazette_matches (court_station, date_published);

CREATE INDEX IF NOT EXISTS ix_gazette_excel_name
    ON gazette_matches (excel_name);
"""

_KEY_COLUMNS = ("court_station", "cause_no", "name_norm", "date_published", "volume_no")

_SELECT_KEY = """
SELECT id FROM gazette_matches
WHERE court_station = ? AND cause_no = ? AND name_norm = ?
  AND date_published = ? AND volume_no = ?
"""

_UPSERT = """
INSERT INTO gazette_matches
    (court_station, cause_no, name_norm, name_of_deceased, excel_name,
     match_type, score, status_at_gp, volume_no, date_published, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'))
ON CONFLICT (court_station, cause_no, name_norm, date_published, volume_no)
DO UPDATE SET
    status_at_gp = CASE
        WHEN excluded.status_at_gp = 'Approved' THEN 'Approved'
        ELSE gazette_matches.status_at_gp
    END,
    excel_name = COALESCE(gazette_matches.excel_name, excluded.excel_name),
    match_type = COALESCE(gazette_matches.match_type, excluded.match_type),
    score = MAX(gazette_matches.score, excluded.score),
    updated_at = datetime('now')
"""

_FLAG_DUPLICATES = """
UPDATE gazette_matches SET duplicate = 1
WHERE duplicate = 0 AND excel_name IN (
    SELECT excel_name FROM gazette_matches
    WHERE IFNULL(excel_name, '') <> ''
    GROUP BY excel_name
    HAVING COUNT(*) > 1
)
"""

_LIST_DISTINCT = """
SELECT gm.*
FROM gazette_matches gm
JOIN (
    SELECT MIN(id) AS min_id
    FROM gazette_matches
    GROUP BY name_norm, date_published, volume_no
) d ON gm.id = d.min_id
"""


def default_db_path() -> str:
    return os.environ.get("GAZETTE_DB_PATH", DEFAULT_DB_PATH)


# ─── Store ───────────────────────────────────────────────────────────


class MatchStore:
    """Transactional upsert store for accepted gazette matches.

    Usage:
        store = MatchStore("gazette.db")
        result = store.upsert(rows)
        for match in store.list_matches():
            ...
    """

    def __init__(self, db_path: str | Path | None = None, batch_size: int | None = None):
        self.db_path = Path(db_path or default_db_path())
        self.batch_size = batch_size or int(
            os.environ.get("GAZETTE_BATCH_SIZE", DEFAULT_BATCH_SIZE)
        )

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection with the schema in place; always closed on exit.

        Autocommit mode: transactions are explicit BEGIN / COMMIT / ROLLBACK.

        Raises:
            StoreUnavailable: if the database cannot be opened or initialised.
        """
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            if conn is not None:
                conn.close()
            raise StoreUnavailable(
                f"Cannot open match store at {self.db_path}: {exc}",
                {"db_path": str(self.db_path)},
            ) from exc

        try:
            yield conn
        finally:
            conn.close()

    # ─── Writes ──────────────────────────────────────────────────────

    def upsert(self, rows: Iterable[MatchRow], batch_size: int | None = None) -> PersistResult:
        """Insert or merge rows, one transaction per batch, then flag duplicates."""
        rows = list(rows)
        size = batch_size or self.batch_size
        if size < 1:
            raise InputValidationError(f"Batch size must be at least 1, got {size}", {"batch_size": size})

        result = PersistResult()
        if not rows:
            return result

        with self.connect() as conn:
            for number, start in enumerate(range(0, len(rows), size)):
                try:
                    inserted, updated = self._write_batch(conn, number, rows[start:start + size])
                except PersistenceBatchFailure:
                    result.failed_batches.append(number)
                    continue
                result.inserted_count += inserted
                result.updated_count += updated

            flagged = self._flag_duplicates(conn)

        logger.info(
            "Upsert: %d inserted, %d updated, %d batch(es) failed, %d flagged duplicate",
            result.inserted_count,
            result.updated_count,
            len(result.failed_batches),
            flagged,
        )
        return result

    def flag_duplicates(self) -> int:
        """Mark rows sharing a registry name as duplicate. Returns rows newly flagged."""
        with self.connect() as conn:
            return self._flag_duplicates(conn)

    def clear(self) -> int:
        """Delete every stored match. Irreversible. Returns the number deleted."""
        with self.connect() as conn:
            conn.execute("BEGIN")
            try:
                count = conn.execute("SELECT COUNT(*) FROM gazette_matches").fetchone()[0]
                conn.execute("DELETE FROM gazette_matches")
                conn.execute("COMMIT")
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("VACUUM")

        logger.info("Cleared %d stored match(es)", count)
        return count

    # ─── Reads ───────────────────────────────────────────────────────

    def list_matches(self) -> list[PersistedMatch]:
        """One row per (name_norm, date_published, volume_no), lowest id wins.

        Ordered newest publication date first (undated rows last), then by name.
        """
        with self.connect() as conn:
            rows = conn.execute(_LIST_DISTINCT).fetchall()

        matches = [_to_persisted(row) for row in rows]
        matches.sort(key=_list_order)
        return matches

    def count(self) -> int:
        with self.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM gazette_matches").fetchone()[0]

    # ─── Internal Helpers ────────────────────────────────────────────

    def _write_batch(
        self, conn: sqlite3.Connection, number: int, batch: list[MatchRow]
    ) -> tuple[int, int]:
        """Write one batch atomically. Returns (inserted, updated)."""
        inserted = updated = 0
        conn.execute("BEGIN")
        try:
            for row in batch:
                key = tuple(getattr(row, column) for column in _KEY_COLUMNS)
                exists = conn.execute(_SELECT_KEY, key).fetchone() is not None
                conn.execute(
                    _UPSERT,
                    (
                        row.court_station,
                        row.cause_no,
                        row.name_norm,
                        row.name_of_deceased,
                        row.excel_name,
                        row.match_type,
                        float(row.score),
                        row.status_at_gp.value,
                        row.volume_no,
                        row.date_published,
                    ),
                )
                if exists:
                    updated += 1
                else:
                    inserted += 1
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            conn.execute("ROLLBACK")
            logger.exception("Upsert batch %d (%d rows) rolled back", number, len(batch))
            raise PersistenceBatchFailure(
                f"Batch {number} rolled back: {exc}",
                {"batch": number, "rows": len(batch)},
            ) from exc

        return inserted, updated

    @staticmethod
    def _flag_duplicates(conn: sqlite3.Connection) -> int:
        return conn.execute(_FLAG_DUPLICATES).rowcount


# ─── Row Helpers ─────────────────────────────────────────────────────


def _to_persisted(row: sqlite3.Row) -> PersistedMatch:
    data = dict(row)
    data["duplicate"] = bool(data["duplicate"])
    return PersistedMatch(**data)


def _list_order(match: PersistedMatch) -> tuple[int, int, str]:
    """Sort key: dated rows newest first, unparseable dates next, empty dates last."""
    if not match.date_published:
        return (2, 0, match.name_norm)
    try:
        published = datetime.strptime(match.date_published, DATE_FORMAT)
    except ValueError:
        return (1, 0, match.name_norm)
    return (0, -published.toordinal(), match.name_norm)
