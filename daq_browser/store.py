"""Read-only access to the indexed DAQ log database (daq_logs.db)."""

import logging
import sqlite3
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from .models import AreaSummary, DateSummary, Error, Level
from .timeresolve import local_date, utc_dates

logger = logging.getLogger(__name__)

MAX_DATES = 60


class StoreError(Exception):
    """A query against the error store failed."""


class ErrorStore(Protocol):
    def list_areas_with_errors(self) -> list[AreaSummary]: ...

    def list_dates_with_errors(self, area: str) -> list[DateSummary]: ...

    def load_errors(self, area: str, day: str) -> list[Error]: ...


# ─── Queries ──────────────────────────────────────────────────────────────────

AREAS_SQL = """
    SELECT hutch,
           COUNT(DISTINCT id) AS files,
           SUM(error_count) AS errors
    FROM log_files
    WHERE error_count > 0
    GROUP BY hutch
    ORDER BY hutch
"""

FILES_SQL = """
    SELECT id, start_timestamp_utc, error_count
    FROM log_files
    WHERE hutch = ? AND error_count > 0
"""

ERRORS_SQL = """
    SELECT le.id,
           COALESCE(le.timestamp_utc, '') AS timestamp,
           lf.component,
           lf.host,
           le.log_level,
           le.error_type,
           le.message,
           le.line_number,
           lf.file_path,
           COALESCE(le.context_before, '') AS ctx_before,
           COALESCE(le.context_after, '') AS ctx_after,
           lf.start_timestamp_utc
    FROM log_errors le
    JOIN log_files lf ON le.log_file_id = lf.id
    WHERE lf.hutch = ?
      AND DATE(lf.start_timestamp_utc) BETWEEN ? AND ?
"""


class SqliteErrorStore:
    """ErrorStore over an immutable SQLite file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        if self._conn is not None:
            return
        uri = f"file:{quote(str(self.path))}?mode=ro&immutable=1"
        try:
            self._conn = sqlite3.connect(uri, uri=True)
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            self._conn = None
            raise StoreError(f"cannot open {self.path}: {e}") from e
        logger.info("Opened %s", self.path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteErrorStore":
        self.connect()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        self.connect()
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error("Query failed: %s", e)
            raise StoreError(str(e)) from e

    # ─── ErrorStore ────────────────────────────────────────────────────────

    def list_areas_with_errors(self) -> list[AreaSummary]:
        rows = self._query(AREAS_SQL)
        return [AreaSummary(area=r[0], file_count=r[1], error_count=r[2] or 0) for r in rows]

    def list_dates_with_errors(self, area: str) -> list[DateSummary]:
        """Reference-zone dates with errors, newest first, at most MAX_DATES."""
        files: dict[str, set[int]] = defaultdict(set)
        errors: dict[str, int] = defaultdict(int)
        for file_id, start, error_count in self._query(FILES_SQL, (area,)):
            day = local_date(start or "")
            if not day:
                continue
            files[day].add(file_id)
            errors[day] += error_count or 0
        days = sorted(files, reverse=True)[:MAX_DATES]
        return [DateSummary(date=d, file_count=len(files[d]), error_count=errors[d]) for d in days]

    def load_errors(self, area: str, day: str) -> list[Error]:
        """All errors from files whose reference-zone start date is day (unsorted)."""
        try:
            d = date.fromisoformat(day)
        except ValueError as e:
            raise StoreError(f"invalid date {day!r}") from e
        # The local day covers one or two UTC dates, before or after d depending on the zone
        window = utc_dates(d)
        rows = self._query(ERRORS_SQL, (area, window[0].isoformat(), window[-1].isoformat()))
        out = []
        for row in rows:
            (eid, ts, component, host, level, etype, message,
             line_number, file_path, before, after, start) = row
            if local_date(start or "") != day:
                continue
            out.append(Error(
                id=eid,
                timestamp=ts,
                component=component or "",
                host=host or "",
                level=Level.parse(level),
                error_type=etype or "",
                message=message or "",
                line_number=line_number or 0,
                file_path=file_path or "",
                context_before=before,
                context_after=after,
                reference_date=day,
            ))
        logger.info("Loaded %d errors for %s %s", len(out), area, day)
        return out
