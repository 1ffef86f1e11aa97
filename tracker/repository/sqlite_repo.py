from __future__ import annotations

import datetime as dt
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterator, Sequence

from ..domain.models import ACTIVE, Project, Recording
from .errors import (
    DeleteFailedError,
    DuplicateError,
    InvalidArgumentError,
    NotExistsError,
    RepositoryError,
    UpdateFailedError,
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS project(
  tag    VARCHAR(20) PRIMARY KEY UNIQUE,
  name   VARCHAR(50) NOT NULL,
  type   VARCHAR(20) NOT NULL,
  status INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS record(
  id        INTEGER PRIMARY KEY AUTOINCREMENT,
  projTag   VARCHAR(20) NOT NULL,
  startTime DATETIME NOT NULL,
  endTime   DATETIME,
  name      VARCHAR(70) NOT NULL,
  billable  BOOLEAN,
  note      TEXT,
  status    INTEGER NOT NULL
);
"""

_PROJECT_COLS = "tag, name, type, status"
_RECORD_COLS = "id, projTag, startTime, endTime, name, billable, note, status"


def _ts(value: dt.datetime | dt.date | None, end_of_day: bool = False) -> str | None:
    """Timestamps are stored as 'YYYY-MM-DD HH:MM:SS' so text order is time order."""
    if value is None:
        return None
    if not isinstance(value, dt.datetime):
        value = dt.datetime.combine(value, dt.time.max if end_of_day else dt.time.min)
    return value.isoformat(sep=" ", timespec="seconds")


def _parse_ts(text: str | None) -> dt.datetime | None:
    return dt.datetime.fromisoformat(text) if text else None


class SQLiteRepository:
    """CRUD and queries for projects and recordings over one open connection.

    Every method is a single statement; failures surface as RepositoryError
    subclasses and are never retried here.
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    @contextmanager
    def _cursor(self, sql: str, params: Sequence = ()) -> Iterator[sqlite3.Cursor]:
        cur = self._conn.cursor()
        try:
            cur.execute(sql, tuple(params))
            yield cur
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e):
                raise DuplicateError() from e
            raise RepositoryError(str(e)) from e
        except sqlite3.Error as e:
            raise RepositoryError(str(e)) from e
        finally:
            cur.close()

    def _write(self, sql: str, params: Sequence = ()) -> tuple[int, int | None]:
        """Run a write and return (rowcount, lastrowid)."""
        with self._cursor(sql, params) as cur:
            self._conn.commit()
            return cur.rowcount, cur.lastrowid

    def _query(self, sql: str, params: Sequence = ()) -> list[sqlite3.Row]:
        with self._cursor(sql, params) as cur:
            return cur.fetchall()

    @staticmethod
    def _project_from_row(row) -> Project:
        return Project(tag=row[0], name=row[1], type=row[2], status=int(row[3]))

    @staticmethod
    def _recording_from_row(row) -> Recording:
        return Recording(
            id=int(row[0]),
            project_tag=row[1],
            start_time=_parse_ts(row[2]),
            end_time=_parse_ts(row[3]),
            name=row[4],
            billable=bool(row[5]),
            note=row[6] or "",
            status=int(row[7]),
        )

    # ---------------- schema ----------------

    def migrate(self) -> None:
        """Create the project/record tables if missing; safe on every startup."""
        try:
            self._conn.executescript(SCHEMA).close()
        except sqlite3.Error as e:
            raise RepositoryError(str(e)) from e

    # ---------------- projects ----------------

    def create_project(self, project: Project) -> Project:
        """Insert a project. New projects are always stored as active,
        whatever status the caller passed; the result reflects that."""
        self._write(
            "INSERT INTO project(tag, name, type, status) VALUES(?,?,?,?)",
            (project.tag, project.name, project.type, ACTIVE),
        )
        return replace(project, status=ACTIVE)

    def all_projects(self) -> list[Project]:
        rows = self._query(f"SELECT {_PROJECT_COLS} FROM project ORDER BY rowid")
        return [self._project_from_row(r) for r in rows]

    def all_active_projects(self) -> list[Project]:
        rows = self._query(
            f"SELECT {_PROJECT_COLS} FROM project WHERE status = ? ORDER BY rowid", (ACTIVE,)
        )
        return [self._project_from_row(r) for r in rows]

    def get_project_by_tag(self, tag: str) -> Project:
        rows = self._query(f"SELECT {_PROJECT_COLS} FROM project WHERE tag = ?", (tag,))
        if not rows:
            raise NotExistsError()
        return self._project_from_row(rows[0])

    def update_project(self, tag: str, updated: Project) -> Project:
        if not tag:
            raise InvalidArgumentError("invalid project tag")
        count, _ = self._write(
            "UPDATE project SET name = ?, type = ?, status = ? WHERE tag = ?",
            (updated.name, updated.type, int(updated.status), tag),
        )
        if count == 0:
            raise UpdateFailedError()
        return replace(updated, tag=tag)

    def delete_project(self, tag: str) -> None:
        count, _ = self._write("DELETE FROM project WHERE tag = ?", (tag,))
        if count == 0:
            raise DeleteFailedError()

    # ---------------- recordings ----------------

    def create_recording(self, recording: Recording) -> Recording:
        """Insert a recording; a missing start time becomes now. The project tag
        is not checked against the project table."""
        if recording.start_time is None:
            recording = replace(recording, start_time=dt.datetime.now())
        # stored with second precision
        recording = replace(
            recording,
            start_time=recording.start_time.replace(microsecond=0),
            end_time=recording.end_time.replace(microsecond=0) if recording.end_time else None,
        )
        _, rowid = self._write(
            "INSERT INTO record(projTag, startTime, endTime, name, billable, note, status) "
            "VALUES(?,?,?,?,?,?,?)",
            (
                recording.project_tag,
                _ts(recording.start_time),
                _ts(recording.end_time),
                recording.name,
                1 if recording.billable else 0,
                recording.note,
                int(recording.status),
            ),
        )
        return replace(recording, id=int(rowid))

    def all_recordings(self) -> list[Recording]:
        rows = self._query(f"SELECT {_RECORD_COLS} FROM record ORDER BY id")
        return [self._recording_from_row(r) for r in rows]

    def get_recording(self, rec_id: int) -> Recording:
        rows = self._query(f"SELECT {_RECORD_COLS} FROM record WHERE id = ?", (rec_id,))
        if not rows:
            raise NotExistsError()
        return self._recording_from_row(rows[0])

    def get_recordings_by_project_tag(self, tag: str) -> list[Recording]:
        rows = self._query(f"SELECT {_RECORD_COLS} FROM record WHERE projTag = ? ORDER BY id", (tag,))
        return [self._recording_from_row(r) for r in rows]

    def get_recordings_by_date_range(
        self, start: dt.datetime | dt.date, end: dt.datetime | dt.date
    ) -> list[Recording]:
        """Recordings started at/after `start` and ended at/before `end`.

        Running recordings (no end time) never match. A plain date as `end`
        covers that whole day.
        """
        rows = self._query(
            f"SELECT {_RECORD_COLS} FROM record WHERE startTime >= ? AND endTime <= ? "
            "ORDER BY startTime, id",
            (_ts(start), _ts(end, end_of_day=True)),
        )
        return [self._recording_from_row(r) for r in rows]

    def running_recordings(self) -> list[Recording]:
        rows = self._query(
            f"SELECT {_RECORD_COLS} FROM record WHERE endTime IS NULL ORDER BY startTime, id"
        )
        return [self._recording_from_row(r) for r in rows]

    def update_recording(self, rec_id: int, updated: Recording) -> Recording:
        if not rec_id:
            raise InvalidArgumentError("invalid recording id")
        count, _ = self._write(
            "UPDATE record SET projTag = ?, name = ?, startTime = ?, endTime = ?, note = ?, "
            "billable = ?, status = ? WHERE id = ?",
            (
                updated.project_tag,
                updated.name,
                _ts(updated.start_time),
                _ts(updated.end_time),
                updated.note,
                1 if updated.billable else 0,
                int(updated.status),
                rec_id,
            ),
        )
        if count == 0:
            raise UpdateFailedError()
        return replace(updated, id=rec_id)

    def delete_recording(self, rec_id: int) -> None:
        count, _ = self._write("DELETE FROM record WHERE id = ?", (rec_id,))
        if count == 0:
            raise DeleteFailedError()
