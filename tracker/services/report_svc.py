"""
Weekly reports over finished recordings: the plain list, the
project x weekday hour matrix and CSV export.
"""
from __future__ import annotations

import datetime as dt
import os

import pandas as pd

from ..domain.models import Recording
from ..domain.week import week_days, week_range
from ..repository import SQLiteRepository

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
RECORDING_COLUMNS = ["id", "tag", "name", "start", "end", "hours", "billable", "status"]


def week_recordings(repo: SQLiteRepository, year: int, week: int) -> list[Recording]:
    """Finished recordings of the ISO week; running ones are not included."""
    start, end = week_range(year, week)
    return repo.get_recordings_by_date_range(start, end)


def recordings_frame(recordings: list[Recording], now: dt.datetime | None = None) -> pd.DataFrame:
    rows = [
        {
            "id": r.id,
            "tag": r.project_tag,
            "name": r.name,
            "start": r.start_time,
            "end": r.end_time,
            "hours": r.hours(now),
            "billable": r.billable,
            "status": r.status_string(),
        }
        for r in recordings
    ]
    return pd.DataFrame(rows, columns=RECORDING_COLUMNS)


def week_matrix(recordings: list[Recording], year: int, week: int) -> pd.DataFrame:
    """Hours per project tag (rows) and weekday (columns), with a Total row and column.

    Each recording counts on the day it started.
    """
    days = week_days(year, week)
    df = pd.DataFrame(
        [{"tag": r.project_tag, "day": r.start_time.date(), "hours": r.hours()} for r in recordings],
        columns=["tag", "day", "hours"],
    )
    df = df[df["day"].isin(days)]
    if df.empty:
        mat = pd.DataFrame(columns=WEEKDAY_LABELS, dtype=float)
    else:
        mat = df.pivot_table(index="tag", columns="day", values="hours", aggfunc="sum", fill_value=0.0)
        mat = mat.reindex(columns=days, fill_value=0.0).astype(float)
        mat.columns = WEEKDAY_LABELS
    mat["Total"] = mat.sum(axis=1)
    mat.loc["Total"] = mat.sum(axis=0)
    mat.index.name = "tag"
    return mat.round(2)


def week_totals(recordings: list[Recording]) -> dict:
    total = sum(r.hours() for r in recordings)
    billable = sum(r.hours() for r in recordings if r.billable)
    return {
        "count": len(recordings),
        "hours": round(total, 2),
        "billable_hours": round(billable, 2),
        "non_billable_hours": round(total - billable, 2),
    }


def export_week(repo: SQLiteRepository, year: int, week: int, out_dir: str) -> list[str]:
    """Write the week's recordings and matrix as CSV; returns the file paths."""
    recs = week_recordings(repo, year, week)
    os.makedirs(out_dir, exist_ok=True)
    stem = f"{year}-W{week:02d}"
    rec_path = os.path.join(out_dir, f"recordings_{stem}.csv")
    mat_path = os.path.join(out_dir, f"matrix_{stem}.csv")
    recordings_frame(recs).to_csv(rec_path, index=False, encoding="utf-8-sig")
    week_matrix(recs, year, week).to_csv(mat_path, encoding="utf-8-sig")
    return [rec_path, mat_path]
