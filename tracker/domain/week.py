from __future__ import annotations

import datetime as dt


def week_start(year: int, week: int) -> dt.date:
    """Monday of ISO week `week` in `year`.

    Starts from July 1st (always inside the ISO year), rolls back to that week's
    Monday and shifts by whole weeks. Out-of-range weeks simply extrapolate.
    """
    t = dt.date(year, 7, 1)
    t -= dt.timedelta(days=t.isoweekday() - 1)
    _, w, _ = t.isocalendar()
    return t + dt.timedelta(weeks=week - w)


def week_range(year: int, week: int) -> tuple[dt.date, dt.date]:
    """(monday, sunday) of the ISO week, both inclusive."""
    start = week_start(year, week)
    return start, start + dt.timedelta(days=6)


def week_days(year: int, week: int) -> list[dt.date]:
    start = week_start(year, week)
    return [start + dt.timedelta(days=i) for i in range(7)]


def weeks_in_year(year: int) -> int:
    # Dec 28th always falls into the last ISO week of its year
    return dt.date(year, 12, 28).isocalendar()[1]


def current_week(today: dt.date | None = None) -> tuple[int, int]:
    """(iso_year, iso_week) for today."""
    d = today or dt.date.today()
    iso = d.isocalendar()
    return iso[0], iso[1]
