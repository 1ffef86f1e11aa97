from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

# status values shared by projects and recordings
ACTIVE = 0
INACTIVE = 1


def status_string(status: int) -> str:
    return "active" if status == ACTIVE else "inactive"


@dataclass
class Project:
    """A billable or internal project, identified by a short tag."""
    tag: str
    name: str
    type: str = ""
    status: int = ACTIVE

    def status_string(self) -> str:
        return status_string(self.status)


@dataclass
class Recording:
    """One time entry booked against a project tag.

    `end_time` stays None while the recording is running.
    """
    project_tag: str
    name: str
    start_time: dt.datetime | None = None
    end_time: dt.datetime | None = None
    billable: bool = False
    note: str = ""
    status: int = ACTIVE
    id: int = 0

    def status_string(self) -> str:
        return status_string(self.status)

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    def duration(self, now: dt.datetime | None = None) -> dt.timedelta:
        """Elapsed time; running recordings are measured up to `now`."""
        if self.start_time is None:
            return dt.timedelta(0)
        end = self.end_time or now or dt.datetime.now()
        return end - self.start_time

    def hours(self, now: dt.datetime | None = None) -> float:
        return round(self.duration(now).total_seconds() / 3600.0, 2)
