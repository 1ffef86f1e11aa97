from __future__ import annotations

import datetime as dt
import logging
from dataclasses import asdict, replace

from ..domain.models import ACTIVE, Recording
from ..logs import LogContext
from ..repository import SQLiteRepository

logger = logging.getLogger(__name__)


def start_recording(
    repo: SQLiteRepository,
    tag: str,
    name: str,
    log: LogContext,
    billable: bool = True,
    note: str = "",
    start_time: dt.datetime | None = None,
) -> Recording:
    """Start a recording on an existing project (NotExistsError otherwise)."""
    name = (name or "").strip()
    if not name:
        raise ValueError("please enter a name.")
    project = repo.get_project_by_tag(tag)
    if project.status != ACTIVE:
        logger.warning("starting a recording on inactive project %s", tag)
    rec = repo.create_recording(
        Recording(project_tag=tag, name=name, billable=billable, note=note, start_time=start_time)
    )
    log.set_entity("RECORDING", str(rec.id))
    log.set_after(asdict(rec))
    return rec


def stop_recording(
    repo: SQLiteRepository,
    log: LogContext,
    rec_id: int | None = None,
    end_time: dt.datetime | None = None,
) -> Recording:
    """Stop recording `rec_id`, or the most recently started running one."""
    if rec_id is None:
        running = repo.running_recordings()
        if not running:
            raise ValueError("no running recording")
        before = running[-1]
    else:
        before = repo.get_recording(rec_id)
        if not before.is_running:
            raise ValueError(f"recording {rec_id} is already stopped")
    end = end_time or dt.datetime.now().replace(microsecond=0)
    after = repo.update_recording(before.id, replace(before, end_time=end))
    log.set_entity("RECORDING", str(after.id))
    log.set_before(asdict(before))
    log.set_after(asdict(after))
    return after


def delete_recording(repo: SQLiteRepository, rec_id: int, log: LogContext) -> None:
    before = repo.get_recording(rec_id)
    repo.delete_recording(rec_id)
    log.set_entity("RECORDING", str(rec_id))
    log.set_before(asdict(before))


def list_recordings(repo: SQLiteRepository, tag: str | None = None, running_only: bool = False) -> list[Recording]:
    if running_only:
        recs = repo.running_recordings()
        return [r for r in recs if r.project_tag == tag] if tag else recs
    if tag:
        return repo.get_recordings_by_project_tag(tag)
    return repo.all_recordings()
