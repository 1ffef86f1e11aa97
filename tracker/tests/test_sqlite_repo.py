"""
Repository tests: CRUD, query filters and the error taxonomy.
"""
import datetime as dt
import sqlite3

import pytest

from tracker.domain.models import ACTIVE, INACTIVE, Project, Recording
from tracker.repository import (
    DeleteFailedError,
    DuplicateError,
    InvalidArgumentError,
    NotExistsError,
    RepositoryError,
    SQLiteRepository,
    UpdateFailedError,
)


def ts(s: str) -> dt.datetime:
    return dt.datetime.fromisoformat(s)


def finished(tag, name, start, end, billable=True):
    return Recording(project_tag=tag, name=name, start_time=ts(start), end_time=ts(end), billable=billable)


def test_migrate_is_idempotent(repo, conn):
    repo.migrate()
    repo.migrate()
    names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"project", "record"} <= names


def test_store_errors_are_wrapped():
    c = sqlite3.connect(":memory:")
    r = SQLiteRepository(c)
    # tables were never created
    with pytest.raises(RepositoryError) as ei:
        r.all_projects()
    assert not isinstance(ei.value, NotExistsError)
    c.close()


class TestProjects:

    def test_create_and_get(self, repo, dag):
        p = repo.get_project_by_tag("DAG")
        assert p == Project(tag="DAG", name="Dagobah", type="internal", status=ACTIVE)
        assert p.status_string() == "active"

    def test_create_forces_active_status(self, repo):
        created = repo.create_project(Project(tag="HOTH", name="Hoth", type="customer", status=INACTIVE))
        assert created.status == ACTIVE
        assert repo.get_project_by_tag("HOTH").status == ACTIVE

    def test_duplicate_tag(self, repo, dag):
        with pytest.raises(DuplicateError):
            repo.create_project(Project(tag="DAG", name="Other", type="customer"))
        p = repo.get_project_by_tag("DAG")
        assert p.name == "Dagobah"
        assert p.type == "internal"
        assert len(repo.all_projects()) == 1

    def test_get_missing_tag_is_not_found(self, repo):
        with pytest.raises(NotExistsError):
            repo.get_project_by_tag("NOPE")

    def test_update_and_active_filter(self, repo, dag):
        repo.create_project(Project(tag="END", name="Endor", type="customer"))
        updated = repo.update_project("DAG", Project(tag="", name="Dagobah", type="internal", status=INACTIVE))
        assert updated.tag == "DAG"
        assert updated.status_string() == "inactive"
        assert [p.tag for p in repo.all_active_projects()] == ["END"]
        assert [p.tag for p in repo.all_projects()] == ["DAG", "END"]

    def test_update_empty_tag_is_invalid(self, repo, dag, conn):
        statements = []
        conn.set_trace_callback(statements.append)
        with pytest.raises(InvalidArgumentError):
            repo.update_project("", Project(tag="", name="x", type="y"))
        conn.set_trace_callback(None)
        assert statements == []

    def test_update_missing_tag_fails(self, repo, dag):
        with pytest.raises(UpdateFailedError):
            repo.update_project("NOPE", Project(tag="NOPE", name="x", type="y"))
        assert repo.all_projects() == [dag]

    def test_delete(self, repo, dag):
        repo.delete_project("DAG")
        assert repo.all_projects() == []
        with pytest.raises(DeleteFailedError):
            repo.delete_project("DAG")

    def test_delete_keeps_recordings(self, repo, dag):
        rec = repo.create_recording(Recording(project_tag="DAG", name="build"))
        repo.delete_project("DAG")
        assert repo.get_recordings_by_project_tag("DAG") == [rec]


class TestRecordings:

    def test_create_assigns_id_and_start_time(self, repo, dag):
        before = dt.datetime.now().replace(microsecond=0)
        rec = repo.create_recording(Recording(project_tag="DAG", name="build", billable=True))
        after = dt.datetime.now()
        assert rec.id > 0
        assert before <= rec.start_time <= after
        assert rec.end_time is None
        stored = repo.all_recordings()
        assert [r.id for r in stored] == [rec.id]
        assert stored[0] == rec
        assert stored[0].billable is True

    def test_create_truncates_to_seconds(self, repo):
        start = dt.datetime(2024, 3, 5, 9, 0, 0, 123456)
        rec = repo.create_recording(Recording(project_tag="DAG", name="build", start_time=start,
                                              end_time=start + dt.timedelta(hours=1)))
        assert rec.start_time == dt.datetime(2024, 3, 5, 9, 0, 0)
        assert rec.end_time == dt.datetime(2024, 3, 5, 10, 0, 0)
        assert repo.get_recording(rec.id) == rec

    def test_create_does_not_check_project(self, repo):
        rec = repo.create_recording(Recording(project_tag="GHOST", name="x"))
        assert repo.get_recording(rec.id).project_tag == "GHOST"

    def test_ids_are_store_assigned(self, repo):
        a = repo.create_recording(Recording(project_tag="A", name="a", id=99))
        b = repo.create_recording(Recording(project_tag="A", name="b"))
        assert (a.id, b.id) == (1, 2)

    def test_by_project_tag(self, repo):
        repo.create_recording(Recording(project_tag="A", name="a"))
        repo.create_recording(Recording(project_tag="B", name="b"))
        repo.create_recording(Recording(project_tag="A", name="c"))
        assert [r.name for r in repo.get_recordings_by_project_tag("A")] == ["a", "c"]
        assert repo.get_recordings_by_project_tag("Z") == []

    def test_date_range_excludes_running(self, repo):
        done = repo.create_recording(finished("A", "done", "2024-03-04 09:00:00", "2024-03-04 11:00:00"))
        repo.create_recording(Recording(project_tag="A", name="running", start_time=ts("2024-03-05 09:00:00")))
        repo.create_recording(finished("A", "before", "2024-03-03 09:00:00", "2024-03-03 10:00:00"))
        repo.create_recording(finished("A", "overlaps", "2024-03-10 22:00:00", "2024-03-11 01:00:00"))
        got = repo.get_recordings_by_date_range(ts("2024-03-04 00:00:00"), ts("2024-03-10 23:59:59"))
        assert got == [done]

    def test_date_range_with_dates_covers_whole_last_day(self, repo):
        late = repo.create_recording(finished("A", "late", "2024-03-10 20:00:00", "2024-03-10 23:30:00"))
        got = repo.get_recordings_by_date_range(dt.date(2024, 3, 4), dt.date(2024, 3, 10))
        assert got == [late]

    def test_running_recordings(self, repo):
        repo.create_recording(finished("A", "done", "2024-03-04 09:00:00", "2024-03-04 11:00:00"))
        run = repo.create_recording(Recording(project_tag="A", name="running"))
        assert repo.running_recordings() == [run]

    def test_update(self, repo):
        rec = repo.create_recording(Recording(project_tag="A", name="a", start_time=ts("2024-03-04 09:00:00")))
        upd = Recording(project_tag="B", name="b", start_time=rec.start_time,
                        end_time=ts("2024-03-04 10:30:00"), billable=True, note="n", status=INACTIVE)
        out = repo.update_recording(rec.id, upd)
        assert out.id == rec.id
        assert repo.get_recording(rec.id) == out

    def test_update_zero_id_is_invalid(self, repo):
        with pytest.raises(InvalidArgumentError):
            repo.update_recording(0, Recording(project_tag="A", name="a"))

    def test_update_missing_id_fails(self, repo):
        rec = repo.create_recording(Recording(project_tag="A", name="a"))
        with pytest.raises(UpdateFailedError):
            repo.update_recording(rec.id + 1, Recording(project_tag="B", name="b", start_time=rec.start_time))
        assert repo.all_recordings() == [rec]

    def test_delete(self, repo):
        rec = repo.create_recording(Recording(project_tag="A", name="a"))
        with pytest.raises(DeleteFailedError):
            repo.delete_recording(rec.id + 1)
        assert repo.all_recordings() == [rec]
        repo.delete_recording(rec.id)
        assert repo.all_recordings() == []
        with pytest.raises(NotExistsError):
            repo.get_recording(rec.id)


def test_end_to_end_project_flow(repo):
    repo.create_project(Project(tag="DAG", name="Dagobah", type="internal"))
    p = repo.get_project_by_tag("DAG")
    assert p.status == 0
    assert p.status_string() == "active"

    repo.update_project("DAG", Project(tag="DAG", name="Dagobah", type="internal", status=1))
    assert "DAG" not in [x.tag for x in repo.all_active_projects()]
    assert "DAG" in [x.tag for x in repo.all_projects()]


def test_end_to_end_recording_flow(repo):
    rec = repo.create_recording(Recording(project_tag="DAG", name="build", billable=True))
    assert rec.id != 0
    matching = [r for r in repo.all_recordings() if r.id == rec.id]
    assert len(matching) == 1
    assert len(repo.all_recordings()) == 1
