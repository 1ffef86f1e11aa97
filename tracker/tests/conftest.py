import sys
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


@pytest.fixture()
def conn():
    # Fresh in-memory database per test
    from tracker.db import connect
    from tracker.logs import ensure_log_schema
    c = connect(":memory:")
    ensure_log_schema(c)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture()
def repo(conn):
    from tracker.repository import SQLiteRepository
    r = SQLiteRepository(conn)
    r.migrate()
    return r


@pytest.fixture()
def log():
    from tracker.logs import LogContext
    return LogContext("TEST")


@pytest.fixture()
def dag(repo):
    from tracker.domain.models import Project
    return repo.create_project(Project(tag="DAG", name="Dagobah", type="internal"))
