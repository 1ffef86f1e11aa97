from __future__ import annotations

# tracker/db.py
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

# DB path resolution order:
# 1) env TT_DB_PATH (highest priority)
# 2) databaseFile from app_config.yaml
# 3) fallback: timetracking.db in the working directory
DEFAULT_DB_FILE = "timetracking.db"
SUPPORTED_DRIVERS = ("sqlite", "sqlite3")


def check_driver(driver: str | None) -> str:
    d = (driver or "sqlite").strip().lower()
    if d not in SUPPORTED_DRIVERS:
        raise ValueError(f"unsupported database driver: {driver}")
    return d


def get_db_path(cfg: dict | None = None) -> str:
    env_path = os.environ.get("TT_DB_PATH")
    cfg_db = (cfg or {}).get("databaseFile")

    if env_path:
        path = env_path
    elif isinstance(cfg_db, str) and cfg_db.strip():
        path = cfg_db.strip()
    else:
        path = DEFAULT_DB_FILE

    if path != ":memory:":
        dirn = os.path.dirname(path) or "."
        os.makedirs(dirn, exist_ok=True)
    return path


def connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in autocommit mode with Row results."""
    conn = sqlite3.connect(db_path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    """
    Connection held for the lifetime of the with-block; explicit db_path wins
    over get_db_path().
    """
    conn = connect(db_path or get_db_path())
    try:
        yield conn
    finally:
        conn.close()
