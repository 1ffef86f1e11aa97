"""Repository layer: SQLite access for projects and recordings.

Keep SQL here so services and the shell deal only in domain objects.
"""
from __future__ import annotations

from .errors import (
    DeleteFailedError,
    DuplicateError,
    InvalidArgumentError,
    NotExistsError,
    RepositoryError,
    UpdateFailedError,
)
from .sqlite_repo import SQLiteRepository

__all__ = [
    "SQLiteRepository",
    "RepositoryError",
    "DuplicateError",
    "NotExistsError",
    "UpdateFailedError",
    "DeleteFailedError",
    "InvalidArgumentError",
]
