from __future__ import annotations

import logging
from dataclasses import asdict

from ..domain.models import ACTIVE, INACTIVE, Project
from ..logs import LogContext
from ..repository import NotExistsError, SQLiteRepository

logger = logging.getLogger(__name__)

NAME_LIMIT = 25
TAG_LIMIT = 10

# (label, stored value)
TYPE_OPTIONS = [
    ("Internal", "internal"),
    ("Customer", "customer"),
    ("Development", "development"),
    ("Open Source", "open source"),
    ("Other", "other"),
]
STATUS_OPTIONS = [("Active", ACTIVE), ("Inactive", INACTIVE)]


def validate_name(name: str) -> str | None:
    """Returns an error message, or None when the name is acceptable."""
    if not (name or "").strip():
        return "please enter a name."
    if len(name) > NAME_LIMIT:
        return "name is too long"
    return None


def validate_tag(repo: SQLiteRepository, tag: str) -> str | None:
    if not (tag or "").strip():
        return "please enter a tag."
    if len(tag) > TAG_LIMIT:
        return "tag is too long"
    if any(c.isspace() for c in tag):
        return "tag must not contain spaces"
    try:
        repo.get_project_by_tag(tag)
    except NotExistsError:
        return None
    return "tag already exists"


def list_projects(repo: SQLiteRepository, only_active: bool = True) -> list[Project]:
    return repo.all_active_projects() if only_active else repo.all_projects()


def create_project(repo: SQLiteRepository, tag: str, name: str, project_type: str, log: LogContext) -> Project:
    """New projects always start active; use update_project to deactivate."""
    tag, name = (tag or "").strip(), (name or "").strip()
    err = validate_name(name) or validate_tag(repo, tag)
    if err:
        raise ValueError(err)
    project = repo.create_project(Project(tag=tag, name=name, type=project_type))
    log.set_entity("PROJECT", tag)
    log.set_after(asdict(project))
    return project


def update_project(
    repo: SQLiteRepository, tag: str, name: str, project_type: str, status: int, log: LogContext
) -> Project:
    name = (name or "").strip()
    err = validate_name(name)
    if err:
        raise ValueError(err)
    if status not in (ACTIVE, INACTIVE):
        raise ValueError(f"invalid status: {status}")
    before = repo.get_project_by_tag(tag)
    after = repo.update_project(tag, Project(tag=tag, name=name, type=project_type, status=status))
    log.set_entity("PROJECT", tag)
    log.set_before(asdict(before))
    log.set_after(asdict(after))
    return after


def delete_project(repo: SQLiteRepository, tag: str, log: LogContext) -> int:
    """
    Delete a project by tag. Its recordings are kept as history and keep
    pointing at the old tag; returns how many there are.
    """
    before = repo.get_project_by_tag(tag)
    repo.delete_project(tag)
    orphaned = len(repo.get_recordings_by_project_tag(tag))
    if orphaned:
        logger.info("project %s deleted, %d recordings kept", tag, orphaned)
    log.set_entity("PROJECT", tag)
    log.set_before(asdict(before))
    log.set_after({"orphaned_recordings": orphaned})
    return orphaned
