from __future__ import annotations


class RepositoryError(Exception):
    """Store-level failure that no more specific error describes."""


class DuplicateError(RepositoryError):
    def __init__(self, msg: str = "record already exists"):
        super().__init__(msg)


class NotExistsError(RepositoryError):
    def __init__(self, msg: str = "row not exists"):
        super().__init__(msg)


class UpdateFailedError(RepositoryError):
    def __init__(self, msg: str = "update failed"):
        super().__init__(msg)


class DeleteFailedError(RepositoryError):
    def __init__(self, msg: str = "delete failed"):
        super().__init__(msg)


class InvalidArgumentError(RepositoryError, ValueError):
    """Rejected before the store is touched (empty tag, zero id)."""
