"""Exceptions raised by vocabplan."""


class VocabPlanError(Exception):
    """Base class for vocabplan errors."""


class StaleWriteError(VocabPlanError):
    """A persisted blob changed since it was loaded."""

    def __init__(self, user_id: str, key: str, expected_version: int, current_version: int):
        self.user_id = user_id
        self.key = key
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Stale write of {key} for user {user_id}: "
            f"expected version {expected_version}, found {current_version}"
        )


class BookNotFoundError(VocabPlanError):
    """A book id is not in the catalog."""
