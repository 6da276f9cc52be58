"""Error taxonomy shared by the scene store and the sync client.

Missing scenes and files are not errors: stores return ``None`` and callers branch on it.
"""


class SceneSyncError(Exception):
    """Base class for scene synchronization errors."""


class InvalidInput(SceneSyncError):
    """A request was missing a required payload field. Nothing was mutated."""


class StorageError(SceneSyncError):
    """A persistence call failed (transport error or non-success response)."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
