"""Error types for git-keyvalue operations."""

from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .git_sync.utils import GitCommandResult


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    CLONE = "clone"
    SYNC = "sync"
    COMMIT = "commit"
    PUBLISH = "publish"
    LIFECYCLE = "lifecycle"
    VALIDATION = "validation"


class KeyValueGitError(Exception):
    """Base class for failures of a KeyValueRepo operation."""

    category = ErrorCategory.LIFECYCLE

    def __init__(self, message: str, operation: Optional[str] = None,
                 result: Optional["GitCommandResult"] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.result = result

    def to_dict(self) -> dict:
        """Convert the error to a dictionary, e.g. for structured logs."""
        data = {
            "error": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
        }
        if self.operation:
            data["operation"] = self.operation
        if self.result is not None:
            data["status"] = self.result.status
        return data


class CloneError(KeyValueGitError):
    """The remote repository could not be cloned; no usable handle exists."""
    category = ErrorCategory.CLONE


class SyncError(KeyValueGitError):
    """Pulling the remote failed; the handle remains usable for a retry."""
    category = ErrorCategory.SYNC


class CommitError(KeyValueGitError):
    """Recording the local commit failed; local changes were rolled back."""
    category = ErrorCategory.COMMIT


class PublishConflictError(KeyValueGitError):
    """Pushing the commit failed; local changes were rolled back.

    Usually another writer pushed first. Retrying the whole put
    re-synchronizes and tries again. If the local clone is suspected to be
    damaged, close the handle and create a new one.
    """
    category = ErrorCategory.PUBLISH


class StoreClosedError(KeyValueGitError):
    """An operation was attempted on a closed handle."""
    category = ErrorCategory.LIFECYCLE


class InvalidKeyError(KeyValueGitError, ValueError):
    """A key given to put/putfile does not name a file inside the repository."""
    category = ErrorCategory.VALIDATION
