"""
git-keyvalue - use a remote git repository as a key/value store.

Keys are file paths relative to the repository root and values are the
contents of those files.
"""

__version__ = "1.0.0"
__description__ = "GET/PUT-style key/value interface to a remote git repository"

from .config import Config, load_configuration
from .errors import (
    KeyValueGitError,
    CloneError,
    SyncError,
    CommitError,
    PublishConflictError,
    StoreClosedError,
    InvalidKeyError,
)
from .logging_config import setup_logging
from .store import KeyValueRepo

__all__ = [
    "KeyValueRepo",
    "Config",
    "load_configuration",
    "setup_logging",
    "KeyValueGitError",
    "CloneError",
    "SyncError",
    "CommitError",
    "PublishConflictError",
    "StoreClosedError",
    "InvalidKeyError",
]
