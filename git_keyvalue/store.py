"""
Key/value interface to a remote git repository.

Keys are file paths relative to the repository root and values are the
contents of those files. Every operation first fast-forwards a private
local clone to the remote's latest commit; writes are committed and
pushed before they are reported as done.
"""

import logging
import os
import shutil
import stat
import sys
import tempfile
import weakref
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from .config import Config
from .errors import (
    CloneError, SyncError, CommitError, PublishConflictError,
    StoreClosedError, InvalidKeyError
)
from .git_sync.clone import clone_repository, ensure_commit_identity
from .git_sync.operations import pull, stage, has_staged_changes, commit, push, head_commit, rollback
from .git_sync.utils import GitCommandResult
from .platform import normalize_path, path_separators, validate_git_availability

logger = logging.getLogger('git_keyvalue.store')

Value = Union[str, bytes]


def _make_writable_and_retry(func, path, exc):
    """rmtree error handler for read-only git object files (Windows)."""
    os.chmod(path, stat.S_IWRITE)
    func(path)


def _remove_working_copy(path: Path) -> None:
    """Delete a local clone. Runs at most once per handle."""
    if not path.exists():
        logger.warning(f"Local repo clone in {path} was already removed")
        return
    logger.info(f"Removing local repo clone in {path}")
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_make_writable_and_retry)
    else:
        shutil.rmtree(path, onerror=_make_writable_and_retry)


def relativize_key(key: Union[str, os.PathLike]) -> str:
    """
    Strip leading path separators so that ``key`` is relative to the repo root.

    ``"/secret/config"`` and ``"secret/config"`` name the same key.
    """
    return os.fspath(key).lstrip(path_separators())


class KeyValueRepo:
    """
    Presents a remote git repository as a key/value store.

    Construction clones the remote into a fresh temporary directory that
    belongs to this handle alone. Call ``close()`` (or use the handle as a
    context manager) to delete that directory; if neither happens, the
    directory is removed when the handle is garbage collected or the
    interpreter exits.

    A handle is not safe for concurrent use. Independent handles on the
    same remote are: a push rejected because another handle published first
    surfaces as PublishConflictError and the put can simply be retried.

    Args:
        repo_url: URL of a reachable git repository
        config: Handle configuration; defaults to ``Config()``

    Raises:
        CloneError: if the remote cannot be cloned
    """

    def __init__(self, repo_url: str, config: Optional[Config] = None):
        self.config = config or Config()
        self.logger = logger
        self._repo_url = repo_url

        temp_root = str(self.config.temp_root) if self.config.temp_root is not None else None
        self._path = normalize_path(tempfile.mkdtemp(prefix=self.config.temp_dir_prefix, dir=temp_root))

        try:
            result = clone_repository(repo_url, self._path, shallow=self.config.use_shallow_cloning)
            if not result.success:
                message = (
                    f"Failed to initialize, because could not clone the remote repo: {repo_url}. "
                    "Please verify this is a valid git URL, and that any required network "
                    "connection or login credentials are available."
                )
                git_available, problem = validate_git_availability()
                if not git_available:
                    message += f" {problem}."
                raise CloneError(message, operation="clone", result=result)
            ensure_commit_identity(self._path, self.config.git_user_name, self.config.git_user_email)
        except Exception:
            _remove_working_copy(self._path)
            raise

        self._finalizer = weakref.finalize(self, _remove_working_copy, self._path)

    @property
    def repo_url(self) -> str:
        """URL of the remote git repository."""
        return self._repo_url

    @property
    def path_to_repo(self) -> str:
        """Absolute filesystem path of the local clone."""
        return str(self._path)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        """Remove the local clone. Further calls are no-ops."""
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else self.path_to_repo
        return f"<KeyValueRepo {self._repo_url!r} ({state})>"

    # -- Internal protocol ------------------------------------------------------

    def _check_open(self, operation: str) -> None:
        if self.closed:
            raise StoreClosedError(f"Cannot {operation}: the local repo clone was removed", operation=operation)

    def _synchronize(self, operation: str) -> None:
        """Fast-forward the local clone, raising SyncError on failure."""
        result = pull(self._path)
        if not result.success:
            self.logger.warning(f"Pull failed during {operation}: {result.describe()}")
            raise SyncError(
                "Failed to pull updated version of the repo, even though it was cloned "
                f"successfully. Aborting {operation}.",
                operation=operation,
                result=result
            )

    def _existing_file(self, key: Union[str, os.PathLike]) -> Optional[Path]:
        """
        Canonical path of the file stored at ``key``.

        Returns None unless the key names a regular file whose
        symlink-resolved location is inside the local clone.
        """
        candidate = self._path / relativize_key(key)
        if not candidate.is_file():
            return None
        real_path = candidate.resolve()
        if not real_path.is_relative_to(self._path):
            self.logger.debug(f"Key {os.fspath(key)!r} resolves outside the repository; treating as absent")
            return None
        return real_path

    def _target_file(self, key: Union[str, os.PathLike]) -> Tuple[str, Path]:
        """Repo-relative name and canonical path for a key about to be written."""
        relative = relativize_key(key)
        real_path = normalize_path(self._path / relative)
        if (
            not relative
            or real_path == self._path
            or not real_path.is_relative_to(self._path)
            # case-insensitive filesystems also map ".GIT" onto the git directory
            or real_path.relative_to(self._path).parts[0].lower() == ".git"
        ):
            raise InvalidKeyError(
                f"Key {os.fspath(key)!r} does not name a file inside the repository",
                operation="put"
            )
        return real_path.relative_to(self._path).as_posix(), real_path

    def _outer_get(self, key, operation: str, reader: Callable[[Path], object]):
        """Synchronize, then hand the file at ``key`` to ``reader`` if it exists."""
        self._check_open(operation)
        self._synchronize(operation)
        abspath = self._existing_file(key)
        if abspath is None:
            return None
        return reader(abspath)

    def _outer_put(self, key, operation: str, writer: Callable[[Path], None]) -> None:
        """
        Synchronize, let ``writer`` update the file at ``key``, then publish.

        Exceptions raised by ``writer`` propagate unchanged.
        """
        self._check_open(operation)
        path_in_repo, target = self._target_file(key)
        self._synchronize(operation)
        good_commit = head_commit(self._path)

        target.parent.mkdir(parents=True, exist_ok=True)
        writer(target)

        self._publish(path_in_repo, good_commit, operation)

    def _fail_and_rollback(self, error_class, message: str, operation: str,
                           result: GitCommandResult, good_commit: Optional[str]):
        self.logger.warning(f"{operation} failed: {result.describe()}")
        rollback(self._path, good_commit)
        raise error_class(message, operation=operation, result=result)

    def _publish(self, path_in_repo: str, good_commit: Optional[str], operation: str) -> None:
        """Stage, commit and push one path, rolling back on failure."""
        result = stage(self._path, path_in_repo)
        if not result.success:
            self._fail_and_rollback(
                CommitError, f"Failed to stage {path_in_repo}.", operation, result, good_commit
            )

        if not has_staged_changes(self._path):
            self.logger.debug(f"{path_in_repo} already holds this value; nothing to publish")
            return

        message = self.config.commit_message_template.format(key=path_in_repo)
        result = commit(self._path, message)
        if not result.success:
            self._fail_and_rollback(
                CommitError, f"Failed to commit updated file {path_in_repo}.", operation, result, good_commit
            )

        result = push(self._path)
        if not result.success:
            self._fail_and_rollback(
                PublishConflictError,
                "Failed to push commit with updated file. This could be because someone else "
                "pushed to the repository in the middle of this operation. If this is the "
                "problem, you should be able simply to re-try this operation. If the problem "
                "is deeper, you might create a fresh object before re-trying.",
                operation,
                result,
                good_commit
            )

        self.logger.info(f"Published {path_in_repo} to {self._repo_url}")

    # -- Public API ---------------------------------------------------------------

    def get(self, key: Union[str, os.PathLike], binary: bool = False) -> Optional[Value]:
        """
        Get the contents of the file at ``key``, or None if it does not exist.

        Keys that lead outside the repository (``..`` segments, symlinks)
        are reported as absent.

        Args:
            key: Path of the file relative to the repository root
            binary: Return raw bytes instead of decoded text. Contents that
                are not valid text in ``config.encoding`` are returned as
                bytes even when ``binary`` is False.

        Raises:
            SyncError: if the local clone cannot be updated
        """
        def read(abspath: Path):
            data = abspath.read_bytes()
            if binary:
                return data
            try:
                return data.decode(self.config.encoding)
            except UnicodeDecodeError:
                self.logger.debug(f"{os.fspath(key)!r} is not {self.config.encoding} text; returning bytes")
                return data

        return self._outer_get(key, "get", read)

    def getfile(self, key: Union[str, os.PathLike], dest_path: Union[str, os.PathLike]) -> Optional[str]:
        """
        Copy the file at ``key`` to ``dest_path``.

        An existing file at ``dest_path`` is overwritten; an existing
        directory receives a copy named after the key's base name.

        Returns:
            The path written, or None if the key does not exist
        """
        def copy(abspath: Path) -> str:
            destination = Path(dest_path)
            if destination.is_dir():
                destination = destination / Path(relativize_key(key)).name
            shutil.copyfile(abspath, destination)
            return str(destination)

        return self._outer_get(key, "getfile", copy)

    def put(self, key: Union[str, os.PathLike], value: Value) -> None:
        """
        Set the contents of the file at ``key``, creating it if necessary.

        Text is encoded with ``config.encoding``; bytes are written as-is.

        Raises:
            InvalidKeyError: if the key does not name a file in the repository
            SyncError: if the local clone cannot be updated
            CommitError: if the commit cannot be recorded
            PublishConflictError: if the commit cannot be pushed
        """
        if isinstance(value, str):
            data = value.encode(self.config.encoding)
        elif isinstance(value, (bytes, bytearray)):
            data = bytes(value)
        else:
            raise TypeError(f"value must be str or bytes, not {type(value).__name__}")

        self._outer_put(key, "put", lambda target: target.write_bytes(data))

    def putfile(self, key: Union[str, os.PathLike], src_file_path: Union[str, os.PathLike]) -> None:
        """
        Replace the file at ``key`` with a copy of ``src_file_path``.

        Raises the same errors as put().
        """
        self._outer_put(key, "putfile", lambda target: shutil.copyfile(src_file_path, target))
