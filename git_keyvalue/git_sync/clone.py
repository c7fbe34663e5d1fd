"""Repository cloning utilities for git-keyvalue."""

import logging
from pathlib import Path

from git import Repo

from .commands import run_git
from .utils import GitCommandResult


def clone_repository(repo_url: str, dest: Path, shallow: bool = True) -> GitCommandResult:
    """
    Clone ``repo_url`` into ``dest``.

    A shallow clone fetches only the HEAD commit. That is enough to read
    every key, and pushing new commits from it works because a new commit
    only references its parent. Pass ``shallow=False`` to get the full
    history when the installed git refuses to push from a shallow clone.

    Args:
        repo_url: URL (or path) of the remote repository
        dest: Existing, empty directory to clone into
        shallow: Whether to clone only the HEAD commit

    Returns:
        GitCommandResult of the clone invocation
    """
    logger = logging.getLogger('git_keyvalue.git_sync.clone')

    args = ["clone"]
    if shallow:
        args += ["--depth", "1"]
    args += [repo_url, str(dest)]

    logger.info(f"Cloning repository from {repo_url} ({'shallow' if shallow else 'full'})")
    result = run_git(*args)
    if result.success:
        logger.info(f"Repository cloned into {dest}")
    else:
        logger.error(f"Git clone failed: {result.describe()}")
    return result


def ensure_commit_identity(repo_dir: Path, user_name: str, user_email: str) -> None:
    """
    Give the clone a commit identity when git has none configured.

    Identities already visible at any config level (system, global or
    repository) are left untouched.
    """
    logger = logging.getLogger('git_keyvalue.git_sync.clone')

    with Repo(repo_dir) as repo:
        reader = repo.config_reader()
        missing = {}
        if not reader.get_value("user", "name", default=""):
            missing["name"] = user_name
        if not reader.get_value("user", "email", default=""):
            missing["email"] = user_email
        reader.release()

        if not missing:
            return

        with repo.config_writer() as writer:
            for option, value in missing.items():
                writer.set_value("user", option, value)

    logger.debug(f"Configured commit identity for {repo_dir}: {sorted(missing)}")
