"""Git operations sequenced by the key/value store.

Every function runs one git command in the working copy and hands back
the GitCommandResult; only the exit status is inspected.
"""

import logging
from pathlib import Path
from typing import Optional

from .commands import run_git
from .utils import GitCommandResult

logger = logging.getLogger('git_keyvalue.git_sync.operations')


def pull(repo_dir: Path) -> GitCommandResult:
    """Fast-forward the working copy to the remote's latest commit."""
    return run_git("pull", "--ff-only", cwd=repo_dir)


def stage(repo_dir: Path, path_in_repo: str) -> GitCommandResult:
    """Stage a single path, taken literally rather than as a pathspec."""
    return run_git("--literal-pathspecs", "add", "--", path_in_repo, cwd=repo_dir)


def has_staged_changes(repo_dir: Path) -> bool:
    """Return True if the index differs from HEAD."""
    # --quiet exits 1 when there are differences and 0 when there are none
    result = run_git("diff", "--cached", "--quiet", cwd=repo_dir)
    return result.status != 0


def commit(repo_dir: Path, message: str) -> GitCommandResult:
    """Record the staged changes as a commit."""
    return run_git("commit", "-m", message, cwd=repo_dir)


def push(repo_dir: Path) -> GitCommandResult:
    """Transmit local commits on the current branch to its upstream."""
    return run_git("push", cwd=repo_dir)


def head_commit(repo_dir: Path) -> Optional[str]:
    """Return the full hash of HEAD, or None for a repository without commits."""
    result = run_git("rev-parse", "--verify", "--quiet", "HEAD", cwd=repo_dir)
    if not result.success:
        return None
    return result.stdout.strip() or None


def rollback(repo_dir: Path, good_commit: Optional[str]) -> bool:
    """
    Return the working copy to ``good_commit`` with no local-only changes.

    Unpushed commits and staged or modified tracked files are discarded
    with ``reset --hard``; untracked files and directories are removed with
    ``clean --force -d``.

    Returns:
        True if both steps succeeded
    """
    if good_commit is not None:
        reset_result = run_git("reset", "--hard", good_commit, cwd=repo_dir)
    else:
        reset_result = run_git("reset", "--hard", cwd=repo_dir)
    clean_result = run_git("clean", "--force", "-d", cwd=repo_dir)

    if reset_result.success and clean_result.success:
        logger.info(f"Working copy restored to {good_commit or 'HEAD'}")
        return True

    for result in (reset_result, clean_result):
        if not result.success:
            logger.error(f"Rollback step failed: {result.describe()}")
    return False
