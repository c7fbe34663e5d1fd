"""Run git commands through GitPython and report their exit status."""

import logging
from pathlib import Path
from typing import Optional, Union

import git
from git import GitCommandNotFound

from ..platform import get_git_executable
from .utils import GitCommandResult

# Exit status reported when the git executable cannot be started at all,
# matching the shell's "command not found" convention.
COMMAND_NOT_FOUND_STATUS = 127

logger = logging.getLogger('git_keyvalue.git_sync.commands')


def run_git(*args: str, cwd: Optional[Union[str, Path]] = None) -> GitCommandResult:
    """
    Execute ``git <args>`` and return its exit status and output.

    The command never raises on a non-zero exit status; callers decide what
    a failure means from ``GitCommandResult.status``.

    Args:
        *args: Arguments passed after ``git``
        cwd: Working directory for the command (defaults to the process cwd)

    Returns:
        GitCommandResult for the invocation
    """
    args = tuple(str(arg) for arg in args)
    command = [get_git_executable(), *args]
    logger.debug(f"git {' '.join(args)} (cwd={cwd})")

    runner = git.Git(str(cwd) if cwd is not None else None)
    try:
        status, stdout, stderr = runner.execute(
            command,
            with_extended_output=True,
            with_exceptions=False,
        )
    except GitCommandNotFound as e:
        logger.error(f"Git executable could not be started: {e}")
        return GitCommandResult(
            args=args,
            status=COMMAND_NOT_FOUND_STATUS,
            stderr=str(e)
        )

    result = GitCommandResult(args=args, status=status, stdout=stdout, stderr=stderr)
    if not result.success:
        logger.debug(result.describe())
    return result
