"""Exit-status based git command layer for git-keyvalue."""

from .utils import GitCommandResult
from .commands import run_git
from .clone import clone_repository, ensure_commit_identity
from .operations import pull, stage, has_staged_changes, commit, push, head_commit, rollback

__all__ = [
    'GitCommandResult',
    'run_git',
    'clone_repository',
    'ensure_commit_identity',
    'pull',
    'stage',
    'has_staged_changes',
    'commit',
    'push',
    'head_commit',
    'rollback'
]
