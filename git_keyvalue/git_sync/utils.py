"""Utility classes for the git command layer."""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass
class GitCommandResult:
    """Outcome of one git invocation.

    Only ``status`` is consulted for control decisions; the captured output
    is kept for logging and error messages.
    """
    args: Tuple[str, ...]
    status: int
    stdout: str = ""
    stderr: str = field(default="", repr=False)

    @property
    def success(self) -> bool:
        """Whether git exited with status 0."""
        return self.status == 0

    @property
    def command(self) -> str:
        """Human readable form of the invocation, for logs."""
        return "git " + " ".join(self.args)

    def describe(self) -> str:
        """Short description of a failed invocation for error messages."""
        detail = self.stderr.strip() or self.stdout.strip()
        if detail:
            return f"{self.command} exited with status {self.status}: {detail}"
        return f"{self.command} exited with status {self.status}"
