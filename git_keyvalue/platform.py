"""Cross-platform compatibility utilities for git-keyvalue."""

import os
import platform
import subprocess
from pathlib import Path
from typing import Optional, Union


def is_windows() -> bool:
    """Check if running on Windows."""
    return platform.system().lower() == "windows"


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Expands the user home directory (~) and resolves the result to an
    absolute path with all symlinks followed.

    Args:
        path: Path to normalize

    Returns:
        Normalized Path object
    """
    if isinstance(path, str):
        path = Path(path)

    return path.expanduser().resolve()


def path_separators() -> str:
    """Return every character treated as a path separator on this platform."""
    separators = "/" + os.sep
    if os.altsep:
        separators += os.altsep
    return "".join(sorted(set(separators)))


def get_git_executable() -> str:
    """
    Get the Git executable name for the current platform.

    The GIT_PYTHON_GIT_EXECUTABLE environment variable, which GitPython
    itself honours, takes precedence.
    """
    override = os.environ.get("GIT_PYTHON_GIT_EXECUTABLE")
    if override:
        return override

    if is_windows():
        return "git.exe"
    return "git"


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Validate that Git is available on the current platform.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()

    try:
        result = subprocess.run(
            [git_cmd, "--version"],
            capture_output=True,
            text=True,
            timeout=10
        )

        if result.returncode == 0:
            return True, None
        else:
            return False, f"Git command failed: {result.stderr}"

    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"
