#!/usr/bin/env python3
"""
Unit tests for the git command layer and key handling helpers.

These run real git commands in throwaway repositories; nothing here
needs a remote.
"""

import logging
import shutil
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent))

from git import GitCommandNotFound, Repo

from git_keyvalue.errors import (
    ErrorCategory, KeyValueGitError, PublishConflictError, InvalidKeyError, SyncError
)
from git_keyvalue.git_sync import (
    GitCommandResult, run_git, clone_repository, ensure_commit_identity,
    stage, has_staged_changes, commit, head_commit, rollback
)
from git_keyvalue.config import Config
from git_keyvalue.git_sync.commands import COMMAND_NOT_FOUND_STATUS
from git_keyvalue.logging_config import setup_logging
from git_keyvalue.platform import get_git_executable, normalize_path, validate_git_availability
from git_keyvalue.store import relativize_key


def init_repository(repo_dir: Path) -> None:
    """Create a repository with one committed file."""
    repo_dir.mkdir(parents=True, exist_ok=True)
    subprocess.run(["git", "init"], cwd=repo_dir, capture_output=True, check=True)
    subprocess.run(["git", "config", "user.name", "Test User"], cwd=repo_dir, capture_output=True, check=True)
    subprocess.run(["git", "config", "user.email", "test@example.com"], cwd=repo_dir, capture_output=True, check=True)
    (repo_dir / "tracked.txt").write_text("original")
    subprocess.run(["git", "add", "."], cwd=repo_dir, capture_output=True, check=True)
    subprocess.run(["git", "commit", "-m", "Initial commit"], cwd=repo_dir, capture_output=True, check=True)


class TestGitCommandResult(unittest.TestCase):
    """Exit status handling."""

    def test_success_depends_only_on_status(self):
        self.assertTrue(GitCommandResult(args=("status",), status=0, stderr="warning: noise").success)
        self.assertFalse(GitCommandResult(args=("push",), status=1, stdout="Everything up-to-date").success)

    def test_describe(self):
        result = GitCommandResult(args=("push", "origin"), status=1, stderr="  rejected\n")
        self.assertEqual(result.command, "git push origin")
        self.assertEqual(result.describe(), "git push origin exited with status 1: rejected")

        bare = GitCommandResult(args=("pull",), status=128)
        self.assertEqual(bare.describe(), "git pull exited with status 128")


class TestRunGit(unittest.TestCase):
    """run_git against real repositories."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.repo_dir = self.temp_dir / "repo"
        init_repository(self.repo_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_successful_command(self):
        result = run_git("rev-parse", "--is-inside-work-tree", cwd=self.repo_dir)

        self.assertTrue(result.success)
        self.assertEqual(result.stdout.strip(), "true")
        self.assertEqual(result.args, ("rev-parse", "--is-inside-work-tree"))

    def test_failing_command_does_not_raise(self):
        result = run_git("rev-parse", "--verify", "no-such-branch", cwd=self.repo_dir)
        self.assertFalse(result.success)
        self.assertNotEqual(result.status, 0)

    def test_missing_executable(self):
        with patch("git.Git.execute", side_effect=GitCommandNotFound("git", "not installed")):
            result = run_git("status", cwd=self.repo_dir)
        self.assertEqual(result.status, COMMAND_NOT_FOUND_STATUS)
        self.assertFalse(result.success)

    def test_path_arguments_are_stringified(self):
        result = run_git("-C", self.repo_dir, "status")
        self.assertTrue(result.success)

    def test_staging_and_commit(self):
        (self.repo_dir / "tracked.txt").write_text("changed")
        self.assertFalse(has_staged_changes(self.repo_dir))

        self.assertTrue(stage(self.repo_dir, "tracked.txt").success)
        self.assertTrue(has_staged_changes(self.repo_dir))

        before = head_commit(self.repo_dir)
        self.assertTrue(commit(self.repo_dir, "update tracked").success)
        self.assertNotEqual(head_commit(self.repo_dir), before)
        self.assertFalse(has_staged_changes(self.repo_dir))

    def test_commit_with_nothing_staged_fails(self):
        self.assertFalse(commit(self.repo_dir, "empty").success)

    def test_head_commit_without_commits(self):
        empty_dir = self.temp_dir / "empty"
        empty_dir.mkdir()
        subprocess.run(["git", "init"], cwd=empty_dir, capture_output=True, check=True)

        self.assertIsNone(head_commit(empty_dir))

    def test_rollback_discards_commits_and_untracked_files(self):
        good = head_commit(self.repo_dir)
        (self.repo_dir / "tracked.txt").write_text("changed")
        stage(self.repo_dir, "tracked.txt")
        commit(self.repo_dir, "local only")
        (self.repo_dir / "scratch").mkdir()
        (self.repo_dir / "scratch" / "file.txt").write_text("untracked")

        self.assertTrue(rollback(self.repo_dir, good))

        self.assertEqual(head_commit(self.repo_dir), good)
        self.assertEqual((self.repo_dir / "tracked.txt").read_text(), "original")
        self.assertFalse((self.repo_dir / "scratch").exists())

    def test_rollback_reports_failure(self):
        self.assertFalse(rollback(self.repo_dir, "0" * 40))


class TestCloneHelpers(unittest.TestCase):
    """clone_repository and ensure_commit_identity."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.source_dir = self.temp_dir / "source"
        init_repository(self.source_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_full_clone(self):
        dest = self.temp_dir / "full"
        dest.mkdir()

        result = clone_repository(str(self.source_dir), dest, shallow=False)

        self.assertTrue(result.success)
        self.assertNotIn("--depth", result.args)
        self.assertEqual((dest / "tracked.txt").read_text(), "original")

    def test_shallow_clone_arguments(self):
        dest = self.temp_dir / "shallow"
        dest.mkdir()

        result = clone_repository(self.source_dir.as_uri(), dest, shallow=True)

        self.assertTrue(result.success)
        self.assertEqual(result.args[:3], ("clone", "--depth", "1"))

    def test_clone_failure(self):
        dest = self.temp_dir / "failed"
        dest.mkdir()

        result = clone_repository(str(self.temp_dir / "missing"), dest)

        self.assertFalse(result.success)

    def test_ensure_commit_identity_keeps_existing_identity(self):
        ensure_commit_identity(self.source_dir, "Other", "other@example.com")

        with Repo(self.source_dir) as repo:
            reader = repo.config_reader("repository")
            self.assertEqual(reader.get_value("user", "name"), "Test User")
            self.assertEqual(reader.get_value("user", "email"), "test@example.com")

    def test_ensure_commit_identity_fills_missing_identity(self):
        repo_dir = self.temp_dir / "bare-identity"
        repo_dir.mkdir()
        subprocess.run(["git", "init"], cwd=repo_dir, capture_output=True, check=True)

        isolated_env = {
            "GIT_CONFIG_NOSYSTEM": "1",
            "GIT_CONFIG_GLOBAL": str(self.temp_dir / "no-global-config"),
            "HOME": str(self.temp_dir),
            "XDG_CONFIG_HOME": str(self.temp_dir / "xdg"),
        }
        with patch.dict("os.environ", isolated_env):
            ensure_commit_identity(repo_dir, "git-keyvalue", "git-keyvalue@localhost")

        with Repo(repo_dir) as repo:
            reader = repo.config_reader("repository")
            self.assertEqual(reader.get_value("user", "name"), "git-keyvalue")
            self.assertEqual(reader.get_value("user", "email"), "git-keyvalue@localhost")


class TestPlatformAndLogging(unittest.TestCase):
    """Platform helpers and logging setup."""

    def test_git_is_available(self):
        available, problem = validate_git_availability()
        self.assertTrue(available)
        self.assertIsNone(problem)

    def test_missing_git_executable(self):
        with patch.dict("os.environ", {"GIT_PYTHON_GIT_EXECUTABLE": "/no/such/git"}):
            self.assertEqual(get_git_executable(), "/no/such/git")
            available, problem = validate_git_availability()
        self.assertFalse(available)
        self.assertIn("not found", problem)

    def test_normalize_path_expands_home(self):
        self.assertEqual(normalize_path("~"), Path.home().resolve())

    def test_setup_logging_is_idempotent(self):
        logger = logging.getLogger('git_keyvalue.store')
        saved = (logger.handlers[:], logger.level, logger.propagate)
        try:
            logger.handlers = []
            setup_logging(Config(log_level="DEBUG"))
            setup_logging(Config(log_level="DEBUG"))
            self.assertEqual(len(logger.handlers), 1)
            self.assertEqual(logger.level, logging.DEBUG)
        finally:
            logger.handlers, logger.level, logger.propagate = saved


class TestKeysAndErrors(unittest.TestCase):
    """Key normalisation and error metadata."""

    def test_relativize_key(self):
        self.assertEqual(relativize_key("/secret/config"), "secret/config")
        self.assertEqual(relativize_key("///secret/config"), "secret/config")
        self.assertEqual(relativize_key("secret/config"), "secret/config")
        self.assertEqual(relativize_key(Path("notes") / "todo.txt"), str(Path("notes") / "todo.txt"))
        self.assertEqual(relativize_key("/"), "")

    def test_error_categories(self):
        self.assertEqual(SyncError("x").category, ErrorCategory.SYNC)
        self.assertEqual(PublishConflictError("x").category, ErrorCategory.PUBLISH)
        self.assertTrue(issubclass(InvalidKeyError, ValueError))
        self.assertTrue(issubclass(InvalidKeyError, KeyValueGitError))

    def test_error_to_dict(self):
        result = GitCommandResult(args=("push",), status=1)
        error = PublishConflictError("push rejected", operation="put", result=result)

        self.assertEqual(error.to_dict(), {
            "error": "PublishConflictError",
            "category": "publish",
            "message": "push rejected",
            "operation": "put",
            "status": 1,
        })
        self.assertEqual(str(error), "push rejected")


if __name__ == "__main__":
    unittest.main()
