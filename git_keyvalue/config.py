"""Configuration management for git-keyvalue."""

import codecs
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()  # Load .env file if it exists


# Whether to git-clone only the HEAD commit of the remote repository.
# Pushing from a shallow clone relies on git accepting pushes whose parent
# history is not present locally; switch to False for a full clone.
USE_SHALLOW_CLONING = True

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Config:
    """Configuration for a KeyValueRepo handle with validation and defaults."""

    # Cloning
    use_shallow_cloning: bool = USE_SHALLOW_CLONING
    temp_dir_prefix: str = "KeyValueGitTempDir"
    temp_root: Optional[Path] = None

    # Values
    encoding: str = "utf-8"

    # Commits
    commit_message_template: str = "git-keyvalue: updating {key}"
    git_user_name: str = "git-keyvalue"
    git_user_email: str = "git-keyvalue@localhost"

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.temp_root, str):
            self.temp_root = Path(self.temp_root)

        if self.temp_root is not None:
            from .platform import normalize_path
            self.temp_root = normalize_path(self.temp_root)

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if not self.temp_dir_prefix:
            raise ValueError("temp_dir_prefix must not be empty")

        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding: {self.encoding}")

        if "{key}" not in self.commit_message_template:
            raise ValueError("commit_message_template must contain a {key} placeholder")

        if not self.git_user_name or not self.git_user_email:
            raise ValueError("git_user_name and git_user_email must not be empty")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_configuration() -> Config:
    """Load configuration from GIT_KEYVALUE_* environment variables."""
    logger = logging.getLogger('git_keyvalue.config')
    defaults = Config()

    try:
        config = Config(
            use_shallow_cloning=_env_flag("GIT_KEYVALUE_SHALLOW_CLONE", defaults.use_shallow_cloning),
            temp_dir_prefix=os.getenv("GIT_KEYVALUE_TEMP_PREFIX", defaults.temp_dir_prefix),
            temp_root=os.getenv("GIT_KEYVALUE_TEMP_ROOT") or None,
            encoding=os.getenv("GIT_KEYVALUE_ENCODING", defaults.encoding),
            commit_message_template=os.getenv("GIT_KEYVALUE_COMMIT_MESSAGE", defaults.commit_message_template),
            git_user_name=os.getenv("GIT_KEYVALUE_USER_NAME", defaults.git_user_name),
            git_user_email=os.getenv("GIT_KEYVALUE_USER_EMAIL", defaults.git_user_email),
            log_level=os.getenv("GIT_KEYVALUE_LOG_LEVEL", defaults.log_level),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")

    if not config.use_shallow_cloning:
        logger.debug("Shallow cloning disabled; handles will perform full clones")

    return config
