"""Logging setup for applications embedding git-keyvalue."""

import logging

from .config import Config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: Config) -> None:
    """Attach a console handler to the git-keyvalue loggers at ``config.log_level``."""
    level = getattr(logging, config.log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    loggers = [
        'git_keyvalue.store',
        'git_keyvalue.config',
        'git_keyvalue.git_sync'
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)

        # Add console handler if not already present
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False
