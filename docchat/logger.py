"""
Logger factory for consistent log output across DocChat modules.

Verbosity is driven by the ``DOCCHAT_ENV`` environment variable, or by
``configure_logging(env)`` when a ``RAGConfig`` is built in code:
  • ``"dev"``  → DEBUG level
  • ``"prod"`` → WARNING level

Usage:
    from docchat.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Something happened")
"""

import logging
import os
import sys
from typing import Optional

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}

# Set by configure_logging; takes precedence over DOCCHAT_ENV
_env_override: Optional[str] = None

# Loggers created by get_logger without an explicit level
_managed_loggers = set()


def _default_level() -> int:
    env = _env_override or os.getenv("DOCCHAT_ENV", "dev")
    return _ENV_LEVEL_MAP.get(env, logging.INFO)


def configure_logging(env: str) -> None:
    """
    Apply an environment mode ('dev' or 'prod') to every DocChat logger,
    including ones created later.
    """
    global _env_override
    _env_override = env
    level = _default_level()
    for name in _managed_loggers:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Create and return a named logger with a standardised formatter.

    Args:
        name:  Typically ``__name__`` of the calling module.
        level: Explicit logging level override.
               If *None*, the level follows ``configure_logging`` or
               ``DOCCHAT_ENV``.

    Returns:
        A configured ``logging.Logger`` instance.
    """
    resolved_level = level if level is not None else _default_level()
    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if the logger already exists
    if not logger.handlers:
        logger.setLevel(resolved_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(resolved_level)
        console_handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(console_handler)

        logger.propagate = False

        if level is None:
            _managed_loggers.add(name)

    return logger
