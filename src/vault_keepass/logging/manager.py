"""Logging setup for vault-keepass.

All diagnostics go to stderr through a single :class:`rich.logging.RichHandler`
so that stdout stays reserved for secrets and generated shell code.

Two extra levels are registered next to the standard ones:

- ``TRACE`` (5): very noisy protocol details (session state transitions).
- ``SUCCESS`` (25): positive outcomes worth showing with ``--verbose``.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

TRACE_LEVEL = 5
SUCCESS_LEVEL = 25

ROOT_LOGGER_NAME = "vault_keepass"
LOG_LEVEL_ENV = "VAULT_KEEPASS_LOG_LEVEL"
DEFAULT_LEVEL = logging.WARNING

logging.addLevelName(TRACE_LEVEL, "TRACE")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

# Verbosity names accepted by --verbose[=LEVEL]
_VERBOSITY_LEVELS: dict[str, int] = {
    "trace": TRACE_LEVEL,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": SUCCESS_LEVEL,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def level_from_verbosity(value: str | int | None) -> int:
    """Convert a verbosity value into a logging level.

    Args:
        value: ``None`` (use ``VAULT_KEEPASS_LOG_LEVEL`` or WARNING), a level
            name (``"debug"``), or a numeric level (``10`` or ``"10"``).

    Returns:
        Numeric logging level.

    Raises:
        ValueError: If the level name is unknown.

    Examples:
        >>> level_from_verbosity("debug")
        10
        >>> level_from_verbosity(None) >= 10
        True
    """
    if value is None:
        value = os.getenv(LOG_LEVEL_ENV) or DEFAULT_LEVEL
    if isinstance(value, int):
        return value
    text = value.strip().lower()
    if text.isdigit():
        return int(text)
    try:
        return _VERBOSITY_LEVELS[text]
    except KeyError:
        choices = ", ".join(_VERBOSITY_LEVELS)
        raise ValueError(f"Unknown verbosity level {value!r} (choose from: {choices})") from None


def build_handler(level: int, *, console: Console | None = None) -> RichHandler:
    """Create the stderr rich handler used by the CLI.

    Args:
        level: Minimum level emitted by the handler.
        console: Console to write to (defaults to a stderr console).

    Returns:
        Configured RichHandler.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=level <= logging.DEBUG,
        show_path=level <= TRACE_LEVEL,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=False,
    )
    handler.setLevel(level)
    return handler


def init_logging(level: int = DEFAULT_LEVEL, *, console: Console | None = None) -> logging.Logger:
    """Configure the ``vault_keepass`` logger.

    Calling it again replaces the previous handler instead of stacking a
    new one.

    Args:
        level: Minimum level emitted to stderr.
        console: Optional console override (tests).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_vault_keepass", False):
            logger.removeHandler(handler)

    handler = build_handler(level, console=console)
    handler._vault_keepass = True  # type: ignore[attr-defined]  # pylint: disable=protected-access
    logger.addHandler(handler)
    # Logger allows all levels, the handler filters
    logger.setLevel(TRACE_LEVEL)
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``vault_keepass`` namespace.

    Examples:
        >>> get_logger("backend").name
        'vault_keepass.backend'
        >>> get_logger("vault_keepass.cli").name
        'vault_keepass.cli'
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    "DEFAULT_LEVEL",
    "LOG_LEVEL_ENV",
    "ROOT_LOGGER_NAME",
    "SUCCESS_LEVEL",
    "TRACE_LEVEL",
    "build_handler",
    "get_logger",
    "init_logging",
    "level_from_verbosity",
]
