"""Leveled diagnostics for vault-keepass, emitted on stderr via rich."""

from vault_keepass.logging.manager import (
    DEFAULT_LEVEL,
    LOG_LEVEL_ENV,
    SUCCESS_LEVEL,
    TRACE_LEVEL,
    get_logger,
    init_logging,
    level_from_verbosity,
)

__all__ = [
    "DEFAULT_LEVEL",
    "LOG_LEVEL_ENV",
    "SUCCESS_LEVEL",
    "TRACE_LEVEL",
    "get_logger",
    "init_logging",
    "level_from_verbosity",
]
