"""Run-scoped settings: global options and the resolved query context.

Both structures are frozen. :class:`RunOptions` is built once from the
command line by the CLI orchestrator; :class:`QueryContext` is assembled by
:func:`vault_keepass.profiles.resolve_context` and threaded down to the
backend adapter.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from vault_keepass.exceptions import UsageError

if TYPE_CHECKING:
    from vault_keepass.backend.detect import BackendHandle

APP_DIR_NAME = "vault-keepass"
CONFIG_DIR_ENV = "VAULT_KEEPASS_CONFIG_DIR"
TIMEOUT_ENV = "VAULT_KEEPASS_TIMEOUT"

# Recognized keys of a profile file, also read from the environment
DB_KEY = "KC_DB"
PASS_KEY = "KC_PASS"

DEFAULT_SESSION_TIMEOUT = 10.0


def config_dir() -> Path:
    """Return the directory holding the profile files.

    Lookup order: ``$VAULT_KEEPASS_CONFIG_DIR``, then
    ``$XDG_CONFIG_HOME/vault-keepass``, then ``~/.config/vault-keepass``.
    """
    override = os.getenv(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    xdg = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / APP_DIR_NAME


def parse_timeout(value: str | float | None) -> float:
    """Validate a session timeout value.

    Args:
        value: Seconds as string or number; ``None`` reads
            ``$VAULT_KEEPASS_TIMEOUT`` and falls back to the default.

    Returns:
        Positive timeout in seconds.

    Raises:
        UsageError: If the value is not a positive number.

    Examples:
        >>> parse_timeout("2.5")
        2.5
    """
    if value is None:
        value = os.getenv(TIMEOUT_ENV) or DEFAULT_SESSION_TIMEOUT
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise UsageError(f"Invalid timeout {value!r}: expected a number of seconds") from None
    if timeout <= 0:
        raise UsageError(f"Timeout must be positive, got {timeout}")
    return timeout


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Global command line options of one invocation.

    Attributes:
        vault_id: Token passed by ansible-vault through ``--vault-id``.
        profile: Explicit profile name (``--profile``).
        key: Explicit entry key (``--key``).
        database: Explicit database path (``--db``).
        password: Explicit database password (``--pass``).
        verbosity: Requested log level name, None for the default.
        dry_run: Log backend commands instead of running them.
        timeout: Session timeout in seconds.
        show_help: ``--help`` was given.
        show_version: ``--version`` was given.
        command: Sub-command name, None when omitted.
        args: Arguments following the sub-command.
    """

    vault_id: str | None = None
    profile: str | None = None
    key: str | None = None
    database: str | None = None
    password: str | None = field(default=None, repr=False)
    verbosity: str | None = None
    dry_run: bool = False
    timeout: float = DEFAULT_SESSION_TIMEOUT
    show_help: bool = False
    show_version: bool = False
    command: str | None = None
    args: tuple[str, ...] = ()

    @property
    def in_vault_mode(self) -> bool:
        """Return True when invoked by ansible-vault as an identity client."""
        return self.vault_id is not None


@dataclass(frozen=True, slots=True)
class QueryContext:
    """Fully resolved query, ready for the backend adapter.

    Attributes:
        profile: Profile name, empty for the default profile.
        key: Entry path inside the database.
        database: Database file path, None when not configured.
        password: Database password, None means prompt interactively.
        config_file: Profile file the settings were loaded from.
        backend: Credential store invocation handle.
        dry_run: Log backend commands instead of running them.
        timeout: Session timeout in seconds.
    """

    profile: str
    key: str
    database: Path | None = None
    password: str | None = field(default=None, repr=False)
    config_file: Path | None = None
    backend: BackendHandle | None = None
    dry_run: bool = False
    timeout: float = DEFAULT_SESSION_TIMEOUT

    @property
    def reference(self) -> str:
        """Return the query reference (``profile__key`` or ``key``)."""
        return f"{self.profile}__{self.key}" if self.profile else self.key

    def with_password(self, password: str) -> QueryContext:
        """Return a copy with the database password set."""
        return replace(self, password=password)


__all__ = [
    "APP_DIR_NAME",
    "CONFIG_DIR_ENV",
    "DB_KEY",
    "DEFAULT_SESSION_TIMEOUT",
    "PASS_KEY",
    "TIMEOUT_ENV",
    "QueryContext",
    "RunOptions",
    "config_dir",
    "parse_timeout",
]
