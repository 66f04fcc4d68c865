"""Locate the keepassxc-cli executable.

Detection order:

1. ``$VAULT_KEEPASS_BACKEND`` (shell-split command line, used verbatim).
2. ``keepassxc-cli`` on ``PATH``.
3. The KeePassXC flatpak, through ``flatpak run --command=keepassxc-cli``.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from vault_keepass.exceptions import BackendNotFoundError
from vault_keepass.process import CommandResult, format_command, run_command

logger = logging.getLogger(__name__)

BACKEND_ENV = "VAULT_KEEPASS_BACKEND"
CLI_BINARY = "keepassxc-cli"
SANDBOX_LAUNCHER = "flatpak"
SANDBOX_APP_ID = "org.keepassxc.KeePassXC"

Runner = Callable[..., CommandResult]


class BackendKind(str, Enum):
    """How the credential store is invoked.

    Attributes:
        OVERRIDE: Command line taken from ``$VAULT_KEEPASS_BACKEND``.
        BINARY: ``keepassxc-cli`` found on PATH.
        SANDBOX: ``keepassxc-cli`` run inside the KeePassXC flatpak.
    """

    OVERRIDE = "override"
    BINARY = "binary"
    SANDBOX = "sandbox"


@dataclass(frozen=True, slots=True)
class BackendHandle:
    """Invocation prefix of the credential store executable.

    Attributes:
        command: Command prefix, sub-command arguments are appended to it.
        kind: How the prefix was found.

    Examples:
        >>> handle = BackendHandle(command=("keepassxc-cli",), kind=BackendKind.BINARY)
        >>> handle.build("show", "-s", "db.kdbx", "entry")
        ('keepassxc-cli', 'show', '-s', 'db.kdbx', 'entry')
    """

    command: tuple[str, ...]
    kind: BackendKind = BackendKind.BINARY

    def build(self, *args: str) -> tuple[str, ...]:
        """Return the full command line for a backend sub-command."""
        return (*self.command, *args)

    def __str__(self) -> str:
        return format_command(self.command)


def detect_executable(
    runner: Runner = run_command,
    *,
    which: Callable[[str], str | None] = shutil.which,
) -> BackendHandle:
    """Find how to invoke keepassxc-cli.

    Args:
        runner: Process executor used to probe the flatpak installation.
        which: PATH lookup function.

    Returns:
        Backend handle.

    Raises:
        BackendNotFoundError: If neither keepassxc-cli nor the KeePassXC
            flatpak is available.
    """
    override = os.getenv(BACKEND_ENV)
    if override:
        command = tuple(shlex.split(override))
        if command:
            logger.debug("Backend from $%s: %s", BACKEND_ENV, override)
            return BackendHandle(command=command, kind=BackendKind.OVERRIDE)

    binary = which(CLI_BINARY)
    if binary:
        logger.debug("Backend binary: %s", binary)
        return BackendHandle(command=(binary,), kind=BackendKind.BINARY)

    launcher = which(SANDBOX_LAUNCHER)
    if launcher:
        probe = runner([launcher, "info", SANDBOX_APP_ID])
        if probe.ok:
            logger.debug("Backend via %s sandbox %s (probed in %.2fs)", launcher, SANDBOX_APP_ID, probe.duration)
            return BackendHandle(
                command=(launcher, "run", f"--command={CLI_BINARY}", SANDBOX_APP_ID),
                kind=BackendKind.SANDBOX,
            )
        logger.debug(
            "%s is installed but %s is not: %s",
            launcher,
            SANDBOX_APP_ID,
            probe.error or probe.stderr.strip() or f"exit code {probe.return_code}",
        )

    raise BackendNotFoundError(
        f"Neither '{CLI_BINARY}' nor the '{SANDBOX_APP_ID}' flatpak was found. "
        f"Install KeePassXC or set ${BACKEND_ENV}.",
        details={"binary": CLI_BINARY, "sandbox": SANDBOX_APP_ID},
    )


__all__ = [
    "BACKEND_ENV",
    "CLI_BINARY",
    "SANDBOX_APP_ID",
    "SANDBOX_LAUNCHER",
    "BackendHandle",
    "BackendKind",
    "detect_executable",
]
