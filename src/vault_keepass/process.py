"""Process executor honoring dry-run mode.

Runs external commands via ``subprocess.run`` (argument lists, never
``shell=True``) with a timeout. In dry-run mode the command is logged and
a skipped result is returned instead.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of an external command.

    Attributes:
        args: Command line that was (or would have been) executed.
        return_code: Process exit code, ``None`` when skipped or not started.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration: Execution duration in seconds.
        skipped: True when dry-run mode prevented execution.
        error: Error message when the command could not run.

    Examples:
        >>> CommandResult(args=("true",), return_code=0).ok
        True
    """

    args: tuple[str, ...]
    return_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    skipped: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the command ran and exited with 0."""
        return self.return_code == 0


def format_command(args: Sequence[str]) -> str:
    """Return a shell-quoted rendering of a command for log messages.

    Examples:
        >>> format_command(["flatpak", "info", "org.keepassxc.KeePassXC"])
        'flatpak info org.keepassxc.KeePassXC'
        >>> format_command(["echo", "a b"])
        "echo 'a b'"
    """
    return shlex.join(args)


def run_command(
    args: Sequence[str],
    *,
    dry_run: bool = False,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run an external command and capture its output.

    Args:
        args: Command and arguments.
        dry_run: If True, log the command without executing it.
        timeout: Timeout in seconds (None waits forever).

    Returns:
        CommandResult with captured output. A missing executable or a
        timeout yields a result with ``return_code=None`` and ``error`` set
        rather than raising.
    """
    argv = tuple(args)
    rendered = format_command(argv)
    logger.debug("run_command: %s", rendered)

    if dry_run:
        logger.info("[DRY RUN] would execute: %s", rendered)
        return CommandResult(args=argv, skipped=True)

    start = time.monotonic()
    try:
        proc = subprocess.run(  # noqa: S603
            argv,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        duration = time.monotonic() - start
        logger.warning("Command timed out after %.1fs: %s", duration, rendered)
        return CommandResult(args=argv, duration=duration, error=f"Timed out after {timeout}s")
    except OSError as exc:
        duration = time.monotonic() - start
        logger.debug("Command could not start: %s (%s)", rendered, exc)
        return CommandResult(args=argv, duration=duration, error=str(exc))

    duration = time.monotonic() - start
    if proc.returncode != 0:
        logger.debug("Command failed (rc=%d): %s", proc.returncode, rendered)
    return CommandResult(
        args=argv,
        return_code=proc.returncode,
        stdout=proc.stdout,
        stderr=proc.stderr,
        duration=duration,
    )


__all__ = [
    "DEFAULT_TIMEOUT",
    "CommandResult",
    "format_command",
    "run_command",
]
