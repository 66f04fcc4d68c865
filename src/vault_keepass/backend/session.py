"""Interactive unlock session with the credential store.

The backend prints an unlock prompt and reads the database password from
its standard input. :class:`UnlockSession` drives that exchange as an
explicit state machine::

    CREATED -> SPAWNED -> AWAITING_PROMPT -> PASSWORD_SENT -> DRAINING -> DONE

A reader thread pumps the child's merged stdout/stderr into a queue so
that waiting for the prompt and draining the output can both be bounded
by a timeout. If the child exits before prompting, the session skips the
password and drains directly. The password is never logged.
"""

from __future__ import annotations

import codecs
import logging
import queue
import re
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import IO, TYPE_CHECKING

from vault_keepass.exceptions import BackendNotFoundError, BackendTimeoutError
from vault_keepass.logging import TRACE_LEVEL
from vault_keepass.process import format_command
from vault_keepass.settings import DEFAULT_SESSION_TIMEOUT

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

PROMPT_PATTERN = re.compile(r"Enter password to unlock[^\n]*?:[ \t]*")

_READ_SIZE = 4096


class SessionState(str, Enum):
    """States of an unlock session."""

    CREATED = "created"
    SPAWNED = "spawned"
    AWAITING_PROMPT = "awaiting prompt"
    PASSWORD_SENT = "password sent"
    DRAINING = "draining"
    DONE = "done"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Outcome of an unlock session.

    Attributes:
        state: Final session state (``DONE`` or ``SKIPPED``).
        output: Backend output following the unlock prompt (everything
            when no prompt was seen).
        return_code: Backend exit code, None when skipped.
        prompted: True if the unlock prompt was seen and answered.
    """

    state: SessionState
    output: str = ""
    return_code: int | None = None
    prompted: bool = False


def _pump(stream: IO[bytes], chunks: queue.Queue[str | None]) -> None:
    """Forward decoded output chunks until EOF, then enqueue ``None``."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            data = stream.read1(_READ_SIZE)  # type: ignore[attr-defined]
            if not data:
                break
            chunks.put(decoder.decode(data))
        tail = decoder.decode(b"", final=True)
        if tail:
            chunks.put(tail)
    except (OSError, ValueError):
        logger.log(TRACE_LEVEL, "Backend output stream closed")
    finally:
        chunks.put(None)


class UnlockSession:
    """Run one backend command that asks for the database password.

    Args:
        command: Full backend command line.
        password: Database password sent once the prompt appears.
        prompt: Pattern of the unlock prompt.
        timeout: Seconds allowed for each of the awaiting-prompt and
            draining states.
        dry_run: Log the command instead of running it.

    Examples:
        >>> session = UnlockSession(["keepassxc-cli", "show", "db.kdbx", "x"], "pw", dry_run=True)
        >>> session.run().state
        <SessionState.SKIPPED: 'skipped'>
    """

    def __init__(
        self,
        command: Sequence[str],
        password: str,
        *,
        prompt: re.Pattern[str] = PROMPT_PATTERN,
        timeout: float = DEFAULT_SESSION_TIMEOUT,
        dry_run: bool = False,
    ) -> None:
        self._command = tuple(command)
        self._password = password
        self._prompt = prompt
        self._timeout = timeout
        self._dry_run = dry_run
        self._state = SessionState.CREATED
        self._proc: subprocess.Popen[bytes] | None = None
        self._chunks: queue.Queue[str | None] = queue.Queue()
        self._reader: threading.Thread | None = None
        self._eof = False

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    def _transition(self, state: SessionState) -> None:
        logger.log(TRACE_LEVEL, "Session %s -> %s", self._state.value, state.value)
        self._state = state

    def run(self) -> SessionResult:
        """Execute the session.

        Returns:
            SessionResult with the output captured after the prompt.

        Raises:
            BackendNotFoundError: If the backend cannot be started.
            BackendTimeoutError: If the prompt or the end of output does
                not arrive within the timeout.
        """
        rendered = format_command(self._command)
        if self._dry_run:
            logger.info("[DRY RUN] would execute: %s", rendered)
            self._transition(SessionState.SKIPPED)
            return SessionResult(state=SessionState.SKIPPED)

        logger.debug("Starting backend: %s", rendered)
        self._spawn()
        try:
            prompted, output = self._await_prompt()
            if prompted:
                self._send_password()
            else:
                logger.debug("Backend finished without an unlock prompt")
                self._close_stdin()
            output += self._drain()
            return_code = self._wait()
        finally:
            self._cleanup()

        self._transition(SessionState.DONE)
        logger.debug("Backend exited with rc=%s", return_code)
        return SessionResult(
            state=SessionState.DONE,
            output=output,
            return_code=return_code,
            prompted=prompted,
        )

    def _spawn(self) -> None:
        try:
            self._proc = subprocess.Popen(  # noqa: S603
                self._command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            raise BackendNotFoundError(
                f"Cannot start backend '{self._command[0]}': {exc}",
                details={"command": list(self._command)},
            ) from exc

        assert self._proc.stdout is not None  # noqa: S101
        self._reader = threading.Thread(
            target=_pump,
            args=(self._proc.stdout, self._chunks),
            name="vault-keepass-reader",
            daemon=True,
        )
        self._reader.start()
        self._transition(SessionState.SPAWNED)

    def _next_chunk(self, deadline: float) -> str | None:
        """Return the next output chunk, None at EOF.

        Raises:
            BackendTimeoutError: If nothing arrives before the deadline.
        """
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise BackendTimeoutError(self._state.value, self._timeout)
        try:
            chunk = self._chunks.get(timeout=remaining)
        except queue.Empty:
            raise BackendTimeoutError(self._state.value, self._timeout) from None
        if chunk is None:
            self._eof = True
        return chunk

    def _await_prompt(self) -> tuple[bool, str]:
        """Read output until the unlock prompt or EOF.

        Returns:
            Tuple of (prompt seen, output following the prompt). Without a
            prompt, the whole output read so far is returned.
        """
        self._transition(SessionState.AWAITING_PROMPT)
        deadline = time.monotonic() + self._timeout
        buffer = ""
        while True:
            chunk = self._next_chunk(deadline)
            if chunk is None:
                return False, buffer
            buffer += chunk
            match = self._prompt.search(buffer)
            if match:
                logger.log(TRACE_LEVEL, "Unlock prompt received")
                return True, buffer[match.end() :]

    def _send_password(self) -> None:
        proc = self._proc
        assert proc is not None and proc.stdin is not None  # noqa: S101
        try:
            proc.stdin.write(self._password.encode() + b"\n")
            proc.stdin.flush()
        except BrokenPipeError:
            logger.debug("Backend closed its input before the password was sent")
        self._close_stdin()
        self._transition(SessionState.PASSWORD_SENT)

    def _close_stdin(self) -> None:
        if self._proc is not None and self._proc.stdin is not None and not self._proc.stdin.closed:
            try:
                self._proc.stdin.close()
            except BrokenPipeError:
                logger.log(TRACE_LEVEL, "Backend input already closed")

    def _drain(self) -> str:
        self._transition(SessionState.DRAINING)
        deadline = time.monotonic() + self._timeout
        parts: list[str] = []
        while not self._eof:
            chunk = self._next_chunk(deadline)
            if chunk is not None:
                parts.append(chunk)
        return "".join(parts)

    def _wait(self) -> int:
        proc = self._proc
        assert proc is not None  # noqa: S101
        try:
            return proc.wait(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            raise BackendTimeoutError(self._state.value, self._timeout) from None

    def _cleanup(self) -> None:
        proc = self._proc
        if proc is None:
            return
        if proc.poll() is None:
            logger.debug("Killing backend process %d", proc.pid)
            proc.kill()
            proc.wait()
        self._close_stdin()
        if self._reader is not None:
            self._reader.join(timeout=1.0)
        if proc.stdout is not None:
            proc.stdout.close()


__all__ = [
    "PROMPT_PATTERN",
    "SessionResult",
    "SessionState",
    "UnlockSession",
]
