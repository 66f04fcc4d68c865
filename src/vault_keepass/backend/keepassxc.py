"""keepassxc-cli adapter: settings validation and secret extraction."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

import typer

from vault_keepass.backend.session import SessionState, UnlockSession
from vault_keepass.exceptions import (
    AuthenticationFailedError,
    BackendNotFoundError,
    DatabaseNotFoundError,
    KeyNotFoundError,
    MissingDatabaseError,
    UnrecognizedResponseError,
)
from vault_keepass.logging import SUCCESS_LEVEL
from vault_keepass.settings import QueryContext

logger = logging.getLogger(__name__)

NOT_FOUND_MARKER = "Could not find entry"
PASSWORD_MARKER = "Password: "
PASSWORD_ATTRIBUTE = "Password"
AUTH_FAILURE_MARKERS = (
    "Invalid credentials",
    "Error while reading the database",
    "Wrong password",
)

_ATTRIBUTE_LINE = re.compile(r"^(?P<name>[A-Z][A-Za-z]*):(?: (?P<value>.*))?$")
_EXCERPT_LENGTH = 120

PasswordPrompt = Callable[[QueryContext], str]


def prompt_password(context: QueryContext) -> str:
    """Ask for the database password on the terminal, without echo."""
    return typer.prompt(
        f"Password to unlock {context.database}",
        hide_input=True,
        err=True,
    )


def ensure_settings(context: QueryContext, *, prompt: PasswordPrompt = prompt_password) -> QueryContext:
    """Check the database configuration and fill in a missing password.

    Args:
        context: Resolved query context.
        prompt: Callable asking for the password when none is configured.

    Returns:
        Context with a database password set.

    Raises:
        MissingDatabaseError: If no database path is configured.
        DatabaseNotFoundError: If the database file does not exist.
    """
    if context.database is None:
        raise MissingDatabaseError(context.profile)
    if not context.database.is_file():
        raise DatabaseNotFoundError(str(context.database))
    if context.password:
        return context
    if context.dry_run:
        logger.info("[DRY RUN] would prompt for the password of %s", context.database)
        return context.with_password("")
    return context.with_password(prompt(context))


def _excerpt(output: str) -> str:
    text = " ".join(output.split())
    return text if len(text) <= _EXCERPT_LENGTH else text[: _EXCERPT_LENGTH - 3] + "..."


def _raise_for_lookup(output: str, context: QueryContext) -> None:
    if NOT_FOUND_MARKER in output:
        raise KeyNotFoundError(context.key, str(context.database))


def _raise_unmatched(output: str, context: QueryContext) -> None:
    """Raise the error matching output that carried no usable answer."""
    if any(marker in output for marker in AUTH_FAILURE_MARKERS):
        raise AuthenticationFailedError(
            f"Database password rejected for {context.database}",
            details={"database": str(context.database)},
        )
    raise UnrecognizedResponseError(
        f"Unrecognized backend response for '{context.key}': {_excerpt(output) or '(no output)'}",
        output=output,
    )


def extract_password(output: str, context: QueryContext) -> str:
    """Extract the secret from ``keepassxc-cli show -s`` output.

    A "could not find entry" message wins over anything else in the
    output. Otherwise the remainder of the first line starting with
    ``Password: `` is the secret.

    Raises:
        KeyNotFoundError: If the entry does not exist.
        AuthenticationFailedError: If the database password was rejected.
        UnrecognizedResponseError: If the output matches no known pattern.
    """
    _raise_for_lookup(output, context)
    for line in output.splitlines():
        if line.startswith(PASSWORD_MARKER):
            return line[len(PASSWORD_MARKER) :]
    _raise_unmatched(output, context)
    return ""  # pragma: no cover - _raise_unmatched always raises


def parse_attributes(output: str) -> list[tuple[str, str]]:
    """Parse ``keepassxc-cli show`` output into ordered attribute pairs.

    Lines that do not start a new attribute are continuation lines of the
    previous value (multi-line notes).

    Examples:
        >>> parse_attributes("Title: db\\nUserName: admin\\nNotes: a\\nb\\n")
        [('Title', 'db'), ('UserName', 'admin'), ('Notes', 'a\\nb')]
    """
    pairs: list[tuple[str, str]] = []
    for line in output.splitlines():
        match = _ATTRIBUTE_LINE.match(line)
        if match:
            pairs.append((match.group("name"), match.group("value") or ""))
        elif pairs:
            name, value = pairs[-1]
            pairs[-1] = (name, f"{value}\n{line}")
    return pairs


def _run_show(context: QueryContext, *options: str) -> str | None:
    """Run ``show`` for the context entry, None in dry-run mode."""
    if context.backend is None:
        raise BackendNotFoundError("No credential store backend available")
    if context.database is None:
        raise MissingDatabaseError(context.profile)
    command = context.backend.build("show", *options, str(context.database), context.key)
    session = UnlockSession(
        command,
        context.password or "",
        timeout=context.timeout,
        dry_run=context.dry_run,
    )
    result = session.run()
    if result.state is SessionState.SKIPPED:
        return None
    return result.output


def fetch(context: QueryContext) -> str:
    """Fetch the password of the context entry.

    Args:
        context: Query context prepared by :func:`ensure_settings`.

    Returns:
        The secret, empty in dry-run mode.

    Raises:
        KeyNotFoundError: If the entry does not exist.
        AuthenticationFailedError: If the database password was rejected.
        UnrecognizedResponseError: If the output matches no known pattern.
        BackendTimeoutError: If the backend does not answer in time.
    """
    output = _run_show(context, "-s")
    if output is None:
        return ""
    secret = extract_password(output, context)
    logger.log(SUCCESS_LEVEL, "Retrieved password of '%s'", context.reference)
    return secret


def show_entry(context: QueryContext) -> list[tuple[str, str]]:
    """Return the attributes of the context entry, password excluded.

    Raises:
        KeyNotFoundError: If the entry does not exist.
        AuthenticationFailedError: If the database password was rejected.
        UnrecognizedResponseError: If the output matches no known pattern.
    """
    output = _run_show(context)
    if output is None:
        return []
    _raise_for_lookup(output, context)
    attributes = parse_attributes(output)
    if not attributes:
        _raise_unmatched(output, context)
    return [(name, value) for name, value in attributes if name != PASSWORD_ATTRIBUTE]


__all__ = [
    "AUTH_FAILURE_MARKERS",
    "NOT_FOUND_MARKER",
    "PASSWORD_MARKER",
    "ensure_settings",
    "extract_password",
    "fetch",
    "parse_attributes",
    "prompt_password",
    "show_entry",
]
