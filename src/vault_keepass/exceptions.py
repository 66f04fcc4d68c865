"""Exceptions and exit codes raised by vault-keepass.

Exception hierarchy::

    VaultKeepassError
        UsageError (bad or missing CLI arguments, also ValueError)
            EmptyKeyError
            MissingCommandError
            UnknownCommandError
            VaultIdMisuseError
            ClientNameError
        ConfigError (profile or database configuration)
            MissingProfileError
            MissingDatabaseError
            DatabaseNotFoundError
        BackendError (keepassxc-cli interaction)
            BackendNotFoundError
            BackendTimeoutError
            AuthenticationFailedError
            UnrecognizedResponseError
        SecretLookupError (also LookupError)
            KeyNotFoundError

Every class carries the process exit code the CLI terminates with.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Documented process exit codes."""

    OK = 0
    GENERIC = 1
    USAGE = 2
    MISSING_COMMAND = 3
    UNKNOWN_COMMAND = 4
    MISSING_PROFILE = 5
    MISSING_DATABASE = 6
    DATABASE_NOT_FOUND = 7
    BACKEND_NOT_FOUND = 8
    VAULT_ID_MISUSE = 9
    KEY_NOT_FOUND = 10
    AUTHENTICATION_FAILED = 11
    UNRECOGNIZED_RESPONSE = 12
    BACKEND_TIMEOUT = 13
    CLIENT_NAME = 14
    INTERRUPTED = 130


class VaultKeepassError(Exception):
    """Base exception for all vault-keepass errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error context as key-value pairs.
        exit_code: Exit code the CLI terminates with.

    Examples:
        >>> raise VaultKeepassError("Something went wrong")
        Traceback (most recent call last):
        ...
        vault_keepass.exceptions.VaultKeepassError: Something went wrong
    """

    exit_code: ExitCode = ExitCode.GENERIC

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize VaultKeepassError.

        Args:
            message: Human-readable error message.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ─────────────────────────────────────────────────────────────────────────────
# Usage errors
# ─────────────────────────────────────────────────────────────────────────────


class UsageError(VaultKeepassError, ValueError):
    """Command line arguments are invalid."""

    exit_code = ExitCode.USAGE


class EmptyKeyError(UsageError):
    """A query resolved to an empty key.

    Attributes:
        reference: The user input that produced the empty key.
    """

    def __init__(self, reference: str = "") -> None:
        """Initialize EmptyKeyError.

        Args:
            reference: The user input that produced the empty key.
        """
        message = f"No key given in query '{reference}'" if reference else "No key given"
        super().__init__(message, details={"reference": reference})
        self.reference = reference


class MissingCommandError(UsageError):
    """No command name was supplied.

    Attributes:
        group: Command group that required a sub-command, empty at top level.
    """

    exit_code = ExitCode.MISSING_COMMAND

    def __init__(self, group: str = "") -> None:
        """Initialize MissingCommandError.

        Args:
            group: Command group that required a sub-command.
        """
        message = f"Missing sub-command for '{group}'" if group else "Missing command"
        super().__init__(message, details={"group": group})
        self.group = group


class UnknownCommandError(UsageError):
    """The command name does not match any registered handler.

    Attributes:
        command: The attempted command name.

    Examples:
        >>> raise UnknownCommandError("fecth")
        Traceback (most recent call last):
        ...
        vault_keepass.exceptions.UnknownCommandError: Unknown command 'fecth'
    """

    exit_code = ExitCode.UNKNOWN_COMMAND

    def __init__(self, command: str) -> None:
        """Initialize UnknownCommandError.

        Args:
            command: The attempted command name.
        """
        super().__init__(f"Unknown command '{command}'", details={"command": command})
        self.command = command


class VaultIdMisuseError(UsageError):
    """``--vault-id`` was combined with an incompatible invocation."""

    exit_code = ExitCode.VAULT_ID_MISUSE


class ClientNameError(UsageError):
    """The client program name breaks the ansible-vault naming convention.

    Attributes:
        program: Path of the program that was rejected.
        suffix: Required basename suffix.
    """

    exit_code = ExitCode.CLIENT_NAME

    def __init__(self, program: str, suffix: str) -> None:
        """Initialize ClientNameError.

        Args:
            program: Path of the program that was rejected.
            suffix: Required basename suffix.
        """
        super().__init__(
            f"Program '{program}' must be named '*{suffix}' to be used as a vault identity client",
            details={"program": program, "suffix": suffix},
        )
        self.program = program
        self.suffix = suffix


# ─────────────────────────────────────────────────────────────────────────────
# Configuration errors
# ─────────────────────────────────────────────────────────────────────────────


class ConfigError(VaultKeepassError):
    """Profile or database configuration is invalid."""


class MissingProfileError(ConfigError):
    """A named profile has no configuration file.

    Attributes:
        profile: Profile name.
        path: Expected configuration file path.
    """

    exit_code = ExitCode.MISSING_PROFILE

    def __init__(self, profile: str, path: str) -> None:
        """Initialize MissingProfileError.

        Args:
            profile: Profile name.
            path: Expected configuration file path.
        """
        super().__init__(
            f"Profile '{profile}' not found (expected {path})",
            details={"profile": profile, "path": path},
        )
        self.profile = profile
        self.path = path


class MissingDatabaseError(ConfigError):
    """No database path is configured."""

    exit_code = ExitCode.MISSING_DATABASE

    def __init__(self, profile: str = "") -> None:
        """Initialize MissingDatabaseError.

        Args:
            profile: Active profile name, empty for the default profile.
        """
        where = f"profile '{profile}'" if profile else "the default profile"
        super().__init__(
            f"No database configured for {where} (set KC_DB or pass --db)",
            details={"profile": profile},
        )
        self.profile = profile


class DatabaseNotFoundError(ConfigError):
    """The configured database file does not exist.

    Attributes:
        path: Configured database path.
    """

    exit_code = ExitCode.DATABASE_NOT_FOUND

    def __init__(self, path: str) -> None:
        """Initialize DatabaseNotFoundError.

        Args:
            path: Configured database path.
        """
        super().__init__(f"Database file not found: {path}", details={"path": path})
        self.path = path


# ─────────────────────────────────────────────────────────────────────────────
# Backend errors
# ─────────────────────────────────────────────────────────────────────────────


class BackendError(VaultKeepassError):
    """Interaction with the credential store executable failed."""


class BackendNotFoundError(BackendError):
    """Neither keepassxc-cli nor the flatpak launcher is available."""

    exit_code = ExitCode.BACKEND_NOT_FOUND


class BackendTimeoutError(BackendError):
    """The backend did not answer in time.

    Attributes:
        state: Session state that timed out.
        timeout: Timeout value in seconds.
    """

    exit_code = ExitCode.BACKEND_TIMEOUT

    def __init__(self, state: str, timeout: float) -> None:
        """Initialize BackendTimeoutError.

        Args:
            state: Session state that timed out.
            timeout: Timeout value in seconds.
        """
        super().__init__(
            f"Backend timed out after {timeout}s while {state}",
            details={"state": state, "timeout": timeout},
        )
        self.state = state
        self.timeout = timeout


class AuthenticationFailedError(BackendError):
    """The database password was rejected."""

    exit_code = ExitCode.AUTHENTICATION_FAILED


class UnrecognizedResponseError(BackendError):
    """The backend output matched no known pattern.

    Attributes:
        output: Captured backend output (never contains the password sent).
    """

    exit_code = ExitCode.UNRECOGNIZED_RESPONSE

    def __init__(self, message: str, output: str = "") -> None:
        """Initialize UnrecognizedResponseError.

        Args:
            message: Human-readable error message.
            output: Captured backend output.
        """
        super().__init__(message, details={"output": output})
        self.output = output


# ─────────────────────────────────────────────────────────────────────────────
# Lookup errors
# ─────────────────────────────────────────────────────────────────────────────


class SecretLookupError(VaultKeepassError, LookupError):
    """A secret could not be looked up."""


class KeyNotFoundError(SecretLookupError):
    """The requested entry does not exist in the database.

    Attributes:
        key: Entry path that was looked up.
        database: Database file searched.

    Examples:
        >>> raise KeyNotFoundError("Ansible/admin", "/tmp/db.kdbx")
        Traceback (most recent call last):
        ...
        vault_keepass.exceptions.KeyNotFoundError: Entry 'Ansible/admin' not found in /tmp/db.kdbx
    """

    exit_code = ExitCode.KEY_NOT_FOUND

    def __init__(self, key: str, database: str) -> None:
        """Initialize KeyNotFoundError.

        Args:
            key: Entry path that was looked up.
            database: Database file searched.
        """
        super().__init__(
            f"Entry '{key}' not found in {database}",
            details={"key": key, "database": database},
        )
        self.key = key
        self.database = database


__all__ = [
    "AuthenticationFailedError",
    "BackendError",
    "BackendNotFoundError",
    "BackendTimeoutError",
    "ClientNameError",
    "ConfigError",
    "DatabaseNotFoundError",
    "EmptyKeyError",
    "ExitCode",
    "KeyNotFoundError",
    "MissingCommandError",
    "MissingDatabaseError",
    "MissingProfileError",
    "SecretLookupError",
    "UnknownCommandError",
    "UnrecognizedResponseError",
    "UsageError",
    "VaultIdMisuseError",
    "VaultKeepassError",
]
