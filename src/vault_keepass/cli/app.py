"""Command line entry point.

The typer application collects the raw arguments and hands them to
:func:`run`, which parses the global options with the declarative schema,
selects the command, and funnels every failure into an exit code.

Examples:
    # Print a password (profile "john" if conf.john.env exists)
    vault-keepass-client get john Ansible/admin

    # As an ansible-vault identity client
    ansible-vault view --vault-id john__Ansible/admin@vault-keepass-client secrets.yml

    # Wire ansible-vault to this client for the current shell
    eval "$(vault-keepass-client shell john__Ansible/admin)"
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import typer

from vault_keepass import meta
from vault_keepass.backend.detect import BackendHandle, detect_executable
from vault_keepass.cli import commands  # noqa: F401  # pylint: disable=unused-import
from vault_keepass.cli.common import report_error
from vault_keepass.cli.help import PROGRAM_NAME, print_help
from vault_keepass.cli.registry import REGISTRY, CommandRegistry, CommandSpec, OptionSpec, parse_options
from vault_keepass.exceptions import ExitCode, UsageError, VaultIdMisuseError, VaultKeepassError
from vault_keepass.logging import init_logging, level_from_verbosity
from vault_keepass.settings import RunOptions, parse_timeout

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "help"
VAULT_MODE_COMMAND = "query"

GLOBAL_OPTIONS: tuple[OptionSpec, ...] = (
    OptionSpec(
        ("--vault-id",),
        "Vault identity given by ansible-vault ([PROFILE__]KEY); runs 'query'.",
        metavar="ID",
    ),
    OptionSpec(("-p", "--profile"), "Profile to load (conf.NAME.env).", metavar="NAME"),
    OptionSpec(("-k", "--key"), "Entry path inside the database.", metavar="KEY"),
    OptionSpec(("--db",), "Database file, overrides KC_DB.", metavar="PATH", dest="database"),
    OptionSpec(("--pass",), "Database password, overrides KC_PASS.", metavar="PASSWORD", dest="password"),
    OptionSpec(("-t", "--timeout"), "Seconds to wait for each backend step.", metavar="SECONDS"),
    OptionSpec(("-n", "--dry-run"), "Log backend commands instead of running them."),
    OptionSpec(
        ("-v", "--verbose"),
        "Log to stderr at LEVEL (trace, debug, info, warning); bare flag means info.",
        metavar="[=LEVEL]",
        dest="verbosity",
        flag_value="info",
    ),
    OptionSpec(("-h", "--help"), "Show this message and exit.", dest="help"),
    OptionSpec(("--version",), "Show the version and exit."),
)

REGISTRY.root = CommandSpec(
    name="",
    summary=meta.__description__,
    usage=f"{PROGRAM_NAME} [GLOBAL OPTIONS] COMMAND [ARGS]...",
    options=GLOBAL_OPTIONS,
)


def parse_global_options(argv: Sequence[str]) -> RunOptions:
    """Build the run options from the command line.

    Global options must precede the command name; everything after it
    belongs to the command.

    Raises:
        UsageError: On unknown options or invalid values.
    """
    parsed = parse_options(GLOBAL_OPTIONS, argv, stop_at_positional=True)
    values = parsed.values
    command, *args = parsed.positionals or (None,)
    return RunOptions(
        vault_id=values["vault_id"],
        profile=values["profile"],
        key=values["key"],
        database=values["database"],
        password=values["password"],
        verbosity=values["verbosity"],
        dry_run=values["dry_run"],
        timeout=parse_timeout(values["timeout"]),
        show_help=values["help"],
        show_version=values["version"],
        command=command,
        args=tuple(args),
    )


def select_command(options: RunOptions) -> str:
    """Return the command to run.

    In vault-identity mode only ``query`` is allowed and is the default;
    otherwise the default is ``help``.

    Raises:
        VaultIdMisuseError: If ``--vault-id`` is empty or combined with
            another command.
    """
    if options.in_vault_mode:
        if not options.vault_id:
            raise VaultIdMisuseError("--vault-id requires a non-empty identity")
        if options.command not in (None, VAULT_MODE_COMMAND):
            raise VaultIdMisuseError(
                f"--vault-id cannot be combined with the '{options.command}' command",
                details={"command": options.command},
            )
        return VAULT_MODE_COMMAND
    return options.command or DEFAULT_COMMAND


def default_program() -> str:
    """Return the absolute path of the running client program."""
    return str(Path(sys.argv[0]).absolute())


def _execute(
    options: RunOptions,
    *,
    program: str,
    registry: CommandRegistry,
    detect: Callable[[], BackendHandle],
) -> int:
    if options.show_version:
        typer.echo(f"{meta.__app_name__} {meta.__version__}")
        return ExitCode.OK
    if options.show_help:
        print_help(registry, registry.prefix)
        return ExitCode.OK

    command = select_command(options)
    code = registry.dispatch(
        registry.prefix,
        command,
        options.args,
        options=options,
        program=program,
        backend_factory=detect,
        show_help=print_help,
    )
    if code != ExitCode.OK:
        report_error(f"Command '{command}' failed with exit code {code}")
    return code


def run(
    argv: Sequence[str],
    *,
    program: str | None = None,
    registry: CommandRegistry = REGISTRY,
    detect: Callable[[], BackendHandle] = detect_executable,
) -> int:
    """Run the client and return its exit code. Never raises.

    Args:
        argv: Command line arguments without the program name.
        program: Client path used by ``shell`` (defaults to ``sys.argv[0]``).
        registry: Command registry.
        detect: Backend detection, called only by commands that need it.

    Returns:
        Process exit code.
    """
    try:
        options = parse_global_options(argv)
        try:
            level = level_from_verbosity(options.verbosity)
        except ValueError as exc:
            raise UsageError(str(exc)) from None
        init_logging(level)
        logger.debug("Global options: %r", options)
        return int(_execute(options, program=program or default_program(), registry=registry, detect=detect))
    except VaultKeepassError as exc:
        logger.debug("%s: %s", type(exc).__name__, exc.message)
        report_error(exc.message, hint="Run with --help for usage." if isinstance(exc, UsageError) else None)
        return int(exc.exit_code)
    except KeyboardInterrupt:
        report_error("Interrupted")
        return int(ExitCode.INTERRUPTED)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.debug("Unexpected failure", exc_info=True)
        report_error(f"Unexpected error ({type(exc).__name__}): {exc}", hint="Run with --verbose=debug for details.")
        return int(ExitCode.GENERIC)


app = typer.Typer(
    name=PROGRAM_NAME,
    add_completion=False,
    help=meta.__description__,
)


@app.command(
    context_settings={
        "allow_extra_args": True,
        "allow_interspersed_args": False,
        "ignore_unknown_options": True,
        "help_option_names": [],
    },
    add_help_option=False,
)
def main(ctx: typer.Context) -> None:
    """Resolve ansible-vault passwords from KeePassXC databases."""
    # click stops at the command name, so a later ``--`` reaches run() intact.
    raise typer.Exit(code=run(tuple(ctx.args)))


if __name__ == "__main__":
    app()


__all__ = [
    "GLOBAL_OPTIONS",
    "app",
    "default_program",
    "main",
    "parse_global_options",
    "run",
    "select_command",
]
