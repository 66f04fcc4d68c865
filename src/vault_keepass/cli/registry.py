"""Declarative command registry and option parser.

Every command registers a :class:`CommandSpec` listing its flags,
metavariables and descriptions. The same schema drives option parsing and
help rendering, so adding a flag updates ``--help`` automatically.

Commands are stored under ``prefix + name``. A double underscore in a name
adds a sub-level: ``profile__list`` is invoked as ``profile list``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from vault_keepass.exceptions import MissingCommandError, UnknownCommandError, UsageError

if TYPE_CHECKING:
    from vault_keepass.backend.detect import BackendHandle
    from vault_keepass.settings import RunOptions

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "cmd_"
LEVEL_SEPARATOR = "__"
HELP_FLAGS = ("-h", "--help")


# ─────────────────────────────────────────────────────────────────────────────
# Option schema
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """One command line option.

    Attributes:
        flags: Option flags, e.g. ``("-p", "--profile")``.
        description: Help text.
        metavar: Value placeholder. ``None`` declares a boolean switch; a
            metavar in brackets (``[=LEVEL]``) declares an optional value
            that must be attached with ``=``.
        dest: Key in the parsed values, derived from the longest flag when
            empty.
        flag_value: Value used when an optional-value flag is given bare.

    Examples:
        >>> OptionSpec(("-p", "--profile"), "Profile name.", metavar="NAME").key
        'profile'
        >>> OptionSpec(("-v", "--verbose"), "Verbosity.", metavar="[=LEVEL]").optional_value
        True
    """

    flags: tuple[str, ...]
    description: str
    metavar: str | None = None
    dest: str = ""
    flag_value: str | None = None

    def __post_init__(self) -> None:
        if not self.flags:
            raise ValueError("OptionSpec requires at least one flag")
        for flag in self.flags:
            if not flag.startswith("-") or flag in ("-", "--"):
                raise ValueError(f"Invalid option flag {flag!r}")

    @property
    def key(self) -> str:
        """Return the key of this option in the parsed values."""
        if self.dest:
            return self.dest
        longest = max(self.flags, key=len)
        return longest.lstrip("-").replace("-", "_")

    @property
    def takes_value(self) -> bool:
        """Return True if the option carries a value."""
        return self.metavar is not None

    @property
    def optional_value(self) -> bool:
        """Return True if the value may be omitted."""
        return self.metavar is not None and self.metavar.startswith("[")

    @property
    def default(self) -> Any:
        """Return the value used when the option is absent."""
        return None if self.takes_value else False


HELP_OPTION = OptionSpec(HELP_FLAGS, "Show this message and exit.", dest="help")


@dataclass(frozen=True, slots=True)
class ParsedArgs:
    """Result of :func:`parse_options`.

    Attributes:
        values: Option values keyed by :attr:`OptionSpec.key`.
        positionals: Remaining positional arguments, in order.
    """

    values: dict[str, Any]
    positionals: tuple[str, ...]


def _split_short_cluster(arg: str, lookup: dict[str, OptionSpec]) -> list[str]:
    """Expand ``-nN`` into ``-n -N`` when every letter is a boolean switch."""
    letters = [f"-{letter}" for letter in arg[1:]]
    if all(letter in lookup and not lookup[letter].takes_value for letter in letters):
        return letters
    return [arg]


def parse_options(
    options: Iterable[OptionSpec],
    args: Sequence[str],
    *,
    stop_at_positional: bool = False,
) -> ParsedArgs:
    """Parse arguments against an option schema.

    Supported forms: ``--flag``, ``--flag=value``, ``--flag value``,
    ``-f``, ``-f value``, ``-fvalue``, clustered switches (``-nN``), and
    ``--`` to end option parsing. Later occurrences win.

    Args:
        options: Option schema.
        args: Arguments to parse.
        stop_at_positional: Stop at the first positional argument and leave
            it and everything after it untouched.

    Returns:
        ParsedArgs with values for every declared option.

    Raises:
        UsageError: On an unknown option, a missing value, or a value given
            to a switch.

    Examples:
        >>> schema = [OptionSpec(("-k", "--key"), "Key.", metavar="KEY")]
        >>> parsed = parse_options(schema, ["--key=a", "rest"])
        >>> parsed.values, parsed.positionals
        ({'key': 'a'}, ('rest',))
    """
    specs = list(options)
    lookup: dict[str, OptionSpec] = {}
    for spec in specs:
        for flag in spec.flags:
            lookup[flag] = spec
    values: dict[str, Any] = {spec.key: spec.default for spec in specs}
    positionals: list[str] = []

    pending = list(args)
    while pending:
        arg = pending.pop(0)

        if arg == "--":
            positionals.extend(pending)
            break

        if not arg.startswith("-") or arg == "-":
            if stop_at_positional:
                positionals.append(arg)
                positionals.extend(pending)
                break
            positionals.append(arg)
            continue

        if arg.startswith("--"):
            name, has_inline, inline = arg.partition("=")
        else:
            if len(arg) > 2 and arg[:2] in lookup and not lookup[arg[:2]].takes_value:
                expanded = _split_short_cluster(arg, lookup)
                if len(expanded) > 1:
                    pending[:0] = expanded
                    continue
            name, inline = arg[:2], arg[2:]
            if inline.startswith("="):
                inline = inline[1:]
            has_inline = "=" if inline else ""

        spec = lookup.get(name)
        if spec is None:
            raise UsageError(f"Unknown option '{name}'", details={"option": name})

        if not spec.takes_value:
            if has_inline:
                raise UsageError(f"Option '{name}' does not take a value", details={"option": name})
            values[spec.key] = True
        elif spec.optional_value:
            values[spec.key] = inline if has_inline else spec.flag_value
        elif has_inline:
            values[spec.key] = inline
        elif pending:
            values[spec.key] = pending.pop(0)
        else:
            raise UsageError(f"Option '{name}' requires a value ({spec.metavar})", details={"option": name})

    return ParsedArgs(values=values, positionals=tuple(positionals))


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    """Everything a command handler receives.

    Attributes:
        spec: The invoked command.
        options: Global command line options.
        values: Parsed command options.
        args: Positional command arguments.
        backend: Credential store handle, set for commands that need it.
        program: Path of the running client program.
        registry: Registry the command was dispatched from.
    """

    spec: CommandSpec
    options: RunOptions
    values: dict[str, Any] = field(default_factory=dict)
    args: tuple[str, ...] = ()
    backend: BackendHandle | None = None
    program: str = ""
    registry: CommandRegistry | None = None


Handler = Callable[[CommandInvocation], int]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Declaration of a command.

    Attributes:
        name: Command name without prefix, ``__`` separating sub-levels.
        summary: One line description.
        handler: Callable executing the command, None for a group.
        usage: Usage line without the program name.
        options: Declared options, in help order.
        requires: Optional external tools checked before running.
        needs_backend: Detect the credential store before running.
        hidden: Omit from command listings.
    """

    name: str
    summary: str
    handler: Handler | None = None
    usage: str = ""
    options: tuple[OptionSpec, ...] = ()
    requires: tuple[str, ...] = ()
    needs_backend: bool = False
    hidden: bool = False

    @property
    def is_group(self) -> bool:
        """Return True for a command group (no handler of its own)."""
        return self.handler is None

    @property
    def display_name(self) -> str:
        """Return the name as typed by users (``profile list``)."""
        return self.name.replace(LEVEL_SEPARATOR, " ")

    @property
    def all_options(self) -> tuple[OptionSpec, ...]:
        """Return the declared options plus the implicit help switch."""
        if any(flag in HELP_FLAGS for spec in self.options for flag in spec.flags):
            return self.options
        return (*self.options, HELP_OPTION)


class CommandRegistry:
    """Mapping of handler names to command declarations.

    Examples:
        >>> registry = CommandRegistry()
        >>> @registry.command("hello", summary="Say hello.")
        ... def hello(invocation):
        ...     return 0
        >>> registry.names()
        ['cmd_hello']
    """

    def __init__(self, prefix: str = COMMAND_PREFIX) -> None:
        self.prefix = prefix
        self._commands: dict[str, CommandSpec] = {}
        self.root: CommandSpec | None = None

    def register(self, spec: CommandSpec) -> CommandSpec:
        """Register a command declaration.

        Raises:
            ValueError: If the name is empty or already registered.
        """
        if not spec.name:
            raise ValueError("Command name must not be empty")
        handler_name = self.prefix + spec.name
        if handler_name in self._commands:
            raise ValueError(f"Command {spec.name!r} is already registered")
        self._commands[handler_name] = spec
        return spec

    def command(
        self,
        name: str,
        *,
        summary: str,
        usage: str = "",
        options: Sequence[OptionSpec] = (),
        requires: Sequence[str] = (),
        needs_backend: bool = False,
        hidden: bool = False,
    ) -> Callable[[Handler], Handler]:
        """Decorator registering a handler function."""

        def decorator(handler: Handler) -> Handler:
            self.register(
                CommandSpec(
                    name=name,
                    summary=summary,
                    handler=handler,
                    usage=usage or name.replace(LEVEL_SEPARATOR, " "),
                    options=tuple(options),
                    requires=tuple(requires),
                    needs_backend=needs_backend,
                    hidden=hidden,
                )
            )
            return handler

        return decorator

    def group(self, name: str, *, summary: str, usage: str = "") -> CommandSpec:
        """Register a command group whose sub-commands use ``name__*``."""
        return self.register(
            CommandSpec(name=name, summary=summary, usage=usage or f"{name} COMMAND [ARGS]...")
        )

    def get(self, handler_name: str) -> CommandSpec | None:
        """Return the command registered under a full handler name."""
        if self.root is not None and handler_name == self.prefix:
            return self.root
        return self._commands.get(handler_name)

    def names(self, prefix: str | None = None) -> list[str]:
        """Return handler names sharing ``prefix``, in registration order."""
        start = self.prefix if prefix is None else prefix
        return [name for name in self._commands if name.startswith(start)]

    def specs(self, prefix: str | None = None) -> list[CommandSpec]:
        """Return the declarations whose handler names share ``prefix``."""
        return [self._commands[name] for name in self.names(prefix)]

    def resolve(self, prefix: str, name: str, args: Sequence[str]) -> tuple[CommandSpec, tuple[str, ...]]:
        """Find the command for ``prefix + name``, descending into groups.

        Returns:
            Tuple of (command, remaining arguments). A group is returned
            as is when the next argument asks for help.

        Raises:
            MissingCommandError: If the name is empty, or a group is given
                without sub-command.
            UnknownCommandError: If no command matches.
        """
        if not name:
            raise MissingCommandError(prefix[len(self.prefix) :].rstrip("_").replace(LEVEL_SEPARATOR, " "))
        spec = self._commands.get(prefix + name)
        if spec is None:
            attempted = f"{prefix}{name}"[len(self.prefix) :].replace(LEVEL_SEPARATOR, " ")
            raise UnknownCommandError(attempted)
        remaining = tuple(args)
        if not spec.is_group:
            return spec, remaining
        if remaining and remaining[0] in HELP_FLAGS:
            return spec, remaining
        if not remaining:
            raise MissingCommandError(spec.display_name)
        return self.resolve(prefix + name + LEVEL_SEPARATOR, remaining[0], remaining[1:])

    def dispatch(
        self,
        prefix: str,
        name: str,
        args: Sequence[str],
        *,
        options: RunOptions,
        program: str = "",
        backend_factory: Callable[[], BackendHandle] | None = None,
        show_help: Callable[[CommandRegistry, str], None] | None = None,
    ) -> int:
        """Run the command registered under ``prefix + name``.

        Args:
            prefix: Handler name prefix.
            name: Command name.
            args: Arguments following the command name.
            options: Global command line options.
            program: Path of the running client program.
            backend_factory: Called once for commands that need the backend.
            show_help: Renders help for a handler name on ``-h/--help``.

        Returns:
            The handler result code, unchanged.

        Raises:
            MissingCommandError: If the name is empty.
            UnknownCommandError: If no command matches.
            UsageError: If the command options are invalid.
        """
        spec, remaining = self.resolve(prefix, name, args)
        handler_name = self.prefix + spec.name
        parsed = parse_options(spec.all_options, remaining)

        if spec.is_group or parsed.values.get("help"):
            if show_help is not None:
                show_help(self, handler_name)
            return 0

        check_requirements(spec)
        backend = backend_factory() if spec.needs_backend and backend_factory is not None else None

        invocation = CommandInvocation(
            spec=spec,
            options=options,
            values=parsed.values,
            args=parsed.positionals,
            backend=backend,
            program=program,
            registry=self,
        )
        logger.debug("Dispatching '%s' with %d argument(s)", spec.display_name, len(parsed.positionals))
        assert spec.handler is not None  # noqa: S101
        return spec.handler(invocation)


def check_requirements(spec: CommandSpec) -> list[str]:
    """Warn about optional external tools a command declares but are missing.

    Returns:
        Names of the missing tools.
    """
    missing = [tool for tool in spec.requires if shutil.which(tool) is None]
    for tool in missing:
        logger.warning("'%s' is not installed; '%s' output will not be usable as is", tool, spec.display_name)
    return missing


REGISTRY = CommandRegistry()


__all__ = [
    "COMMAND_PREFIX",
    "HELP_OPTION",
    "REGISTRY",
    "CommandInvocation",
    "CommandRegistry",
    "CommandSpec",
    "Handler",
    "OptionSpec",
    "ParsedArgs",
    "check_requirements",
    "parse_options",
]
