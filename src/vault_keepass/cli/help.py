"""Help rendering driven by the command schema."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.table import Table
from rich.text import Text

from vault_keepass import meta
from vault_keepass.cli.common import console
from vault_keepass.exceptions import UnknownCommandError
from vault_keepass.settings import config_dir

if TYPE_CHECKING:
    from vault_keepass.cli.registry import CommandRegistry, CommandSpec

PROGRAM_NAME = "vault-keepass-client"


def _spec_for(registry: CommandRegistry, handler_name: str) -> CommandSpec:
    spec = registry.get(handler_name)
    if spec is None:
        raise UnknownCommandError(handler_name[len(registry.prefix) :].replace("__", " "))
    return spec


def describe_options(registry: CommandRegistry, handler_name: str) -> list[tuple[str, str, str]]:
    """Return ``(flags, metavar, description)`` rows for a command.

    Rows follow declaration order; the implicit help switch comes last.
    """
    spec = _spec_for(registry, handler_name)
    return [(", ".join(option.flags), option.metavar or "", option.description) for option in spec.all_options]


def describe_subcommands(registry: CommandRegistry, prefix: str) -> list[tuple[str, str]]:
    """Return ``(display name, summary)`` rows of commands sharing a prefix.

    Groups and hidden commands are skipped; nested commands are listed
    with their sub-levels separated by spaces (``profile list``).
    """
    rows: list[tuple[str, str]] = []
    for spec in registry.specs(prefix):
        if spec.hidden or spec.is_group:
            continue
        display = (registry.prefix + spec.name)[len(prefix) :].replace("__", " ")
        rows.append((display, spec.summary))
    return rows


def _table(title: str) -> Table:
    table = Table(title=title, title_justify="left", title_style="bold", show_header=False, box=None, pad_edge=False)
    table.add_column(style="cyan", no_wrap=True)
    return table


def render_help(registry: CommandRegistry, handler_name: str) -> Group:
    """Compose the help block of a command.

    The block holds the usage line, the sub-command table (top level and
    groups), the option table, and, for the top level only, a footer with
    the configuration directory, author, and version.
    """
    spec = _spec_for(registry, handler_name)
    is_root = spec is registry.root
    usage = spec.usage if is_root else f"{PROGRAM_NAME} [GLOBAL OPTIONS] {spec.usage}"
    parts: list[Text | Table] = [Text(f"Usage: {usage}", style="bold")]
    if spec.summary:
        parts.append(Text(f"\n{spec.summary}"))

    sub_prefix = registry.prefix if is_root else f"{handler_name}__"
    commands = describe_subcommands(registry, sub_prefix) if (is_root or spec.is_group) else []
    if commands:
        table = _table("\nCommands")
        table.add_column()
        for name, summary in commands:
            table.add_row(name, summary)
        parts.append(table)

    options = describe_options(registry, handler_name)
    if options:
        table = _table("\nOptions")
        table.add_column(style="yellow", no_wrap=True)
        table.add_column()
        for flags, metavar, description in options:
            table.add_row(flags, metavar, description)
        parts.append(table)

    if is_root:
        parts.append(
            Text(
                f"\nConfig directory: {config_dir()}\n"
                f"Author: {meta.__author__}\n"
                f"Version: {meta.__version__}",
                style="dim",
            )
        )
    return Group(*parts)


def print_help(registry: CommandRegistry, handler_name: str) -> None:
    """Print the help block of a command to stdout."""
    console.print(render_help(registry, handler_name))


__all__ = [
    "PROGRAM_NAME",
    "describe_options",
    "describe_subcommands",
    "print_help",
    "render_help",
]
