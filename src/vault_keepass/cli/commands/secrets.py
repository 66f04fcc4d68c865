"""Secret lookup commands: get, query, info."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich.markup import escape
from rich.table import Table

from vault_keepass.backend.keepassxc import ensure_settings, fetch, show_entry
from vault_keepass.cli.common import console
from vault_keepass.cli.registry import REGISTRY, OptionSpec
from vault_keepass.exceptions import EmptyKeyError, UsageError
from vault_keepass.profiles import resolve_context
from vault_keepass.query import QueryRef, parse_get, parse_query

if TYPE_CHECKING:
    from vault_keepass.cli.registry import CommandInvocation
    from vault_keepass.settings import QueryContext, RunOptions

NO_NEWLINE_OPTION = OptionSpec(
    ("-N", "--no-newline"),
    "Do not print a trailing newline after the secret.",
)


def apply_overrides(query: QueryRef | None, options: RunOptions) -> QueryRef:
    """Let explicit ``--profile`` / ``--key`` flags replace parsed parts.

    Raises:
        EmptyKeyError: If no key remains.
    """
    profile = options.profile if options.profile else (query.profile if query else "")
    key = options.key if options.key else (query.key if query else "")
    if not key.strip():
        raise EmptyKeyError(str(query) if query else "")
    return QueryRef(profile=profile, key=key)


def _prepare(invocation: CommandInvocation, query: QueryRef) -> QueryContext:
    context = resolve_context(invocation.options, query, invocation.backend)
    return ensure_settings(context)


def _print_secret(invocation: CommandInvocation, query: QueryRef) -> int:
    context = _prepare(invocation, query)
    secret = fetch(context)
    if context.dry_run:
        return 0
    typer.echo(secret, nl=not invocation.values.get("no_newline"))
    return 0


@REGISTRY.command(
    "get",
    summary="Print the password of KEY, from PROFILE when that profile exists.",
    usage="get [OPTIONS] [PROFILE] KEY...",
    options=(NO_NEWLINE_OPTION,),
    needs_backend=True,
)
def get_command(invocation: CommandInvocation) -> int:
    """Print a password given as ``[PROFILE] KEY...``."""
    query = parse_get(*invocation.args) if invocation.args else None
    return _print_secret(invocation, apply_overrides(query, invocation.options))


@REGISTRY.command(
    "query",
    summary="Print the password of a [PROFILE__]KEY reference (default with --vault-id).",
    usage="query [OPTIONS] [QUERY]",
    options=(NO_NEWLINE_OPTION,),
    needs_backend=True,
)
def query_command(invocation: CommandInvocation) -> int:
    """Print a password given as a single query reference."""
    if len(invocation.args) > 1:
        raise UsageError("query takes a single QUERY argument (quote keys containing spaces)")
    reference = invocation.args[0] if invocation.args else invocation.options.vault_id
    query = parse_query(reference) if reference else None
    return _print_secret(invocation, apply_overrides(query, invocation.options))


@REGISTRY.command(
    "info",
    summary="Show the attributes of an entry (the password stays hidden).",
    usage="info [OPTIONS] [PROFILE] KEY...",
    needs_backend=True,
)
def info_command(invocation: CommandInvocation) -> int:
    """Display entry attributes in a table."""
    query = parse_get(*invocation.args) if invocation.args else None
    context = _prepare(invocation, apply_overrides(query, invocation.options))
    attributes = show_entry(context)
    if context.dry_run:
        return 0

    table = Table(title=f"Entry {escape(context.key)}", show_lines=False)
    table.add_column("Attribute", style="cyan", no_wrap=True)
    table.add_column("Value")
    for name, value in attributes:
        table.add_row(name, escape(value) if value else "[dim]-[/]")
    console.print(table)
    source = context.config_file or "command line / environment"
    console.print(f"\n[dim]Profile: {escape(context.profile or 'default')} ({escape(str(source))})[/]")
    console.print(f"[dim]Database: {escape(str(context.database))}[/]")
    return 0


__all__ = [
    "NO_NEWLINE_OPTION",
    "apply_overrides",
    "get_command",
    "info_command",
    "query_command",
]
