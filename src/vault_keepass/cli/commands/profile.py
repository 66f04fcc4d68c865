"""Profile inspection commands: profile list, profile path."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich.markup import escape
from rich.table import Table

from vault_keepass.cli.common import console
from vault_keepass.cli.registry import REGISTRY
from vault_keepass.exceptions import UsageError
from vault_keepass.profiles import list_profiles, load_profile, profile_path
from vault_keepass.settings import config_dir

if TYPE_CHECKING:
    from vault_keepass.cli.registry import CommandInvocation

REGISTRY.group("profile", summary="Inspect profile configuration files.")


@REGISTRY.command("profile__list", summary="List configured profiles.", usage="profile list")
def profile_list_command(invocation: CommandInvocation) -> int:
    """Show every profile file with its database and password mode."""
    if invocation.args:
        raise UsageError("profile list takes no arguments")
    names = list_profiles()
    if not names:
        console.print(f"[yellow]No profiles found in {escape(str(config_dir()))}[/]")
        console.print("[dim]Create conf.env or conf.<profile>.env with KC_DB=... and KC_PASS=...[/]")
        return 0

    table = Table(title="Profiles", show_lines=False)
    table.add_column("Profile", style="cyan", no_wrap=True)
    table.add_column("File")
    table.add_column("Database")
    table.add_column("Password", justify="center")
    for name in names:
        profile = load_profile(name)
        database = escape(str(profile.database_path)) if profile.database_path else "[red]not set[/]"
        password = "[green]stored[/]" if profile.database_password else "[yellow]prompt[/]"
        table.add_row(profile.display_name, escape(str(profile.config_file)), database, password)
    console.print(table)
    console.print(f"\n[dim]{len(names)} profile(s) in {escape(str(config_dir()))}[/]")
    return 0


@REGISTRY.command(
    "profile__path",
    summary="Print the configuration file path of a profile.",
    usage="profile path [NAME]",
)
def profile_path_command(invocation: CommandInvocation) -> int:
    """Print where a profile file is (or would be) located."""
    if len(invocation.args) > 1:
        raise UsageError("profile path takes at most one NAME")
    name = invocation.args[0] if invocation.args else (invocation.options.profile or "")
    typer.echo(str(profile_path(name)))
    return 0


__all__ = [
    "profile_list_command",
    "profile_path_command",
]
