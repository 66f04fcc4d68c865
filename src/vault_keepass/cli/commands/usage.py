"""The help command."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vault_keepass.cli.help import print_help
from vault_keepass.cli.registry import LEVEL_SEPARATOR, REGISTRY
from vault_keepass.exceptions import UnknownCommandError

if TYPE_CHECKING:
    from vault_keepass.cli.registry import CommandInvocation


@REGISTRY.command(
    "help",
    summary="Show help for the program or for COMMAND.",
    usage="help [COMMAND...]",
)
def help_command(invocation: CommandInvocation) -> int:
    """Print top-level help, or the help of the named command."""
    registry = invocation.registry or REGISTRY
    if not invocation.args:
        print_help(registry, registry.prefix)
        return 0
    handler_name = registry.prefix + LEVEL_SEPARATOR.join(invocation.args)
    if registry.get(handler_name) is None:
        raise UnknownCommandError(" ".join(invocation.args))
    print_help(registry, handler_name)
    return 0


__all__ = ["help_command"]
