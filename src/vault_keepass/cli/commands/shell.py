"""Generate shell code wiring ansible-vault to this client.

ansible-vault only treats a ``--vault-id label@script`` as a client script
(and passes ``--vault-id label`` to it) when the script name ends in
``-client``. The generated exports bind the query as vault identity::

    eval "$(vault-keepass-client shell john__Ansible/admin)"
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer

from vault_keepass.cli.registry import REGISTRY, OptionSpec
from vault_keepass.exceptions import ClientNameError, UsageError
from vault_keepass.query import QueryRef

if TYPE_CHECKING:
    from vault_keepass.cli.registry import CommandInvocation

CLIENT_SUFFIX = "-client"

IDENTITY_VAR = "ANSIBLE_VAULT_IDENTITY"
ENCRYPT_IDENTITY_VAR = "ANSIBLE_VAULT_ENCRYPT_IDENTITY"
ID_MATCH_VAR = "ANSIBLE_VAULT_ID_MATCH"


def shell_quote(value: str) -> str:
    """Quote a value for a double-quoted POSIX shell string.

    Examples:
        >>> shell_quote('a"b$c')
        '"a\\\\"b\\\\$c"'
    """
    escaped = value
    for char in ("\\", '"', "$", "`"):
        escaped = escaped.replace(char, f"\\{char}")
    return f'"{escaped}"'


def render_exports(query: str, program: str) -> list[str]:
    """Return the ``export`` statements for a query and client program.

    Args:
        query: Query reference used as vault identity label.
        program: Path of the client program ansible-vault will run.

    Returns:
        Export lines, one per variable.

    Raises:
        ClientNameError: If the program basename does not end in ``-client``.
        UsageError: If the query is empty.

    Examples:
        >>> render_exports("john__db", "/opt/x/vault-keepass-client")[0]
        'export ANSIBLE_VAULT_IDENTITY="john__db@/opt/x/vault-keepass-client"'
    """
    if not Path(program).name.endswith(CLIENT_SUFFIX):
        raise ClientNameError(program, CLIENT_SUFFIX)
    if not query:
        raise UsageError("shell needs a QUERY (or --key)")
    return [
        f"export {IDENTITY_VAR}={shell_quote(f'{query}@{program}')}",
        f"export {ENCRYPT_IDENTITY_VAR}={shell_quote(query)}",
        f"export {ID_MATCH_VAR}={shell_quote('True')}",
    ]


@REGISTRY.command(
    "shell",
    summary="Print export statements making ansible-vault use this client for QUERY.",
    usage="shell [OPTIONS] [PROFILE__KEY]",
    options=(
        OptionSpec(
            ("--program",),
            "Client path written into the identity (defaults to the running program).",
            metavar="PATH",
        ),
    ),
    requires=("ansible-vault",),
)
def shell_command(invocation: CommandInvocation) -> int:
    """Print shell exports for eval."""
    if len(invocation.args) > 1:
        raise UsageError("shell takes a single PROFILE__KEY argument")
    if invocation.args:
        query = invocation.args[0]
    else:
        options = invocation.options
        query = str(QueryRef(options.profile or "", options.key)) if options.key else ""
    program = invocation.values.get("program") or invocation.program
    typer.echo("\n".join(render_exports(query, program)))
    return 0


__all__ = [
    "CLIENT_SUFFIX",
    "render_exports",
    "shell_command",
    "shell_quote",
]
