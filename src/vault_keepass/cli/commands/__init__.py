"""Built-in commands, registered on import.

Import order is registration order, which is the order of the command
listing in the top-level help.
"""

from vault_keepass.cli.commands import secrets  # noqa: I001
from vault_keepass.cli.commands import shell
from vault_keepass.cli.commands import usage
from vault_keepass.cli.commands import profile

__all__ = ["profile", "secrets", "shell", "usage"]
