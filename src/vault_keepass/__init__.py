"""Resolve ansible-vault passwords from KeePassXC databases.

Public API::

    from vault_keepass import parse_query, resolve_context, ensure_settings, fetch

    query = parse_query("john__Ansible/admin")
    context = ensure_settings(resolve_context(RunOptions(), query, detect_executable()))
    secret = fetch(context)
"""

from vault_keepass.backend import detect_executable, ensure_settings, fetch, show_entry
from vault_keepass.exceptions import ExitCode, VaultKeepassError
from vault_keepass.meta import __version__
from vault_keepass.profiles import Profile, load_profile, profile_exists, profile_path, resolve_context
from vault_keepass.query import QueryRef, parse_get, parse_query
from vault_keepass.settings import QueryContext, RunOptions

__all__ = [
    "ExitCode",
    "Profile",
    "QueryContext",
    "QueryRef",
    "RunOptions",
    "VaultKeepassError",
    "__version__",
    "detect_executable",
    "ensure_settings",
    "fetch",
    "load_profile",
    "parse_get",
    "parse_query",
    "profile_exists",
    "profile_path",
    "resolve_context",
    "show_entry",
]
