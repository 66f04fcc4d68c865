"""Credential store adapter around keepassxc-cli."""

from vault_keepass.backend.detect import BackendHandle, BackendKind, detect_executable
from vault_keepass.backend.keepassxc import ensure_settings, extract_password, fetch, show_entry
from vault_keepass.backend.session import SessionResult, SessionState, UnlockSession

__all__ = [
    "BackendHandle",
    "BackendKind",
    "SessionResult",
    "SessionState",
    "UnlockSession",
    "detect_executable",
    "ensure_settings",
    "extract_password",
    "fetch",
    "show_entry",
]
