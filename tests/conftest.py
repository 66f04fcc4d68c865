"""Shared pytest fixtures for the vault-keepass test suite."""

from __future__ import annotations

# Disable Rich colors and force wide terminal BEFORE any imports
# Rich checks these at import time
import os

os.environ["NO_COLOR"] = "1"
os.environ["TERM"] = "dumb"
os.environ["COLUMNS"] = "200"  # Prevent text wrapping in CLI output

import shlex
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from vault_keepass.backend.detect import BackendHandle, BackendKind

# pylint: disable=redefined-outer-name

DB_PASSWORD = "master-pw"

# Entries known to the fake keepassxc-cli: key -> (username, password)
FAKE_ENTRIES = {
    "Ansible/admin": ("admin", "S3cr3t!"),
    "my_pass": ("store1", "store1-pw"),
    "key with spaces": ("spaces", "spaced out"),
    "store1 my_pass": ("joined", "joined-pw"),
    "-N": ("dashed", "dashed-pw"),
}

FAKE_KEEPASSXC = textwrap.dedent(
    '''
    """Minimal keepassxc-cli stand-in: show [-s] DATABASE ENTRY."""
    import sys

    ENTRIES = {entries!r}
    PASSWORD = {password!r}
    MODE = {mode!r}

    args = sys.argv[1:]
    if MODE == "silent":
        import time
        time.sleep(30)
        sys.exit(0)
    if MODE == "no-prompt":
        print("keepassxc-cli 2.7.9")
        sys.exit(0)
    if not args or args[0] != "show":
        print("Unknown command", file=sys.stderr)
        sys.exit(1)
    show_protected = "-s" in args
    database, key = args[-2], args[-1]
    sys.stderr.write("Enter password to unlock " + database + ": ")
    sys.stderr.flush()
    given = sys.stdin.readline().rstrip("\\n")
    sys.stderr.write("\\n")
    if MODE == "garbage":
        print("Segmentation fault (pretend)")
        sys.exit(139)
    if given != PASSWORD:
        print("Error while reading the database: Invalid credentials were provided, please try again.",
              file=sys.stderr)
        sys.exit(1)
    if key not in ENTRIES:
        print("Could not find entry with path " + key + ".", file=sys.stderr)
        sys.exit(1)
    username, secret = ENTRIES[key]
    print("Title: " + key.rsplit("/", 1)[-1])
    print("UserName: " + username)
    print("Password: " + (secret if show_protected else "PROTECTED"))
    print("URL: https://example.invalid")
    print("Notes: first line")
    print("second line")
    '''
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the configuration directory to a temp dir and clear overrides."""
    config = tmp_path / "config"
    config.mkdir()
    monkeypatch.setenv("VAULT_KEEPASS_CONFIG_DIR", str(config))
    for name in ("KC_DB", "KC_PASS", "VAULT_KEEPASS_BACKEND", "VAULT_KEEPASS_TIMEOUT", "VAULT_KEEPASS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return config


@pytest.fixture
def config_home(isolated_env: Path) -> Path:
    """Return the temp configuration directory."""
    return isolated_env


@pytest.fixture
def database(tmp_path: Path) -> Path:
    """Create an (opaque) database file."""
    path = tmp_path / "vault.kdbx"
    path.write_bytes(b"\x03\xd9\xa2\x9a fake kdbx")
    return path


@pytest.fixture
def make_profile(config_home: Path) -> Callable[..., Path]:
    """Write a profile file, ``name=""`` for the default profile."""

    def _make(name: str = "", **values: str) -> Path:
        segment = f".{name}" if name else ""
        path = config_home / f"conf{segment}.env"
        path.write_text("".join(f"{key}={value}\n" for key, value in values.items()), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def fake_backend_factory(tmp_path: Path) -> Callable[[str], BackendHandle]:
    """Build backend handles running the fake keepassxc-cli in a given mode."""

    def _factory(mode: str = "normal") -> BackendHandle:
        script = tmp_path / f"keepassxc-cli-{mode}.py"
        script.write_text(
            FAKE_KEEPASSXC.format(entries=FAKE_ENTRIES, password=DB_PASSWORD, mode=mode),
            encoding="utf-8",
        )
        return BackendHandle(command=(sys.executable, str(script)), kind=BackendKind.OVERRIDE)

    return _factory


@pytest.fixture
def fake_backend(fake_backend_factory: Callable[[str], BackendHandle]) -> BackendHandle:
    """Backend handle of a well-behaved fake keepassxc-cli."""
    return fake_backend_factory("normal")


@pytest.fixture
def fake_backend_env(fake_backend: BackendHandle, monkeypatch: pytest.MonkeyPatch) -> BackendHandle:
    """Expose the fake backend through ``$VAULT_KEEPASS_BACKEND``."""
    monkeypatch.setenv("VAULT_KEEPASS_BACKEND", shlex.join(fake_backend.command))
    return fake_backend


@pytest.fixture
def db_password() -> str:
    """Password accepted by the fake keepassxc-cli."""
    return DB_PASSWORD


@pytest.fixture
def john_profile(make_profile: Callable[..., Path], database: Path) -> Path:
    """Profile ``john`` pointing to the database, with its password stored."""
    return make_profile("john", KC_DB=str(database), KC_PASS=DB_PASSWORD)
