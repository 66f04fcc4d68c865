"""Tests for run-scoped settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from vault_keepass.exceptions import UsageError
from vault_keepass.settings import (
    DEFAULT_SESSION_TIMEOUT,
    QueryContext,
    RunOptions,
    config_dir,
    parse_timeout,
)


class TestConfigDir:
    """Configuration directory lookup."""

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """The explicit override wins."""
        monkeypatch.setenv("VAULT_KEEPASS_CONFIG_DIR", str(tmp_path / "custom"))
        assert config_dir() == tmp_path / "custom"

    def test_xdg_config_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """XDG_CONFIG_HOME is honored when there is no override."""
        monkeypatch.delenv("VAULT_KEEPASS_CONFIG_DIR")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert config_dir() == tmp_path / "vault-keepass"

    def test_home_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without any variable the directory lives under ~/.config."""
        monkeypatch.delenv("VAULT_KEEPASS_CONFIG_DIR")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert config_dir() == tmp_path / ".config" / "vault-keepass"


class TestParseTimeout:
    """Timeout validation."""

    def test_default(self) -> None:
        """None falls back to the default."""
        assert parse_timeout(None) == DEFAULT_SESSION_TIMEOUT

    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """None reads the environment first."""
        monkeypatch.setenv("VAULT_KEEPASS_TIMEOUT", "3")
        assert parse_timeout(None) == 3.0

    @pytest.mark.parametrize("value", ["abc", "0", "-1", ""])
    def test_invalid(self, value: str) -> None:
        """Non numbers and non positive values are usage errors."""
        with pytest.raises(UsageError):
            parse_timeout(value)


class TestDataclasses:
    """RunOptions and QueryContext."""

    def test_vault_mode(self) -> None:
        """An empty vault id still means vault mode."""
        assert RunOptions(vault_id="").in_vault_mode
        assert not RunOptions().in_vault_mode

    def test_password_hidden_from_repr(self) -> None:
        """Passwords never show in repr output."""
        options = RunOptions(password="hunter2")
        context = QueryContext(profile="", key="k", password="hunter2")
        assert "hunter2" not in repr(options)
        assert "hunter2" not in repr(context)

    def test_reference(self) -> None:
        """The reference joins profile and key."""
        assert QueryContext(profile="john", key="db").reference == "john__db"
        assert QueryContext(profile="", key="db").reference == "db"

    def test_with_password_returns_copy(self) -> None:
        """with_password leaves the original untouched."""
        context = QueryContext(profile="", key="k")
        updated = context.with_password("pw")
        assert updated.password == "pw"
        assert context.password is None
