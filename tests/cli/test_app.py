"""Tests for the CLI application.

Most tests call :func:`run` directly with the fake keepassxc-cli; a few go
through the typer app with ``CliRunner`` like a user would.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from vault_keepass import meta
from vault_keepass.backend.detect import BackendHandle
from vault_keepass.cli.app import app, parse_global_options, run, select_command
from vault_keepass.exceptions import BackendNotFoundError, ExitCode, UsageError, VaultIdMisuseError
from vault_keepass.settings import RunOptions

# Mark all tests in this module as CLI tests
pytestmark = pytest.mark.cli

runner = CliRunner()

PROGRAM = "/opt/x/vault-keepass-client"

# pylint: disable=redefined-outer-name


@pytest.fixture
def invoke(fake_backend: BackendHandle) -> Callable[..., int]:
    """Run the client with the fake backend."""

    def _invoke(*argv: str, backend: BackendHandle | None = None) -> int:
        handle = backend or fake_backend
        return run(list(argv), program=PROGRAM, detect=lambda: handle)

    return _invoke


class TestGlobalOptions:
    """Parsing of the options preceding the command."""

    def test_full(self) -> None:
        """Every global option lands in RunOptions."""
        options = parse_global_options(
            ["-p", "john", "-k", "db", "--db", "/x.kdbx", "--pass", "pw", "-t", "3", "-n", "-v", "get", "a", "-N"]
        )
        assert options == RunOptions(
            profile="john",
            key="db",
            database="/x.kdbx",
            password="pw",
            timeout=3.0,
            dry_run=True,
            verbosity="info",
            command="get",
            args=("a", "-N"),
        )

    def test_verbose_does_not_swallow_command(self) -> None:
        """A bare -v leaves the command in place."""
        assert parse_global_options(["-v", "get", "k"]).command == "get"
        assert parse_global_options(["--verbose=debug", "get"]).verbosity == "debug"

    def test_select_default(self) -> None:
        """Without a command, help is selected."""
        assert select_command(RunOptions()) == "help"

    def test_select_vault_mode(self) -> None:
        """Vault mode selects query."""
        assert select_command(RunOptions(vault_id="k")) == "query"
        assert select_command(RunOptions(vault_id="k", command="query")) == "query"

    @pytest.mark.parametrize("options", [RunOptions(vault_id=""), RunOptions(vault_id="k", command="get")])
    def test_select_vault_misuse(self, options: RunOptions) -> None:
        """Empty identities and other commands are rejected in vault mode."""
        with pytest.raises(VaultIdMisuseError):
            select_command(options)


class TestSecrets:
    """get, query and vault mode against the fake backend."""

    def test_get_with_profile(
        self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """``get PROFILE KEY`` prints the secret and a newline."""
        assert invoke("get", "john", "Ansible/admin") == 0
        assert capsys.readouterr().out == "S3cr3t!\n"

    def test_get_no_newline(
        self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """``-N`` drops the newline."""
        assert invoke("get", "-N", "john", "Ansible/admin") == 0
        assert capsys.readouterr().out == "S3cr3t!"

    def test_get_joins_words_without_profile(
        self,
        invoke: Callable[..., int],
        make_profile: Callable[..., Path],
        database: Path,
        db_password: str,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """When the first word is not a profile, all words form the key."""
        make_profile("", KC_DB=str(database), KC_PASS=db_password)
        assert invoke("get", "store1", "my_pass") == 0
        assert capsys.readouterr().out == "joined-pw\n"

    def test_get_with_existing_profile_word(
        self,
        invoke: Callable[..., int],
        make_profile: Callable[..., Path],
        database: Path,
        db_password: str,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """When it is a profile, it is consumed as such."""
        make_profile("store1", KC_DB=str(database), KC_PASS=db_password)
        assert invoke("get", "store1", "my_pass") == 0
        assert capsys.readouterr().out == "store1-pw\n"

    def test_repeated_get_is_stable(
        self, invoke: Callable[..., int], john_profile: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Runs in one process share no state: same input, same secret."""
        assert invoke("get", "john", "Ansible/admin") == 0
        first = capsys.readouterr().out
        assert invoke("get", "john", "Ansible/admin") == 0
        assert capsys.readouterr().out == first == "S3cr3t!\n"

        missing = tmp_path / "elsewhere.kdbx"
        assert invoke("--db", str(missing), "get", "john", "Ansible/admin") == ExitCode.DATABASE_NOT_FOUND
        capsys.readouterr()
        assert invoke("get", "john", "Ansible/admin") == 0
        assert capsys.readouterr().out == first

    def test_query(self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """``query PROFILE__KEY`` prints the secret."""
        assert invoke("query", "john__Ansible/admin") == 0
        assert capsys.readouterr().out == "S3cr3t!\n"

    def test_vault_mode(
        self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """ansible-vault passes ``--vault-id LABEL`` and reads stdout."""
        assert invoke("--vault-id", "john__Ansible/admin") == 0
        assert capsys.readouterr().out == "S3cr3t!\n"

    def test_flags_override_query(
        self,
        invoke: Callable[..., int],
        database: Path,
        db_password: str,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """--db, --pass and --key work without any profile file."""
        assert invoke("--db", str(database), "--pass", db_password, "--key", "my_pass", "query") == 0
        assert capsys.readouterr().out == "store1-pw\n"

    def test_environment(
        self,
        invoke: Callable[..., int],
        database: Path,
        db_password: str,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """KC_DB and KC_PASS are honored."""
        monkeypatch.setenv("KC_DB", str(database))
        monkeypatch.setenv("KC_PASS", db_password)
        assert invoke("get", "key", "with", "spaces") == 0
        assert capsys.readouterr().out == "spaced out\n"

    def test_dry_run_prints_nothing(
        self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Dry-run succeeds without printing a secret."""
        assert invoke("-n", "get", "john", "Ansible/admin") == 0
        assert capsys.readouterr().out == ""

    def test_info(self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """info shows attributes but never the password."""
        assert invoke("info", "john", "Ansible/admin") == 0
        out = capsys.readouterr().out
        assert "UserName" in out
        assert "admin" in out
        assert "S3cr3t!" not in out
        assert "PROTECTED" not in out


class TestExitCodes:
    """Every failure maps to its exit code, with a message on stderr."""

    @pytest.mark.parametrize(
        ("argv", "code"),
        [
            (("bogus",), ExitCode.UNKNOWN_COMMAND),
            (("profile",), ExitCode.MISSING_COMMAND),
            (("profile", "nope"), ExitCode.UNKNOWN_COMMAND),
            (("get",), ExitCode.USAGE),
            (("--nope",), ExitCode.USAGE),
            (("--timeout", "abc", "get", "k"), ExitCode.USAGE),
            (("--verbose=loud", "help"), ExitCode.USAGE),
            (("query", "a", "b"), ExitCode.USAGE),
            (("-p", "ghost", "get", "k"), ExitCode.MISSING_PROFILE),
            (("get", "k"), ExitCode.MISSING_DATABASE),
            (("--db", "/nonexistent/db.kdbx", "get", "k"), ExitCode.DATABASE_NOT_FOUND),
            (("--vault-id=",), ExitCode.VAULT_ID_MISUSE),
            (("--vault-id", "k", "get", "k"), ExitCode.VAULT_ID_MISUSE),
        ],
    )
    def test_configuration_errors(
        self,
        invoke: Callable[..., int],
        capsys: pytest.CaptureFixture[str],
        argv: tuple[str, ...],
        code: ExitCode,
    ) -> None:
        """Usage and configuration problems."""
        assert invoke(*argv) == code
        captured = capsys.readouterr()
        assert "Error:" in captured.err
        assert captured.out == ""

    def test_key_not_found(
        self, invoke: Callable[..., int], john_profile: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Unknown entries exit with KEY_NOT_FOUND."""
        assert invoke("get", "john", "Nope/none") == ExitCode.KEY_NOT_FOUND
        assert "Nope/none" in capsys.readouterr().err

    def test_authentication_failed(
        self, invoke: Callable[..., int], make_profile: Callable[..., Path], database: Path
    ) -> None:
        """A wrong stored password exits with AUTHENTICATION_FAILED."""
        make_profile("john", KC_DB=str(database), KC_PASS="wrong")
        assert invoke("get", "john", "Ansible/admin") == ExitCode.AUTHENTICATION_FAILED

    def test_unrecognized(
        self,
        invoke: Callable[..., int],
        john_profile: Path,
        fake_backend_factory: Callable[[str], BackendHandle],
    ) -> None:
        """Garbage output exits with UNRECOGNIZED_RESPONSE."""
        code = invoke("get", "john", "Ansible/admin", backend=fake_backend_factory("garbage"))
        assert code == ExitCode.UNRECOGNIZED_RESPONSE

    def test_timeout(
        self,
        invoke: Callable[..., int],
        john_profile: Path,
        fake_backend_factory: Callable[[str], BackendHandle],
    ) -> None:
        """A silent backend exits with BACKEND_TIMEOUT."""
        code = invoke("-t", "0.5", "get", "john", "Ansible/admin", backend=fake_backend_factory("silent"))
        assert code == ExitCode.BACKEND_TIMEOUT

    def test_backend_not_found(self, john_profile: Path) -> None:
        """Detection failures exit with BACKEND_NOT_FOUND."""

        def detect() -> BackendHandle:
            raise BackendNotFoundError("nothing installed")

        assert run(["get", "john", "Ansible/admin"], program=PROGRAM, detect=detect) == ExitCode.BACKEND_NOT_FOUND

    def test_backend_not_needed_for_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Commands without lookups never detect the backend."""

        def detect() -> BackendHandle:
            raise AssertionError("detection must not run")

        assert run(["help"], program=PROGRAM, detect=detect) == 0
        assert "Commands" in capsys.readouterr().out

    def test_unexpected_error(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        """Unexpected exceptions exit with GENERIC."""

        def explode(_argv: object) -> RunOptions:
            raise RuntimeError("kaboom")

        monkeypatch.setattr("vault_keepass.cli.app.parse_global_options", explode)
        assert run([], program=PROGRAM) == ExitCode.GENERIC
        assert "kaboom" in capsys.readouterr().err

    def test_interrupted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Ctrl-C exits with 130."""

        def interrupt(_argv: object) -> RunOptions:
            raise KeyboardInterrupt

        monkeypatch.setattr("vault_keepass.cli.app.parse_global_options", interrupt)
        assert run([], program=PROGRAM) == ExitCode.INTERRUPTED

    def test_usage_error_hint(self, invoke: Callable[..., int], capsys: pytest.CaptureFixture[str]) -> None:
        """Usage errors point at --help."""
        invoke("--nope")
        assert "--help" in capsys.readouterr().err

    def test_usage_error_is_value_error(self) -> None:
        """Sanity check of the hierarchy used by run()."""
        assert issubclass(UsageError, ValueError)


class TestTyperApp:
    """Invocation through the typer application."""

    def test_version(self) -> None:
        """--version prints name and version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert meta.__version__ in result.stdout

    def test_help(self) -> None:
        """--help and no arguments both show the top level help."""
        for argv in (["--help"], []):
            result = runner.invoke(app, argv)
            assert result.exit_code == 0
            assert "Usage: vault-keepass-client" in result.stdout
            assert "profile list" in result.stdout

    def test_command_help(self) -> None:
        """``help get`` and ``get --help`` show the same block."""
        first = runner.invoke(app, ["help", "get"])
        second = runner.invoke(app, ["get", "--help"])
        assert first.exit_code == second.exit_code == 0
        assert first.stdout == second.stdout
        assert "--no-newline" in first.stdout

    def test_unknown_command_exit_code(self) -> None:
        """Exit codes propagate through typer."""
        result = runner.invoke(app, ["bogus"])
        assert result.exit_code == ExitCode.UNKNOWN_COMMAND

    def test_get_through_env_backend(
        self, fake_backend_env: BackendHandle, john_profile: Path
    ) -> None:
        """Backend detection honors $VAULT_KEEPASS_BACKEND."""
        result = runner.invoke(app, ["get", "john", "Ansible/admin"])
        assert result.exit_code == 0
        assert result.stdout == "S3cr3t!\n"

    def test_double_dash_reaches_command(self, fake_backend_env: BackendHandle, john_profile: Path) -> None:
        """A key starting with a dash is passed after ``--``."""
        result = runner.invoke(app, ["get", "john", "--", "-N"])
        assert result.exit_code == 0
        assert result.stdout == "dashed-pw\n"

    def test_global_options_before_double_dash(self, fake_backend_env: BackendHandle, john_profile: Path) -> None:
        """Global options still parse when the command uses ``--``."""
        result = runner.invoke(app, ["-p", "john", "get", "-N", "--", "-N"])
        assert result.exit_code == 0
        assert result.stdout == "dashed-pw"
