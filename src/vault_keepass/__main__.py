"""Allow ``python -m vault_keepass``."""

from vault_keepass.cli.app import app


def main() -> None:
    """Run the vault-keepass command line client."""
    app()


if __name__ == "__main__":
    main()
