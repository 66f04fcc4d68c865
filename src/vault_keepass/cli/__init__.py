"""Command line interface for vault-keepass."""
