"""sigarchive CLI — Typer-based command-line interface.

Provides the ``sigarchive`` command with subcommands for building, signing,
extracting, verifying and fetching archives, generating keys, and checking
whether a source tree needs rebuilding.

All output uses Rich for formatted terminal display.
"""
