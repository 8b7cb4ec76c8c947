"""Main Typer application — imports and registers all CLI commands.

Entry point: ``sigarchive`` (configured via pyproject.toml console scripts).
"""

from __future__ import annotations

import logging

import typer

from sigarchive.cli.commands.build import build_cmd
from sigarchive.cli.commands.checksums import checksums_cmd
from sigarchive.cli.commands.extract import extract_cmd
from sigarchive.cli.commands.fetch import fetch_cmd
from sigarchive.cli.commands.keygen import keygen_cmd
from sigarchive.cli.commands.verify import verify_cmd
from sigarchive.config import settings

app = typer.Typer(
    name="sigarchive",
    help="sigarchive: build, sign, fetch and verify .pyz archives.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _configure(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
app.command(name="build", help="Build and sign an archive.")(build_cmd)
app.command(name="extract", help="Verify and extract an archive.")(extract_cmd)
app.command(name="verify", help="Verify an archive signature.")(verify_cmd)
app.command(name="fetch", help="Fetch, verify and install an archive.")(fetch_cmd)
app.command(name="keygen", help="Generate a signing key-pair.")(keygen_cmd)
app.command(name="checksums", help="Check whether sources need rebuilding.")(checksums_cmd)


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    main()
