"""``sigarchive fetch ARCHIVE`` — download, verify and install an archive.

Defaults for the staging and output directories and the pinned key come from
``SIGARCHIVE_*`` settings.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from sigarchive.bridge.transport import Transport
from sigarchive.cli._exit_codes import fail, usage_error
from sigarchive.config import settings
from sigarchive.core.errors import ArchiveError
from sigarchive.core.remote_verifier import RemoteArchiveVerifier

console = Console()


def fetch_cmd(
    archive: str = typer.Argument(..., help="Archive path or URL, e.g. https://host/lib.pyz."),
    public: Path = typer.Option(
        None, "--public", "-P", help="Pinned public key file (defaults to settings)."
    ),
    nosign: bool = typer.Option(
        False, "--ns", "-n", help="Accept checksum-only archives; ignore any pinned key."
    ),
    staging: Path = typer.Option(
        None, "--staging", "-t", help="Staging directory (defaults to settings)."
    ),
    output: Path = typer.Option(
        None, "--output", "-o", help="Trusted output directory (defaults to settings)."
    ),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace an existing trusted archive."
    ),
) -> None:
    """Fetch an archive, verify it and promote it to the output directory."""
    key = None if nosign else (public or settings.public_key_file)
    staging_dir = staging or settings.staging_dir
    output_dir = output or settings.output_dir

    if key is not None and not key.is_file():
        raise usage_error(console, f"Public key in '{key}' does not exist or is not readable.")
    output_dir.mkdir(parents=True, exist_ok=True)

    console.print(f"Fetching archive: [cyan]{archive}[/cyan]...")
    try:
        verifier = RemoteArchiveVerifier(
            staging_dir,
            output_dir,
            key,
            accept_checksum_only=settings.accept_checksum_only or nosign,
            transport=Transport(timeout=settings.http_timeout, chunk_size=settings.chunk_size),
            lock_dir=settings.lock_dir,
            lock_timeout=settings.lock_timeout,
        )
        trusted = verifier.fetch(archive, overwrite=overwrite)
    except ArchiveError as exc:
        raise fail(console, exc)

    if key is not None:
        console.print(f"Signed by key [cyan]{verifier.public_key_fingerprint()}[/cyan].")
    console.print(f"[bold green]Trusted archive:[/bold green] {trusted}")
