"""``sigarchive verify ARCHIVE`` — check an archive's signature without installing it."""

from __future__ import annotations

import tempfile
from pathlib import Path

import typer
from rich.console import Console

from sigarchive.cli._exit_codes import fail, usage_error
from sigarchive.config import settings
from sigarchive.core.errors import ArchiveError
from sigarchive.core.remote_verifier import RemoteArchiveVerifier

console = Console()


def verify_cmd(
    archive: str = typer.Argument(..., help="Archive path or URL, e.g. lib.pyz."),
    public: Path = typer.Option(
        Path("./cert/pub.key"), "--public", "-P", help="Public key file."
    ),
    nosign: bool = typer.Option(
        False,
        "--ns",
        "-n",
        help="Archive is not signed with a key; verify its checksum only.",
    ),
    temp: Path = typer.Option(
        Path(tempfile.gettempdir()), "--temp", "-t", help="Temporary directory."
    ),
) -> None:
    """Verify the signature of an archive."""
    if not nosign and not public.is_file():
        raise usage_error(console, f"Public key in '{public}' does not exist or is not readable.")
    if not temp.is_dir():
        raise usage_error(console, f"Temporary directory in '{temp}' does not exist or is not writable.")

    console.print(f"Verifying archive: [cyan]{archive}[/cyan]...")
    try:
        verifier = RemoteArchiveVerifier(
            temp,
            temp,
            None if nosign else public,
            lock_dir=settings.lock_dir,
            lock_timeout=settings.lock_timeout,
        )
        verifier.verify(archive)
    except ArchiveError as exc:
        raise fail(console, exc, label="Verification failed")

    console.print("[bold green]Archive signature OK.[/bold green]")
