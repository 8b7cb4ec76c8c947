"""``sigarchive extract ARCHIVE DEST`` — verify and unpack an archive.

The archive (and the public key, when ``--public`` is given) are copied into
a private temporary directory before opening, so an existing ``.pubkey``
sidecar next to the archive is never overwritten.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

import typer
from rich.console import Console

from sigarchive.bridge.codec import SignedArchiveCodec
from sigarchive.cli._exit_codes import EXIT_INVALID_NAME, fail, usage_error
from sigarchive.core.errors import ArchiveError
from sigarchive.core.naming import is_valid_identifier, pubkey_sidecar_path

console = Console()


def extract_cmd(
    archive: Path = typer.Argument(..., help="Input archive filename, e.g. lib.pyz."),
    destination: Path = typer.Argument(None, help="Destination directory."),
    public: Path = typer.Option(
        None,
        "--public",
        "-P",
        help="Public key file. If not given, <archive>.pubkey is used.",
    ),
    list_only: bool = typer.Option(
        False, "--list", "-l", help="Only list the files, don't extract them."
    ),
) -> None:
    """Extract the contents of a verified archive to a directory."""
    if not is_valid_identifier(archive.name):
        console.print(f"[bold red]Error:[/bold red] Input archive must have .pyz extension, {archive} given.")
        raise typer.Exit(code=EXIT_INVALID_NAME)
    if not archive.is_file():
        raise usage_error(console, f"Archive in '{archive}' does not exist or is not readable.")
    if public is not None and not public.is_file():
        raise usage_error(console, f"Public key in '{public}' does not exist or is not readable.")
    if not list_only and (destination is None or not destination.is_dir()):
        raise usage_error(console, f"Destination directory in '{destination}' does not exist or is not writable.")

    key = public if public is not None else pubkey_sidecar_path(archive)
    with tempfile.TemporaryDirectory(prefix="sigarchive-extract-") as tmp:
        local = Path(tmp) / archive.name
        shutil.copyfile(archive, local)
        if key.is_file():
            shutil.copyfile(key, pubkey_sidecar_path(local))

        console.print(f"Opening archive: [cyan]{archive}[/cyan]...")
        try:
            with SignedArchiveCodec().open(local) as handle:
                names = handle.names()
                if list_only:
                    console.print(f"Listing {len(names)} file(s):")
                    for name in names:
                        console.print(name)
                else:
                    console.print(f"Extracting {len(names)} file(s) to: {destination}...")
                    handle.extract_to(destination)
        except (ArchiveError, OSError) as exc:
            raise fail(console, exc)

    console.print("\n[bold green]All done.[/bold green]")
