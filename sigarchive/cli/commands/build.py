"""``sigarchive build`` — package a directory into a signed ``.pyz`` archive."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from sigarchive.bridge.codec import ArchiveBuilder
from sigarchive.bridge.crypto_bridge import KeyFormatError
from sigarchive.cli._exit_codes import fail, usage_error
from sigarchive.core.errors import ArchiveError
from sigarchive.core.source_tree import split_patterns

console = Console()


def build_cmd(
    src: Path = typer.Option(
        Path("./src"), "--src", "-s", help="Source files directory."
    ),
    exclude_files: str = typer.Option(
        "~$",
        "--exclude",
        "-x",
        help="Space separated regular expressions of file names to exclude.",
    ),
    exclude_dirs: str = typer.Option(
        r"/\.svn /\.git",
        "--exclude-dir",
        "-X",
        help="Space separated regular expressions of directories to exclude.",
    ),
    private: Path = typer.Option(
        Path("./cert/priv.key"), "--private", "-p", help="Private key file to sign with."
    ),
    public: Path = typer.Option(
        Path("./cert/pub.key"),
        "--public",
        "-P",
        help="Public key file, attached to the archive as its .pubkey sidecar.",
    ),
    nosign: bool = typer.Option(
        False, "--ns", "-n", help="Don't sign the archive (sha256 checksum only)."
    ),
    main: str = typer.Option(
        None, "--main", "-m", help="Entry point 'module:function' for __main__.py."
    ),
    output: Path = typer.Option(
        Path("./output.pyz"), "--output", "-o", help="Output archive filename."
    ),
) -> None:
    """Build an archive from a source directory and sign it."""
    if not nosign:
        if not private.is_file():
            raise usage_error(console, f"Private key in '{private}' does not exist or is not readable.")
        if not public.is_file():
            raise usage_error(console, f"Public key in '{public}' does not exist or is not readable.")
    if not src.is_dir():
        raise usage_error(console, f"Source directory in '{src}' does not exist or is not readable.")

    console.print(f"Building archive from [cyan]{src}[/cyan]...")
    try:
        report = ArchiveBuilder().build(
            src,
            output,
            private_key_file=None if nosign else private,
            public_key_file=None if nosign else public,
            exclude_files=split_patterns(exclude_files),
            exclude_dirs=split_patterns(exclude_dirs),
            main=main,
        )
    except (ArchiveError, KeyFormatError, OSError, ValueError) as exc:
        raise fail(console, exc)

    for name in report.files:
        console.print(f"  adding {name}")
    if report.signature.algorithm.is_asymmetric:
        console.print(f"Signed the archive with '{private}'.")
    console.print(f"\n[bold green]{report.path} created.[/bold green]")
