"""``sigarchive checksums`` — tell whether the source tree changed since the last build.

Exits 0 when no rebuild is needed and 12 when one is.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from sigarchive.cli._exit_codes import EXIT_REBUILD_REQUIRED, fail, usage_error
from sigarchive.core.checksums import (
    compare_checksums,
    compute_checksums,
    load_checksums,
    save_checksums,
)
from sigarchive.core.source_tree import split_patterns

console = Console()


def checksums_cmd(
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
    checksum_file: Path = typer.Option(
        Path("./checksum-file.json"), "--checksum-file", "-c", help="Checksum manifest file."
    ),
    save: bool = typer.Option(
        True, "--save-checksums/--no-save-checksums", help="Save the new checksums."
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Print nothing."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every file hash."),
) -> None:
    """Compare source checksums with the saved manifest."""
    if not src.is_dir():
        raise usage_error(console, f"Source directory in '{src}' does not exist or is not readable.")

    try:
        current = compute_checksums(
            src,
            exclude_files=split_patterns(exclude_files),
            exclude_dirs=split_patterns(exclude_dirs),
        )
        decision = compare_checksums(current, load_checksums(checksum_file))
    except (OSError, ValueError) as exc:
        raise fail(console, exc)

    if verbose and not quiet:
        for rel, checksum in sorted(current.items()):
            console.print(f"file hash for '{rel}': {checksum}")

    if not decision.rebuild_required:
        if not quiet:
            console.print("No rebuild necessary, checksums match.")
        return

    if not quiet:
        console.print(decision.reason)
        if decision.previous_checksum:
            console.print(
                f"  {decision.previous_checksum} -> {decision.current_checksum}"
            )
    if save:
        try:
            save_checksums(checksum_file, decision.checksums)
        except OSError as exc:
            raise fail(console, exc)
        if not quiet:
            console.print(f"Checksums saved to {checksum_file}.")
    raise typer.Exit(code=EXIT_REBUILD_REQUIRED)
