"""``sigarchive keygen`` — create an Ed25519 key-pair for signing archives."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from sigarchive.bridge.crypto_bridge import key_fingerprint, write_keypair
from sigarchive.cli._exit_codes import fail, usage_error

console = Console()


def keygen_cmd(
    private: Path = typer.Option(
        Path("./priv.key"), "--private", "-p", help="Private key output file."
    ),
    public: Path = typer.Option(
        Path("./pub.key"), "--public", "-P", help="Public key output file."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing key files."
    ),
) -> None:
    """Generate a new key-pair."""
    if not force:
        for path in (private, public):
            if path.exists():
                raise usage_error(console, f"'{path}' already exists, use --force to overwrite.")
    try:
        for path in (private, public):
            path.parent.mkdir(parents=True, exist_ok=True)
        pub = write_keypair(private, public)
    except OSError as exc:
        raise fail(console, exc)

    console.print(f"Private key written to [cyan]{private}[/cyan]")
    console.print(f"Public key written to [cyan]{public}[/cyan]")
    console.print(f"Fingerprint: [bold]{key_fingerprint(pub)}[/bold]")
