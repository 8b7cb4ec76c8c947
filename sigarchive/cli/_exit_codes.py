"""Process exit codes and error reporting shared by the CLI commands."""

from __future__ import annotations

import typer
from rich.console import Console

from sigarchive.core.errors import (
    ArchiveError,
    InvalidArchiveName,
    PromotionError,
    SignatureVerificationFailure,
    TransportError,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_NAME = 2
EXIT_TRANSPORT = 3
EXIT_SIGNATURE = 4
EXIT_PROMOTION = 5
EXIT_REBUILD_REQUIRED = 12

_CODES: tuple[tuple[type[Exception], int], ...] = (
    (InvalidArchiveName, EXIT_INVALID_NAME),
    (TransportError, EXIT_TRANSPORT),
    (SignatureVerificationFailure, EXIT_SIGNATURE),
    (PromotionError, EXIT_PROMOTION),
)


def exit_code_for(exc: BaseException) -> int:
    """Map an exception to its distinct non-zero exit code."""
    for exc_type, code in _CODES:
        if isinstance(exc, exc_type):
            return code
    return EXIT_ERROR


def fail(console: Console, exc: ArchiveError | Exception, *, label: str = "Error") -> typer.Exit:
    """Print *exc* and return the ``typer.Exit`` the caller should raise."""
    console.print(f"[bold red]{label}:[/bold red] {exc}")
    return typer.Exit(code=exit_code_for(exc))


def usage_error(console: Console, message: str) -> typer.Exit:
    console.print(f"[bold red]Error:[/bold red] {message}")
    return typer.Exit(code=EXIT_ERROR)
