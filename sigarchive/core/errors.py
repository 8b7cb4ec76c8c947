"""Error taxonomy for the fetch-and-verify pipeline.

Every failure that leaves ``RemoteArchiveVerifier`` is one of the classes
below.  Low-level ``OSError``, ``httpx`` and codec exceptions are chained as
``__cause__`` but never raised directly to callers.
"""

from __future__ import annotations

from pathlib import Path

from sigarchive.models.archive import FailureReason


class ArchiveError(RuntimeError):
    """Base class for all sigarchive errors."""


class VerifierConfigError(ArchiveError):
    """Raised when a verifier is constructed with unusable directories or keys."""


class InvalidArchiveName(ArchiveError, ValueError):
    """Raised when an identifier does not follow the archive naming contract.

    No I/O has been performed when this is raised.
    """

    def __init__(self, identifier: str, detail: str = "") -> None:
        self.identifier = identifier
        message = f"'{identifier}' is not a valid archive name"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class TransportError(ArchiveError):
    """Raised when copying an archive or its public key fails."""

    def __init__(self, identifier: str, detail: str = "") -> None:
        self.identifier = identifier
        message = f"Error fetching '{identifier}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SignatureVerificationFailure(ArchiveError):
    """Raised when a staged archive fails signature verification.

    Staging artifacts have already been removed when this is raised.
    """

    def __init__(self, reason: FailureReason, message: str = "") -> None:
        self.reason = reason
        self.message = message
        text = f"Signature verification failed ({reason.value})"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class PromotionError(ArchiveError):
    """Raised when a verified archive cannot be copied to the output directory.

    The verified staging artifact is kept so promotion can be retried
    without fetching again.
    """

    def __init__(self, staging_path: Path, detail: str = "") -> None:
        self.staging_path = staging_path
        message = f"Could not promote verified archive '{staging_path.name}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
