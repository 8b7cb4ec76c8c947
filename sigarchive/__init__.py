"""sigarchive: signed archive distribution for Python zip applications.

Package a directory into a ``.pyz`` archive, sign it with an Ed25519 key,
and fetch it on the consumer side through a pipeline that only promotes
archives whose signature verifies against a pinned public key.
"""

__version__ = "0.1.0"
__description__ = "Signed archive distribution: build, sign, fetch and verify"

from sigarchive.core.errors import (
    ArchiveError,
    InvalidArchiveName,
    PromotionError,
    SignatureVerificationFailure,
    TransportError,
)
from sigarchive.core.remote_verifier import RemoteArchiveVerifier
from sigarchive.cli.app import app as cli

__all__ = [
    "RemoteArchiveVerifier",
    "ArchiveError",
    "InvalidArchiveName",
    "TransportError",
    "SignatureVerificationFailure",
    "PromotionError",
    "cli",
    "__version__",
]
