"""Classifies the outcome of opening a staged archive through the codec.

The codec performs the cryptographic check; this module only turns its
result into a ``VerificationResult`` and applies the key policy:

- with a pinned public key, only an asymmetric signature is acceptable;
- without one, checksum-only archives pass when ``accept_checksum_only`` is
  enabled (the codec has still recomputed their digest).
"""

from __future__ import annotations

import logging
from pathlib import Path

from sigarchive.bridge.codec import (
    ArchiveCodec,
    ArchiveCodecError,
    SignatureMismatchError,
    SignatureMissingError,
)
from sigarchive.models.archive import FailureReason, VerificationResult

logger = logging.getLogger(__name__)


class SignatureVerifier:
    """Verifies staged archives.

    Parameters
    ----------
    codec:
        The archive codec.  Its ``open`` must raise on an unusable public key
        rather than skipping verification.
    accept_checksum_only:
        Whether a checksum-only archive counts as verified when no public key
        is required.
    """

    def __init__(self, codec: ArchiveCodec, *, accept_checksum_only: bool = True) -> None:
        self._codec = codec
        self._accept_checksum_only = accept_checksum_only

    def verify(self, staging_path: Path, require_pubkey: bool) -> VerificationResult:
        try:
            handle = self._codec.open(staging_path)
        except SignatureMissingError as exc:
            return self._failed(staging_path, FailureReason.SIGNATURE_ABSENT, exc)
        except SignatureMismatchError as exc:
            return self._failed(
                staging_path, FailureReason.SIGNATURE_CRYPTOGRAPHICALLY_INVALID, exc
            )
        except (ArchiveCodecError, OSError) as exc:
            return self._failed(staging_path, FailureReason.ARCHIVE_OPEN_ERROR, exc)
        except Exception as exc:
            # any other codec failure still means the archive cannot be opened
            logger.error(
                "Codec raised %s on %s", type(exc).__name__, staging_path.name, exc_info=True
            )
            return self._failed(staging_path, FailureReason.ARCHIVE_OPEN_ERROR, exc)

        try:
            with handle:
                algorithm = handle.signature_descriptor().algorithm
        except Exception as exc:
            return self._failed(staging_path, FailureReason.ARCHIVE_OPEN_ERROR, exc)

        if require_pubkey and not algorithm.is_asymmetric:
            return self._failed(
                staging_path,
                FailureReason.SIGNATURE_ALGORITHM_MISMATCH,
                f"archive uses {algorithm.value}, an ed25519 signature is required",
            )
        if not algorithm.is_asymmetric and not self._accept_checksum_only:
            return self._failed(
                staging_path,
                FailureReason.SIGNATURE_ALGORITHM_MISMATCH,
                f"checksum-only archives ({algorithm.value}) are not accepted",
            )

        logger.debug("Verified %s (%s).", staging_path.name, algorithm.value)
        return VerificationResult.success(algorithm)

    @staticmethod
    def _failed(
        staging_path: Path, reason: FailureReason, detail: object
    ) -> VerificationResult:
        message = str(detail)
        logger.warning(
            "Verification of %s failed (%s): %s", staging_path.name, reason.value, message
        )
        return VerificationResult.failure(reason, message)
