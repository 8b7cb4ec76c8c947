"""Signature and verification models (all frozen)."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class SignatureAlgorithm(str, Enum):
    """Algorithms a signature block can declare.

    The numeric flag is the value stored in the archive trailer.
    """

    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"
    ED25519 = "ed25519"

    @property
    def flag(self) -> int:
        return _ALGORITHM_FLAGS[self]

    @property
    def is_asymmetric(self) -> bool:
        """Whether the algorithm needs a public key (as opposed to a checksum)."""
        return self is SignatureAlgorithm.ED25519

    @classmethod
    def from_flag(cls, flag: int) -> SignatureAlgorithm:
        for algorithm, value in _ALGORITHM_FLAGS.items():
            if value == flag:
                return algorithm
        raise ValueError(f"Unknown signature algorithm flag: {flag:#06x}")


_ALGORITHM_FLAGS: dict[SignatureAlgorithm, int] = {
    SignatureAlgorithm.SHA1: 0x0002,
    SignatureAlgorithm.SHA256: 0x0003,
    SignatureAlgorithm.SHA512: 0x0004,
    SignatureAlgorithm.ED25519: 0x0010,
}


class SignatureDescriptor(BaseModel):
    """The signature block embedded in an archive."""

    model_config = ConfigDict(frozen=True)

    algorithm: SignatureAlgorithm
    hash: str  # hex digest, or hex Ed25519 signature


class FailureReason(str, Enum):
    """Why a staged archive was rejected."""

    ARCHIVE_OPEN_ERROR = "archive-open-error"
    SIGNATURE_ABSENT = "signature-absent"
    SIGNATURE_ALGORITHM_MISMATCH = "signature-algorithm-mismatch"
    SIGNATURE_CRYPTOGRAPHICALLY_INVALID = "signature-cryptographically-invalid"


class VerificationResult(BaseModel):
    """Tagged verification outcome.

    Exactly one of ``algorithm`` (verified) or ``reason`` (failed) is set.

    Examples
    --------
    >>> VerificationResult.success(SignatureAlgorithm.ED25519).verified
    True
    >>> VerificationResult.failure(FailureReason.SIGNATURE_ABSENT).reason.value
    'signature-absent'
    """

    model_config = ConfigDict(frozen=True)

    verified: bool
    algorithm: SignatureAlgorithm | None = None
    reason: FailureReason | None = None
    message: str = ""

    @classmethod
    def success(cls, algorithm: SignatureAlgorithm) -> VerificationResult:
        return cls(verified=True, algorithm=algorithm)

    @classmethod
    def failure(cls, reason: FailureReason, message: str = "") -> VerificationResult:
        return cls(verified=False, reason=reason, message=message)


class BuildReport(BaseModel):
    """Summary of an archive written by ``ArchiveBuilder``."""

    model_config = ConfigDict(frozen=True)

    path: Path
    files: list[str] = Field(default_factory=list)
    signature: SignatureDescriptor
    public_key_sidecar: Path | None = None
