"""sigarchive data models — all Pydantic v2, all frozen (immutable)."""

from sigarchive.models.archive import (
    BuildReport,
    FailureReason,
    SignatureAlgorithm,
    SignatureDescriptor,
    VerificationResult,
)
from sigarchive.models.checksums import RebuildDecision

__all__ = [
    # signatures
    "SignatureAlgorithm",
    "SignatureDescriptor",
    # verification
    "FailureReason",
    "VerificationResult",
    # building
    "BuildReport",
    # checksums
    "RebuildDecision",
]
