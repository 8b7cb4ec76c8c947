"""Unit tests for the frozen pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sigarchive.core.errors import (
    ArchiveError,
    InvalidArchiveName,
    PromotionError,
    SignatureVerificationFailure,
    TransportError,
)
from sigarchive.models.archive import (
    FailureReason,
    SignatureAlgorithm,
    SignatureDescriptor,
    VerificationResult,
)


class TestSignatureAlgorithm:
    @pytest.mark.parametrize(
        "algorithm,flag",
        [
            (SignatureAlgorithm.SHA1, 0x2),
            (SignatureAlgorithm.SHA256, 0x3),
            (SignatureAlgorithm.SHA512, 0x4),
            (SignatureAlgorithm.ED25519, 0x10),
        ],
    )
    def test_flags(self, algorithm, flag):
        assert algorithm.flag == flag
        assert SignatureAlgorithm.from_flag(flag) is algorithm

    def test_unknown_flag(self):
        with pytest.raises(ValueError):
            SignatureAlgorithm.from_flag(0x1)

    def test_only_ed25519_is_asymmetric(self):
        assert [a for a in SignatureAlgorithm if a.is_asymmetric] == [SignatureAlgorithm.ED25519]


class TestVerificationResult:
    def test_success(self):
        result = VerificationResult.success(SignatureAlgorithm.ED25519)
        assert result.verified and result.reason is None

    def test_failure(self):
        result = VerificationResult.failure(FailureReason.SIGNATURE_ABSENT, "no block")
        assert not result.verified
        assert result.message == "no block"

    def test_frozen(self):
        result = VerificationResult.success(SignatureAlgorithm.SHA1)
        with pytest.raises(ValidationError):
            result.verified = False

    def test_descriptor_frozen(self):
        desc = SignatureDescriptor(algorithm=SignatureAlgorithm.SHA1, hash="ab")
        with pytest.raises(ValidationError):
            desc.hash = "cd"


class TestErrors:
    """Every pipeline error shares the ArchiveError base."""

    def test_hierarchy(self, tmp_path):
        errors = [
            InvalidArchiveName("x.mp3"),
            TransportError("x.pyz", "boom"),
            SignatureVerificationFailure(FailureReason.SIGNATURE_ABSENT),
            PromotionError(tmp_path / "1-x.pyz"),
        ]
        assert all(isinstance(e, ArchiveError) for e in errors)

    def test_transport_error_embeds_identifier(self):
        assert "https://h/x.pyz" in str(TransportError("https://h/x.pyz", "HTTP 404"))

    def test_signature_failure_carries_reason(self):
        exc = SignatureVerificationFailure(FailureReason.SIGNATURE_ABSENT, "no block")
        assert exc.reason is FailureReason.SIGNATURE_ABSENT
        assert "signature-absent" in str(exc)
