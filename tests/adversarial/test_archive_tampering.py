"""Adversarial tests — tampered, re-signed and disguised archives.

These tests verify that the fetch pipeline never promotes:
1. Archives whose content changed after signing
2. Archives signed by a key other than the pinned one
3. Archives whose signature block was stripped or forged
4. A "good" archive renamed over a known-bad one
"""

from __future__ import annotations

import struct
from pathlib import Path

import pytest

from sigarchive.core.errors import SignatureVerificationFailure
from sigarchive.models.archive import FailureReason


def _names(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.iterdir())


class TestTamperedContent:
    """Byte-level tampering of a signed archive on the wire."""

    def test_flipped_payload_byte(self, make_verifier, make_archive, key_files, output_dir):
        path = make_archive("signed")
        data = bytearray(path.read_bytes())
        # first local file header data starts after the 30-byte header + name
        name_len = struct.unpack("<H", data[26:28])[0]
        data[30 + name_len + 4] ^= 0xFF
        path.write_bytes(bytes(data))
        with pytest.raises(SignatureVerificationFailure) as exc_info:
            make_verifier(key_files[1]).fetch(str(path))
        assert exc_info.value.reason in (
            FailureReason.SIGNATURE_CRYPTOGRAPHICALLY_INVALID,
            FailureReason.ARCHIVE_OPEN_ERROR,
        )
        assert _names(output_dir) == []

    def test_flipped_signature_byte(self, make_verifier, make_archive, key_files, output_dir):
        path = make_archive("signed")
        data = bytearray(path.read_bytes())
        # the 64-byte signature ends 12 bytes before EOF (len + flag + magic)
        data[-13] ^= 0x01
        path.write_bytes(bytes(data))
        with pytest.raises(SignatureVerificationFailure) as exc_info:
            make_verifier(key_files[1]).fetch(str(path))
        assert exc_info.value.reason is FailureReason.SIGNATURE_CRYPTOGRAPHICALLY_INVALID
        assert _names(output_dir) == []

    def test_truncated_archive(self, make_verifier, make_archive, key_files, output_dir):
        path = make_archive("signed")
        path.write_bytes(path.read_bytes()[:-40])
        with pytest.raises(SignatureVerificationFailure):
            make_verifier(key_files[1]).fetch(str(path))
        assert _names(output_dir) == []

    def test_appended_garbage(self, make_verifier, make_archive, key_files, output_dir):
        path = make_archive("signed")
        path.write_bytes(path.read_bytes() + b"trailing junk")
        with pytest.raises(SignatureVerificationFailure):
            make_verifier(key_files[1]).fetch(str(path))
        assert _names(output_dir) == []


class TestSignatureDowngrade:
    """An attacker cannot swap an ed25519 block for a checksum block."""

    def test_checksum_block_refused_when_key_pinned(self, make_verifier, make_archive, key_files, output_dir):
        # a freshly checksummed archive is internally consistent...
        path = make_archive("nosigmodified", name="forged.pyz")
        with pytest.raises(SignatureVerificationFailure):
            make_verifier(key_files[1]).fetch(str(path))
        # ...and a correct checksum still does not satisfy a pinned key
        path = make_archive("nosig", name="forged.pyz")
        with pytest.raises(SignatureVerificationFailure) as exc_info:
            make_verifier(key_files[1]).fetch(str(path))
        assert exc_info.value.reason is FailureReason.SIGNATURE_ALGORITHM_MISMATCH
        assert _names(output_dir) == []

    def test_stripped_signature_block(self, make_verifier, make_archive, key_files, output_dir):
        path = make_archive("unsigned")
        with pytest.raises(SignatureVerificationFailure) as exc_info:
            make_verifier(key_files[1]).fetch(str(path))
        assert exc_info.value.reason is FailureReason.SIGNATURE_ABSENT


class TestRenamedArchives:
    """Renaming never turns a bad archive into a good one."""

    def test_wrongsig_renamed_to_trusted_name(self, make_verifier, make_archive, key_files, dist_dir, output_dir):
        bad = make_archive("wrongsig", name="wrongsig.pyz")
        renamed = dist_dir / "test.pyz"
        bad.rename(renamed)
        with pytest.raises(SignatureVerificationFailure):
            make_verifier(key_files[1]).fetch(str(renamed))
        assert _names(output_dir) == []

    def test_publisher_sidecar_is_not_trusted(self, make_verifier, make_archive, key_files, other_key_files, output_dir):
        # attacker ships their own key next to an archive they signed
        path = make_archive("wrongsig")
        path.with_name("test.pyz.pubkey").write_text(other_key_files[1].read_text())
        with pytest.raises(SignatureVerificationFailure) as exc_info:
            make_verifier(key_files[1]).fetch(str(path))
        assert exc_info.value.reason is FailureReason.SIGNATURE_CRYPTOGRAPHICALLY_INVALID
        assert _names(output_dir) == []
