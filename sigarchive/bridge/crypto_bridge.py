"""Crypto bridge — Ed25519 signing and verification via PyNaCl.

Keys are exchanged as hex strings (64 hex chars each) and stored on disk as a
single hex line, the same format ``generate_keypair()`` returns.  A public key
that cannot be decoded is always an error: callers never get a silent
"not verified" from a malformed key.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

import nacl.signing
from nacl.exceptions import BadSignatureError, CryptoError

logger = logging.getLogger(__name__)

ED25519_KEY_BYTES = 32
ED25519_SIGNATURE_BYTES = 64


class KeyFormatError(ValueError):
    """Raised when a key string or key file is not a valid Ed25519 key."""


def _decode_key(key_hex: str, what: str) -> bytes:
    try:
        raw = bytes.fromhex(key_hex.strip())
    except ValueError as exc:
        raise KeyFormatError(f"{what} must be hex encoded") from exc
    if len(raw) != ED25519_KEY_BYTES:
        raise KeyFormatError(
            f"{what} must decode to {ED25519_KEY_BYTES} bytes, got {len(raw)}"
        )
    return raw


def generate_keypair() -> tuple[str, str]:
    """Generate an Ed25519 signing key-pair.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, public_key_hex)``
    """
    sk = nacl.signing.SigningKey.generate()
    return (sk.encode().hex(), sk.verify_key.encode().hex())


def load_signing_key(private_key: str) -> nacl.signing.SigningKey:
    """Build a ``SigningKey`` from a hex-encoded seed."""
    return nacl.signing.SigningKey(_decode_key(private_key, "Private key"))


def load_verify_key(public_key: str) -> nacl.signing.VerifyKey:
    """Build a ``VerifyKey`` from a hex-encoded public key.

    Raises
    ------
    KeyFormatError
        If the key is not hex or has the wrong length.
    """
    try:
        return nacl.signing.VerifyKey(_decode_key(public_key, "Public key"))
    except CryptoError as exc:
        raise KeyFormatError(f"Public key rejected by libsodium: {exc}") from exc


def read_key_file(path: Path) -> str:
    """Read a hex key file, returning the stripped key string."""
    return Path(path).read_text(encoding="utf-8").strip()


def write_keypair(private_path: Path, public_path: Path) -> str:
    """Generate a key-pair, write both halves to disk, return the public key.

    The private key file is created with mode ``0o600``.
    """
    priv, pub = generate_keypair()
    private_path = Path(private_path)
    private_path.write_text(priv + "\n", encoding="utf-8")
    private_path.chmod(0o600)
    Path(public_path).write_text(pub + "\n", encoding="utf-8")
    logger.info(
        "Wrote key-pair %s (fingerprint %s).", private_path, key_fingerprint(pub)
    )
    return pub


def sign_data(data: bytes, private_key: str) -> str:
    """Sign *data* with *private_key* and return the hex-encoded signature.

    Returns
    -------
    str
        Hex-encoded signature (128 hex chars = 64 bytes for Ed25519).
    """
    signed = load_signing_key(private_key).sign(data)
    return signed.signature.hex()


def verify_data(data: bytes, signature: str, public_key: str) -> bool:
    """Verify that *signature* is valid for *data* under *public_key*.

    Returns ``False`` for a cryptographic mismatch or a malformed signature.

    Raises
    ------
    KeyFormatError
        If *public_key* is unusable.  An unusable key must never read as
        "unsigned"; it is the caller's job to turn this into a hard failure.
    """
    vk = load_verify_key(public_key)
    if not signature:
        return False
    try:
        sig_bytes = bytes.fromhex(signature)
    except ValueError:
        return False
    if len(sig_bytes) != ED25519_SIGNATURE_BYTES:
        return False
    try:
        vk.verify(data, sig_bytes)
    except BadSignatureError:
        return False
    return True


def key_fingerprint(public_key: str) -> str:
    """Compute a short fingerprint of a public key.

    Returns the first 16 hex characters of SHA-256(public_key_bytes).
    """
    if not public_key:
        return ""
    digest = hashlib.sha256(public_key.strip().encode("utf-8")).hexdigest()
    return digest[:16]
