"""Hashing helpers for archive digests and checksum manifests."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 1024 * 1024


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def digest_hex(data: bytes, algorithm: str = "sha256") -> str:
    """Return the hex digest of raw bytes under *algorithm*."""
    return hashlib.new(algorithm, data).hexdigest()


def file_digest_hex(path: Path, algorithm: str = "sha256") -> str:
    """Hash a file in fixed-size chunks and return the hex digest."""
    h = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()
