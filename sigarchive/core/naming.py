"""Archive identifier validation and filename derivation.

An identifier is any local path or URI ending in ``.pyz``, optionally followed
by exactly one compression segment (``.pyz.gz``, ``.pyz.bz2``...).  The *base*
of an identifier is the identifier with that compression segment removed.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TypeVar

from sigarchive.core.errors import InvalidArchiveName

ARCHIVE_SUFFIX = ".pyz"
PUBKEY_SUFFIX = ".pubkey"

ARCHIVE_NAME_RE = re.compile(r"\.pyz(\.[^.]+$|$)")
UNSAFE_FILENAME_CHARS_RE = re.compile(r"[^-a-zA-Z0-9._]")

_PathLike = TypeVar("_PathLike", str, Path)


def validate_identifier(identifier: str) -> None:
    """Raise ``InvalidArchiveName`` unless *identifier* names an archive."""
    if not identifier or not ARCHIVE_NAME_RE.search(identifier):
        raise InvalidArchiveName(
            identifier, f"name must end with '{ARCHIVE_SUFFIX}'"
        )


def is_valid_identifier(identifier: str) -> bool:
    return bool(identifier) and ARCHIVE_NAME_RE.search(identifier) is not None


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``-``.

    >>> sanitize_filename("my lib (v2)")
    'my-lib--v2-'
    """
    return UNSAFE_FILENAME_CHARS_RE.sub("-", name)


def compression_suffix(identifier: str) -> str:
    """Return the trailing compression segment (``".gz"``), or ``""``."""
    match = ARCHIVE_NAME_RE.search(identifier)
    return match.group(1) if match else ""


def strip_compression_suffix(identifier: _PathLike) -> _PathLike:
    """Drop the compression segment, keeping the archive suffix.

    >>> strip_compression_suffix("lib.pyz.gz")
    'lib.pyz'
    """
    stripped = ARCHIVE_NAME_RE.sub(ARCHIVE_SUFFIX, str(identifier))
    return Path(stripped) if isinstance(identifier, Path) else stripped


def pubkey_sidecar_path(archive_path: _PathLike) -> _PathLike:
    """Path of the public key sidecar the codec looks for next to an archive."""
    sidecar = str(strip_compression_suffix(str(archive_path))) + PUBKEY_SUFFIX
    return Path(sidecar) if isinstance(archive_path, Path) else sidecar


def identifier_basename(identifier: str) -> str:
    """Last path segment of a local path or URI, ignoring query and fragment."""
    trimmed = identifier.split("?", 1)[0].split("#", 1)[0].rstrip("/")
    return trimmed.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]


def stable_filename(identifier: str) -> str:
    """The sanitized local filename for *identifier*, without randomness.

    >>> stable_filename("https://example.com/dist/my lib.pyz.gz")
    'my-lib.pyz.gz'
    """
    name = identifier_basename(identifier)
    suffix = compression_suffix(name)
    stem = ARCHIVE_NAME_RE.sub("", name)
    return sanitize_filename(stem) + ARCHIVE_SUFFIX + sanitize_filename(suffix)
