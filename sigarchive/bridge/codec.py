"""Archive codec — builds, signs, opens and verifies ``.pyz`` archives.

Archive format
--------------
A sigarchive is a regular zip application whose zip comment holds a
signature block::

    payload | payload_len (u32 LE) | algorithm_flag (u32 LE) | b"SGAR"

``payload`` is either a plain digest (``sha1``, ``sha256``, ``sha512``) or an
Ed25519 signature (``ed25519``).  It covers the zip bytes as they would be
with an *empty* comment, so the block can be attached after the digest is
computed.  Because the block lives inside the comment the file stays a valid
zip: it can be imported with ``zipimport`` and run with ``python lib.pyz``.

Archives may be compressed as a whole (``lib.pyz.gz``, ``.bz2``, ``.xz``);
the codec decompresses them before reading the signature block.

Public keys are discovered the same way for every archive: a hex-encoded
Ed25519 key in ``<archive>.pyz.pubkey`` next to the archive.  ``open()``
never silently skips verification: a missing or unusable public key for an
``ed25519`` archive is a ``PublicKeyError``.
"""

from __future__ import annotations

import bz2
import gzip
import io
import logging
import lzma
import os
import shutil
import struct
import zipfile
import zlib
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import Protocol

from sigarchive.bridge.crypto_bridge import (
    KeyFormatError,
    load_signing_key,
    read_key_file,
    sign_data,
    verify_data,
)
from sigarchive.core.errors import ArchiveError, InvalidArchiveName
from sigarchive.core.hasher import digest_hex
from sigarchive.core.naming import (
    compression_suffix,
    is_valid_identifier,
    pubkey_sidecar_path,
)
from sigarchive.core.source_tree import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_EXCLUDE_FILES,
    SourceTree,
)
from sigarchive.models.archive import (
    BuildReport,
    SignatureAlgorithm,
    SignatureDescriptor,
)

logger = logging.getLogger(__name__)

SIGNATURE_MAGIC = b"SGAR"
_TRAILER = struct.Struct("<II")
_EOCD_SIGNATURE = b"PK\x05\x06"
_EOCD_SIZE = 22
_EOCD_COMMENT_LEN_OFFSET = 20

_DECOMPRESSORS = {
    ".gz": gzip.decompress,
    ".bz2": bz2.decompress,
    ".xz": lzma.decompress,
}
_COMPRESSORS = {
    ".gz": gzip.compress,
    ".bz2": bz2.compress,
    ".xz": lzma.compress,
}

_MAIN_TEMPLATE = """\
# -*- coding: utf-8 -*-
import {module}
{module}.{fn}()
"""


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ArchiveCodecError(ArchiveError):
    """Raised when an archive cannot be opened or fails its integrity check."""


class SignatureMissingError(ArchiveCodecError):
    """The archive carries no signature block."""


class SignatureMismatchError(ArchiveCodecError):
    """The embedded digest or signature does not match the archive bytes."""


class PublicKeyError(ArchiveCodecError):
    """The public key needed for verification is missing or unusable."""


# ---------------------------------------------------------------------------
# Opened archives
# ---------------------------------------------------------------------------


class ArchiveHandle:
    """A verified, opened archive.

    Only ``SignedArchiveCodec.open`` creates handles, after the signature
    block has been checked.
    """

    def __init__(
        self, path: Path, signature: SignatureDescriptor, zf: zipfile.ZipFile
    ) -> None:
        self.path = path
        self.signature = signature
        self._zf = zf

    def __enter__(self) -> ArchiveHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    def signature_descriptor(self) -> SignatureDescriptor:
        return self.signature

    def names(self) -> list[str]:
        """Member file names (directories excluded), in archive order."""
        return [i.filename for i in self._zf.infolist() if not i.is_dir()]

    def read(self, name: str) -> bytes:
        return self._zf.read(name)

    def extract_to(self, dest: Path) -> list[Path]:
        """Extract every member below *dest*, refusing paths that escape it."""
        dest = Path(dest).resolve()
        written: list[Path] = []
        for info in self._zf.infolist():
            target = (dest / PurePosixPath(info.filename)).resolve()
            if target != dest and dest not in target.parents:
                raise ArchiveCodecError(
                    f"Member '{info.filename}' would extract outside {dest}"
                )
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with self._zf.open(info) as src, open(target, "wb") as out:
                shutil.copyfileobj(src, out)
            written.append(target)
        return written


class ArchiveCodec(Protocol):
    """Capability consumed by the verifier: open an archive or fail."""

    def open(self, path: Path) -> ArchiveHandle: ...


# ---------------------------------------------------------------------------
# Format helpers
# ---------------------------------------------------------------------------


def _read_archive_bytes(path: Path) -> bytes:
    raw = path.read_bytes()
    suffix = compression_suffix(path.name)
    if not suffix:
        return raw
    decompress = _DECOMPRESSORS.get(suffix)
    if decompress is None:
        raise ArchiveCodecError(f"Unsupported compression '{suffix}' for {path.name}")
    try:
        return decompress(raw)
    except (OSError, EOFError, ValueError, zlib.error, lzma.LZMAError) as exc:
        raise ArchiveCodecError(f"Cannot decompress {path.name}: {exc}") from exc


def split_signature_block(data: bytes) -> tuple[bytes, SignatureAlgorithm, bytes]:
    """Split archive bytes into ``(signed_bytes, algorithm, payload)``.

    ``signed_bytes`` is the zip as it was before the block was attached.
    """
    if len(data) < _EOCD_SIZE + _TRAILER.size + len(SIGNATURE_MAGIC):
        raise SignatureMissingError("Archive is too short to carry a signature")
    if not data.endswith(SIGNATURE_MAGIC):
        raise SignatureMissingError("Archive has no signature block")

    trailer_end = len(data) - len(SIGNATURE_MAGIC)
    payload_len, flag = _TRAILER.unpack(data[trailer_end - _TRAILER.size:trailer_end])
    block_len = payload_len + _TRAILER.size + len(SIGNATURE_MAGIC)
    eocd = len(data) - block_len - _EOCD_SIZE
    if eocd < 0 or data[eocd:eocd + 4] != _EOCD_SIGNATURE:
        raise ArchiveCodecError("Signature block is corrupt")
    (comment_len,) = struct.unpack(
        "<H", data[eocd + _EOCD_COMMENT_LEN_OFFSET:eocd + _EOCD_SIZE]
    )
    if comment_len != block_len:
        raise ArchiveCodecError("Signature block length does not match zip comment")

    try:
        algorithm = SignatureAlgorithm.from_flag(flag)
    except ValueError as exc:
        raise ArchiveCodecError(str(exc)) from exc

    payload = data[len(data) - block_len:trailer_end - _TRAILER.size]
    signed = data[:eocd + _EOCD_COMMENT_LEN_OFFSET] + b"\x00\x00"
    return signed, algorithm, payload


def attach_signature_block(
    zip_bytes: bytes, algorithm: SignatureAlgorithm, payload: bytes
) -> bytes:
    """Write the signature block into the (empty) comment of *zip_bytes*."""
    if zip_bytes[-_EOCD_SIZE:-_EOCD_SIZE + 4] != _EOCD_SIGNATURE:
        raise ArchiveCodecError("Zip data must end with an empty-comment EOCD record")
    block = payload + _TRAILER.pack(len(payload), algorithm.flag) + SIGNATURE_MAGIC
    return zip_bytes[:-2] + struct.pack("<H", len(block)) + block


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


class SignedArchiveCodec:
    """Default ``ArchiveCodec`` for sigarchive ``.pyz`` files.

    ``open()`` performs the full integrity check before returning:

    - checksum archives: digest recomputed and compared;
    - ``ed25519`` archives: signature checked against the key in the
      ``.pubkey`` sidecar.  A missing sidecar or malformed key raises
      ``PublicKeyError`` rather than skipping verification.
    """

    def open(self, path: Path) -> ArchiveHandle:
        path = Path(path)
        try:
            data = _read_archive_bytes(path)
        except OSError as exc:
            raise ArchiveCodecError(f"Cannot read {path.name}: {exc}") from exc

        if not zipfile.is_zipfile(io.BytesIO(data)):
            raise ArchiveCodecError(f"{path.name} is not a zip archive")

        signed, algorithm, payload = split_signature_block(data)
        if algorithm.is_asymmetric:
            self._check_signature(path, signed, payload)
        elif digest_hex(signed, algorithm.value) != payload.hex():
            raise SignatureMismatchError(
                f"{algorithm.value} checksum of {path.name} does not match"
            )

        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
            raise ArchiveCodecError(f"Cannot parse {path.name}: {exc}") from exc
        try:
            bad_member = zf.testzip()
        except (zipfile.BadZipFile, zlib.error, OSError) as exc:
            zf.close()
            raise ArchiveCodecError(f"Cannot parse {path.name}: {exc}") from exc
        if bad_member is not None:
            zf.close()
            raise ArchiveCodecError(f"Member '{bad_member}' of {path.name} is corrupt")

        descriptor = SignatureDescriptor(algorithm=algorithm, hash=payload.hex())
        logger.debug("Opened %s (%s).", path.name, algorithm.value)
        return ArchiveHandle(path, descriptor, zf)

    @staticmethod
    def _check_signature(path: Path, signed: bytes, payload: bytes) -> None:
        key_path = pubkey_sidecar_path(path)
        if not key_path.is_file():
            raise PublicKeyError(
                f"{path.name} is signed with ed25519 but no public key "
                f"was found at {key_path.name}"
            )
        try:
            public_key = read_key_file(key_path)
            valid = verify_data(signed, payload.hex(), public_key)
        except KeyFormatError as exc:
            raise PublicKeyError(
                f"Public key {key_path.name} cannot be used: {exc}"
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise PublicKeyError(f"Cannot read public key {key_path.name}: {exc}") from exc
        if not valid:
            raise SignatureMismatchError(
                f"ed25519 signature of {path.name} is not valid for {key_path.name}"
            )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ArchiveBuilder:
    """Packages a directory tree into a signed ``.pyz`` archive.

    Examples
    --------
    >>> builder = ArchiveBuilder()
    >>> # report = builder.build(Path("src"), Path("dist/lib.pyz"),
    >>> #                        private_key_file=Path("cert/priv.key"),
    >>> #                        public_key_file=Path("cert/pub.key"))
    """

    def build(
        self,
        src: Path,
        dest: Path,
        *,
        private_key_file: Path | None = None,
        public_key_file: Path | None = None,
        algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA256,
        exclude_files: Iterable[str] = DEFAULT_EXCLUDE_FILES,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        main: str | None = None,
    ) -> BuildReport:
        """Build *dest* from *src*.

        Parameters
        ----------
        src:
            Source directory.
        dest:
            Output archive path; must end in ``.pyz`` with an optional
            ``.gz``/``.bz2``/``.xz`` segment selecting whole-file compression.
        private_key_file:
            Hex Ed25519 seed.  When given the archive is signed with
            ``ed25519`` and *algorithm* is ignored.
        public_key_file:
            Matching public key.  When signing, it is checked against the
            private key and copied to the archive's ``.pubkey`` sidecar.
        algorithm:
            Checksum algorithm used for unsigned archives.
        main:
            Optional ``module:function`` entry point written as ``__main__.py``.

        Raises
        ------
        InvalidArchiveName
            If *dest* does not follow the naming contract.
        KeyFormatError
            If a key is malformed or the key halves do not match.
        FileNotFoundError
            If *src* does not exist.
        """
        dest = Path(dest)
        if not is_valid_identifier(dest.name):
            raise InvalidArchiveName(dest.name, "archive must end with '.pyz'")
        suffix = compression_suffix(dest.name)
        if suffix and suffix not in _COMPRESSORS:
            raise InvalidArchiveName(dest.name, f"unsupported compression '{suffix}'")

        tree = SourceTree(src, exclude_files=exclude_files, exclude_dirs=exclude_dirs)
        buf = io.BytesIO()
        files: list[str] = []
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path, rel in tree.files():
                logger.debug("Adding %s.", rel)
                zf.write(path, rel)
                files.append(rel)
            if main is not None:
                module, _, fn = main.partition(":")
                if not module or not fn:
                    raise ValueError(f"Entry point must be 'module:function', got '{main}'")
                zf.writestr("__main__.py", _MAIN_TEMPLATE.format(module=module, fn=fn))
                files.append("__main__.py")
        zip_bytes = buf.getvalue()

        if private_key_file is not None:
            private_key = read_key_file(private_key_file)
            if public_key_file is not None:
                expected = load_signing_key(private_key).verify_key.encode().hex()
                if read_key_file(public_key_file).lower() != expected:
                    raise KeyFormatError(
                        f"Public key {public_key_file} does not match private key"
                    )
            algorithm = SignatureAlgorithm.ED25519
            payload = bytes.fromhex(sign_data(zip_bytes, private_key))
        else:
            if algorithm.is_asymmetric:
                raise KeyFormatError("ed25519 archives need a private key")
            payload = bytes.fromhex(digest_hex(zip_bytes, algorithm.value))

        data = attach_signature_block(zip_bytes, algorithm, payload)
        if suffix:
            data = _COMPRESSORS[suffix](data)

        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(dest.name + f".tmp-{os.getpid()}")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, dest)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

        sidecar: Path | None = None
        if algorithm.is_asymmetric and public_key_file is not None:
            sidecar = pubkey_sidecar_path(dest)
            shutil.copyfile(public_key_file, sidecar)

        logger.info(
            "Built %s with %d file(s), %s signature.", dest, len(files), algorithm.value
        )
        return BuildReport(
            path=dest,
            files=files,
            signature=SignatureDescriptor(algorithm=algorithm, hash=payload.hex()),
            public_key_sidecar=sidecar,
        )
