"""Shared test fixtures for sigarchive."""

from __future__ import annotations

import bz2
import gzip
import io
import lzma
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from sigarchive.bridge.codec import (
    ArchiveBuilder,
    attach_signature_block,
    split_signature_block,
)
from sigarchive.bridge.crypto_bridge import generate_keypair
from sigarchive.core.remote_verifier import RemoteArchiveVerifier

PACKAGE_SOURCE = '''\
GREETING = "hello from a signed archive"


def main():
    print(GREETING)
'''


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def keypair() -> tuple[str, str]:
    """A fresh Ed25519 ``(private_hex, public_hex)`` pair."""
    return generate_keypair()


@pytest.fixture
def key_files(tmp_dir: Path, keypair: tuple[str, str]) -> tuple[Path, Path]:
    """``(private_key_file, public_key_file)`` written under ``cert/``."""
    cert = tmp_dir / "cert"
    cert.mkdir()
    priv, pub = keypair
    private_file = cert / "priv.key"
    public_file = cert / "pub.key"
    private_file.write_text(priv + "\n")
    public_file.write_text(pub + "\n")
    return private_file, public_file


@pytest.fixture
def other_key_files(tmp_dir: Path) -> tuple[Path, Path]:
    """A second, unrelated key-pair."""
    cert = tmp_dir / "other-cert"
    cert.mkdir()
    priv, pub = generate_keypair()
    (cert / "priv.key").write_text(priv)
    (cert / "pub.key").write_text(pub)
    return cert / "priv.key", cert / "pub.key"


@pytest.fixture
def trash_key_file(tmp_dir: Path) -> Path:
    """A public key file that is not a usable Ed25519 key."""
    path = tmp_dir / "trash.key"
    path.write_text("-----BEGIN PUBLIC KEY-----\nnot really a key\n")
    return path


@pytest.fixture
def src_tree(tmp_dir: Path) -> Path:
    """A small source tree with an importable package and excluded junk."""
    src = tmp_dir / "src"
    pkg = src / "hello_sigarchive"
    pkg.mkdir(parents=True)
    (pkg / "__init__.py").write_text(PACKAGE_SOURCE)
    (pkg / "data.txt").write_text("payload\n")
    (pkg / "data.txt~").write_text("editor backup\n")
    git = src / ".git"
    git.mkdir()
    (git / "config").write_text("[core]\n")
    return src


@pytest.fixture
def staging_dir(tmp_dir: Path) -> Path:
    path = tmp_dir / "staging"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_dir: Path) -> Path:
    path = tmp_dir / "trusted"
    path.mkdir()
    return path


@pytest.fixture
def lock_dir(tmp_dir: Path) -> Path:
    return tmp_dir / "locks"


@pytest.fixture
def dist_dir(tmp_dir: Path) -> Path:
    """Where the "remote" archives under test are published."""
    path = tmp_dir / "dist"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# Archive factories
# ---------------------------------------------------------------------------


def zip_bytes(files: dict[str, bytes]) -> bytes:
    """A plain zip with an empty comment."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def transplant_signature(signed_archive: Path, target: Path, files: dict[str, bytes]) -> None:
    """Write *target* as new zip content carrying *signed_archive*'s block."""
    _, algorithm, payload = split_signature_block(signed_archive.read_bytes())
    target.write_bytes(attach_signature_block(zip_bytes(files), algorithm, payload))


def corrupt_stream(name: str) -> bytes:
    """A compression header for *name*'s suffix followed by garbage."""
    sample = b"x" * 1000
    if name.endswith(".gz"):
        header = gzip.compress(sample)[:10]
    elif name.endswith(".bz2"):
        header = bz2.compress(sample)[:10]
    elif name.endswith(".xz"):
        header = lzma.compress(sample)[:12]
    else:
        raise ValueError(f"no compression suffix on {name!r}")
    return header + b"\xff" * 40


@pytest.fixture
def make_archive(
    src_tree: Path,
    dist_dir: Path,
    key_files: tuple[Path, Path],
    other_key_files: tuple[Path, Path],
) -> Callable[..., Path]:
    """Factory fixture: publish an archive of a given kind in ``dist/``.

    Kinds:

    - ``signed``: ed25519 signature by the pinned key-pair;
    - ``nosig``: sha256 checksum only;
    - ``wrongsig``: ed25519 signature by an unrelated key-pair;
    - ``modified``: content changed after ed25519 signing;
    - ``nosigmodified``: content changed after checksumming;
    - ``unsigned``: a plain zip without signature block;
    - ``trash``: bytes that are not an archive at all;
    - ``corruptstream``: a valid compression header followed by garbage
      (*name* must end in ``.gz``, ``.bz2`` or ``.xz``).
    """
    tampered = {"hello_sigarchive/__init__.py": b"GREETING = 'tampered'\n"}

    def _factory(kind: str = "signed", name: str = "test.pyz", **overrides: Any) -> Path:
        dest = dist_dir / name
        builder = ArchiveBuilder()
        if kind == "signed":
            builder.build(
                src_tree,
                dest,
                private_key_file=key_files[0],
                public_key_file=key_files[1],
                **overrides,
            )
        elif kind == "nosig":
            builder.build(src_tree, dest, **overrides)
        elif kind == "wrongsig":
            builder.build(src_tree, dest, private_key_file=other_key_files[0], **overrides)
        elif kind in ("modified", "nosigmodified"):
            scratch = dist_dir / f"scratch-{name}"
            builder.build(
                src_tree,
                scratch,
                private_key_file=key_files[0] if kind == "modified" else None,
            )
            transplant_signature(scratch, dest, tampered)
            scratch.unlink()
        elif kind == "unsigned":
            dest.write_bytes(zip_bytes({"hello_sigarchive/__init__.py": PACKAGE_SOURCE.encode()}))
        elif kind == "trash":
            dest.write_bytes(b"this is not an archive at all\n" * 8)
        elif kind == "corruptstream":
            dest.write_bytes(corrupt_stream(name))
        else:
            raise ValueError(f"unknown archive kind {kind!r}")
        return dest

    return _factory


@pytest.fixture
def make_verifier(
    staging_dir: Path, output_dir: Path, lock_dir: Path
) -> Callable[..., RemoteArchiveVerifier]:
    """Factory fixture: a verifier wired to the test directories."""

    def _factory(public_key_file: Path | None = None, **overrides: Any) -> RemoteArchiveVerifier:
        overrides.setdefault("lock_dir", lock_dir)
        return RemoteArchiveVerifier(staging_dir, output_dir, public_key_file, **overrides)

    return _factory
