"""Source checksum manifests — decide whether an archive needs rebuilding.

A manifest maps each source file (path relative to the source root) to its
digest.  Comparing the current tree against the last saved manifest stops at
the first difference: a new file, a changed file, or a file set that differs.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from sigarchive.core.hasher import canonical_json_bytes, file_digest_hex
from sigarchive.core.source_tree import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_EXCLUDE_FILES,
    SourceTree,
)
from sigarchive.models.checksums import RebuildDecision

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "sha1"


def compute_checksums(
    src: Path,
    *,
    exclude_files: Iterable[str] = DEFAULT_EXCLUDE_FILES,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    algorithm: str = DEFAULT_ALGORITHM,
) -> dict[str, str]:
    """Digest every included file under *src*."""
    tree = SourceTree(src, exclude_files=exclude_files, exclude_dirs=exclude_dirs)
    checksums: dict[str, str] = {}
    for path, rel in tree.files():
        checksums[rel] = file_digest_hex(path, algorithm)
        logger.debug("file hash for '%s': %s", rel, checksums[rel])
    return checksums


def load_checksums(path: Path) -> dict[str, str] | None:
    """Read a saved manifest, ``None`` if the file does not exist.

    Raises
    ------
    ValueError
        If the file is not a JSON object of strings.
    """
    if not path.exists():
        return None
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
    ):
        raise ValueError(f"Checksum file {path} is not a mapping of file -> checksum")
    return raw


def save_checksums(path: Path, checksums: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(canonical_json_bytes(checksums))


def compare_checksums(
    current: dict[str, str], previous: dict[str, str] | None
) -> RebuildDecision:
    """Compare the current tree with the saved manifest."""
    if previous is None:
        return RebuildDecision(
            rebuild_required=True,
            reason="Rebuild required, checksum file not present",
            checksums=current,
        )

    for rel, checksum in sorted(current.items()):
        if rel not in previous:
            return RebuildDecision(
                rebuild_required=True,
                reason=f"Rebuild required, new file '{rel}' detected.",
                changed_file=rel,
                checksums=current,
            )
        if previous[rel] != checksum:
            return RebuildDecision(
                rebuild_required=True,
                reason=f"Rebuild required, file '{rel}' has changed.",
                changed_file=rel,
                previous_checksum=previous[rel],
                current_checksum=checksum,
                checksums=current,
            )

    if set(previous) != set(current):
        return RebuildDecision(
            rebuild_required=True,
            reason="Rebuild required, one or more files have been deleted or added.",
            checksums=current,
        )
    return RebuildDecision(rebuild_required=False, checksums=current)
