"""Randomized staging filenames.

Every fetch stages its archive under a fresh ``<token>-`` prefix.  A filename
that has already been verified once must never be reused for different
content, so tokens are unique for the allocator's lifetime and never collide
with a file already present in the staging directory.
"""

from __future__ import annotations

import logging
import re
import secrets
from pathlib import Path

from sigarchive.core.errors import ArchiveError
from sigarchive.core.naming import stable_filename

logger = logging.getLogger(__name__)

RANDOM_PREFIX_RE = re.compile(r"^\d+-")

_TOKEN_UPPER_BOUND = 10**12
_MAX_ATTEMPTS = 64


def strip_random_prefix(filename: str) -> str:
    """Remove a leading ``digits-`` prefix; idempotent when there is none.

    >>> strip_random_prefix("48151623-lib.pyz")
    'lib.pyz'
    >>> strip_random_prefix("lib.pyz")
    'lib.pyz'
    """
    return RANDOM_PREFIX_RE.sub("", filename, count=1)


class StagingAllocator:
    """Allocates collision-resistant staging paths under *staging_dir*.

    Parameters
    ----------
    staging_dir:
        Private working directory for in-flight fetches.
    """

    def __init__(self, staging_dir: Path) -> None:
        self._staging_dir = Path(staging_dir)
        self._issued: set[int] = set()

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    def allocate(self, identifier: str) -> Path:
        """Return a fresh staging path for *identifier*.

        The identifier is assumed to be valid (see ``validate_identifier``).
        """
        name = stable_filename(identifier)
        for _ in range(_MAX_ATTEMPTS):
            token = secrets.randbelow(_TOKEN_UPPER_BOUND)
            if token in self._issued:
                continue
            candidate = self._staging_dir / f"{token}-{name}"
            if candidate.exists():
                continue
            self._issued.add(token)
            logger.debug("Allocated staging path %s for '%s'.", candidate, identifier)
            return candidate
        raise ArchiveError(
            f"Could not allocate a unique staging path for '{identifier}'"
        )
