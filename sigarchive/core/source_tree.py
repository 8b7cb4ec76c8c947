"""Exclusion-filtered walking of an archive source directory."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_FILES: tuple[str, ...] = ("~$",)
DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (r"/\.svn", r"/\.git")


def split_patterns(raw: str) -> list[str]:
    """Split a space separated pattern list, dropping empty entries."""
    return [p for p in raw.split(" ") if p]


class SourceTree:
    """A directory whose files are packaged into an archive.

    Parameters
    ----------
    root:
        Source directory.
    exclude_files:
        Regular expressions searched in each file's *name*; a match skips
        the file.
    exclude_dirs:
        Regular expressions searched in each file's path relative to *root*,
        written with a leading ``/`` (``/pkg/.git/config``); a match skips
        the file.

    Examples
    --------
    >>> tree = SourceTree(Path("src"), exclude_files=[r"\\.pyc$"])
    >>> # [rel for _, rel in tree.files()]
    """

    def __init__(
        self,
        root: Path,
        exclude_files: Iterable[str] = DEFAULT_EXCLUDE_FILES,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    ) -> None:
        self.root = Path(root)
        self._exclude_files = [re.compile(p) for p in exclude_files]
        self._exclude_dirs = [re.compile(p) for p in exclude_dirs]

    def is_excluded(self, rel_path: str) -> bool:
        name = rel_path.rsplit("/", 1)[-1]
        if any(p.search(name) for p in self._exclude_files):
            return True
        rooted = "/" + rel_path
        return any(p.search(rooted) for p in self._exclude_dirs)

    def files(self) -> Iterator[tuple[Path, str]]:
        """Yield ``(absolute_path, relative_posix_path)`` in sorted order."""
        if not self.root.is_dir():
            raise FileNotFoundError(f"Source directory not found: {self.root}")
        for path in sorted(self.root.rglob("*")):
            if not path.is_file():
                continue
            rel = path.relative_to(self.root).as_posix()
            if self.is_excluded(rel):
                logger.debug("Skipping %s.", rel)
                continue
            yield path, rel
