"""Promotion of verified archives into the trusted output directory.

Trusted files are written to a temporary sibling and ``os.replace``d into
place, so a reader never observes a partially copied archive.  Promotions of
the same stable name are serialized with a ``filelock.FileLock``; lock files
live in a separate lock directory so neither staging nor output ever holds
anything but archives and key sidecars.  Temporaries left by a crashed
promotion are swept under the lock before the next copy.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from filelock import FileLock, Timeout

from sigarchive.core.errors import PromotionError
from sigarchive.core.naming import pubkey_sidecar_path
from sigarchive.core.staging import strip_random_prefix

logger = logging.getLogger(__name__)


def _temp_prefix(dest: Path) -> str:
    return f".{dest.name}~"


def _sweep_stale(dest: Path) -> None:
    """Remove temporaries a crashed promotion of *dest* left behind."""
    for stale in dest.parent.glob(f"{_temp_prefix(dest)}*.tmp"):
        logger.warning("Removing stale temporary %s.", stale)
        stale.unlink(missing_ok=True)


def _atomic_copy(src: Path, dest: Path) -> None:
    fd, name = tempfile.mkstemp(dir=dest.parent, prefix=_temp_prefix(dest), suffix=".tmp")
    tmp = Path(name)
    try:
        with os.fdopen(fd, "wb") as wf, open(src, "rb") as rf:
            shutil.copyfileobj(rf, wf)
            wf.flush()
            os.fsync(wf.fileno())
        os.replace(tmp, dest)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class Promoter:
    """Moves verified staging artifacts into *output_dir*.

    Parameters
    ----------
    output_dir:
        Trusted directory.  Only verified archives are ever written here.
    lock_dir:
        Directory for per-archive promotion lock files.
    lock_timeout:
        Seconds to wait for a concurrent promotion of the same name.
    """

    def __init__(
        self, output_dir: Path, lock_dir: Path, *, lock_timeout: float = 30.0
    ) -> None:
        self._output_dir = Path(output_dir)
        self._lock_dir = Path(lock_dir)
        self._lock_timeout = lock_timeout

    def trusted_path(self, stable_name: str) -> Path:
        return self._output_dir / stable_name

    def promote(self, staging_path: Path) -> Path:
        """Copy a verified staged archive (and its sidecar) into the output dir.

        The staging copy is left in place.

        Returns
        -------
        Path
            Absolute path of the trusted archive.

        Raises
        ------
        PromotionError
            If the copy fails or the promotion lock cannot be acquired.  The
            staged archive is untouched.
        """
        staging_path = Path(staging_path)
        stable = strip_random_prefix(staging_path.name)
        dest = self.trusted_path(stable)
        staged_sidecar = pubkey_sidecar_path(staging_path)
        dest_sidecar = pubkey_sidecar_path(dest)

        try:
            self._lock_dir.mkdir(parents=True, exist_ok=True)
            with FileLock(str(self._lock_dir / f"{stable}.lock"), timeout=self._lock_timeout):
                _sweep_stale(dest)
                _sweep_stale(dest_sidecar)
                _atomic_copy(staging_path, dest)
                if staged_sidecar.exists():
                    _atomic_copy(staged_sidecar, dest_sidecar)
                else:
                    dest_sidecar.unlink(missing_ok=True)
        except Timeout as exc:
            raise PromotionError(
                staging_path, f"timed out waiting for promotion lock on {stable}"
            ) from exc
        except OSError as exc:
            raise PromotionError(staging_path, str(exc)) from exc

        logger.info("Promoted %s to %s.", staging_path.name, dest)
        return dest.resolve()

    def cleanup(self, staging_path: Path) -> None:
        """Delete a staged archive and its key sidecar, if present."""
        staging_path = Path(staging_path)
        staging_path.unlink(missing_ok=True)
        pubkey_sidecar_path(staging_path).unlink(missing_ok=True)
        logger.debug("Removed staged %s.", staging_path.name)
