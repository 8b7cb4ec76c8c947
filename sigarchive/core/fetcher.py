"""Copies archives and the pinned public key into the staging area."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from sigarchive.bridge.transport import Transport
from sigarchive.core.errors import TransportError
from sigarchive.core.naming import pubkey_sidecar_path

logger = logging.getLogger(__name__)


class ArchiveFetcher:
    """Stages archive bytes and the key sidecar.

    Parameters
    ----------
    transport:
        Copy primitive for local and remote sources.
    public_key_file:
        The verifier's pinned public key, or ``None`` when no key is
        configured.  The key is never downloaded alongside the archive.
    """

    def __init__(
        self, transport: Transport, public_key_file: Path | None = None
    ) -> None:
        self._transport = transport
        self._public_key_file = Path(public_key_file) if public_key_file else None

    def fetch(self, identifier: str, staging_path: Path) -> None:
        """Copy *identifier* into *staging_path*.

        Raises
        ------
        TransportError
            On any copy failure.  No partial file is left at *staging_path*.
        """
        self._transport.copy(identifier, staging_path)
        logger.debug("Staged '%s' at %s.", identifier, staging_path)

    def attach_key(self, staging_path: Path) -> Path | None:
        """Copy the pinned public key next to *staging_path*.

        Returns the sidecar path, or ``None`` when no key is configured.
        """
        if self._public_key_file is None:
            return None
        sidecar = pubkey_sidecar_path(Path(staging_path))
        try:
            shutil.copyfile(self._public_key_file, sidecar)
        except OSError as exc:
            sidecar.unlink(missing_ok=True)
            raise TransportError(
                str(self._public_key_file), f"cannot copy public key: {exc}"
            ) from exc
        return sidecar
