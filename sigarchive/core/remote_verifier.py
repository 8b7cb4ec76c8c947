"""RemoteArchiveVerifier — fetch, verify and promote signed archives.

Per-call state machine::

    Start -> Sanitized -> Staged -> KeyAttached -> Verified | Failed
          -> Promoted | CleanedUp

Guarantees
----------
- An invalid identifier fails before any I/O.
- A trusted archive only ever appears in the output directory after it
  passed verification; an existing trusted archive is replaced only by a
  successful promotion, and only when the caller asks for ``overwrite``.
- Every failure path removes this call's staging artifacts before the error
  reaches the caller.  ``PromotionError`` is the one exception: the verified
  staging copy is kept so ``retry_promotion`` can finish the job.
- Errors leaving this class belong to ``sigarchive.core.errors``.

Example::

    verifier = RemoteArchiveVerifier("/tmp", "./lib", "./cert/pub.key")
    path = verifier.fetch("https://example.com/library.pyz")
    module = verifier.fetch_and_import("https://example.com/library.pyz", "library")
"""

from __future__ import annotations

import importlib.util
import logging
import sys
import zipimport
from pathlib import Path
from types import ModuleType

from sigarchive.bridge.codec import ArchiveCodec, SignedArchiveCodec
from sigarchive.bridge.crypto_bridge import (
    KeyFormatError,
    key_fingerprint,
    load_verify_key,
    read_key_file,
)
from sigarchive.bridge.transport import Transport
from sigarchive.config import Settings, default_lock_dir
from sigarchive.core.errors import (
    ArchiveError,
    InvalidArchiveName,
    PromotionError,
    SignatureVerificationFailure,
    VerifierConfigError,
)
from sigarchive.core.fetcher import ArchiveFetcher
from sigarchive.core.naming import (
    compression_suffix,
    is_valid_identifier,
    stable_filename,
    validate_identifier,
)
from sigarchive.core.promoter import Promoter
from sigarchive.core.staging import StagingAllocator
from sigarchive.core.verifier import SignatureVerifier
from sigarchive.models.archive import FailureReason, VerificationResult

logger = logging.getLogger(__name__)


class RemoteArchiveVerifier:
    """Downloads signed archives and promotes verified ones.

    Parameters
    ----------
    staging_dir:
        Private working directory for in-flight fetches.  Must exist.
    output_dir:
        Trusted directory receiving verified archives.  Must exist.
    public_key_file:
        Pinned public key (hex Ed25519).  When set, only ``ed25519``-signed
        archives verify.  The key is distributed out of band, never fetched.
    accept_checksum_only:
        Without a public key, whether checksum-only archives are accepted.
    transport, codec:
        Collaborators; defaults are ``Transport()`` and ``SignedArchiveCodec()``.
    lock_dir, lock_timeout:
        Promotion lock settings (see ``Promoter``).

    Raises
    ------
    VerifierConfigError
        If a directory is missing or the public key file cannot be read.
    """

    def __init__(
        self,
        staging_dir: Path | str,
        output_dir: Path | str,
        public_key_file: Path | str | None = None,
        *,
        accept_checksum_only: bool = True,
        transport: Transport | None = None,
        codec: ArchiveCodec | None = None,
        lock_dir: Path | None = None,
        lock_timeout: float = 30.0,
    ) -> None:
        self._staging_dir = Path(staging_dir)
        self._output_dir = Path(output_dir)
        if not self._staging_dir.is_dir():
            raise VerifierConfigError(
                f"Staging directory {self._staging_dir} does not exist"
            )
        if not self._output_dir.is_dir():
            raise VerifierConfigError(
                f"Output directory {self._output_dir} does not exist"
            )

        self._public_key_file = Path(public_key_file) if public_key_file else None
        if self._public_key_file is not None and not self._public_key_file.is_file():
            raise VerifierConfigError(
                f"Public key file {self._public_key_file} does not exist"
            )

        self._allocator = StagingAllocator(self._staging_dir)
        self._fetcher = ArchiveFetcher(transport or Transport(), self._public_key_file)
        self._verifier = SignatureVerifier(
            codec or SignedArchiveCodec(), accept_checksum_only=accept_checksum_only
        )
        self._promoter = Promoter(
            self._output_dir,
            lock_dir or default_lock_dir(),
            lock_timeout=lock_timeout,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: Transport | None = None
    ) -> RemoteArchiveVerifier:
        """Build a verifier from ``Settings``."""
        return cls(
            settings.staging_dir,
            settings.output_dir,
            settings.public_key_file,
            accept_checksum_only=settings.accept_checksum_only,
            transport=transport
            or Transport(timeout=settings.http_timeout, chunk_size=settings.chunk_size),
            lock_dir=settings.lock_dir,
            lock_timeout=settings.lock_timeout,
        )

    @property
    def requires_pubkey(self) -> bool:
        return self._public_key_file is not None

    def public_key_fingerprint(self) -> str:
        """Fingerprint of the pinned key, ``""`` when none is configured.

        Raises
        ------
        VerifierConfigError
            If the pinned key file is not a valid Ed25519 public key.
        """
        if self._public_key_file is None:
            return ""
        try:
            key = read_key_file(self._public_key_file)
            load_verify_key(key)
        except (OSError, KeyFormatError) as exc:
            raise VerifierConfigError(
                f"Public key file {self._public_key_file} is unusable: {exc}"
            ) from exc
        return key_fingerprint(key)

    # -- Public API ---------------------------------------------------------

    def fetch(self, identifier: str, overwrite: bool = False) -> Path:
        """Fetch *identifier*, verify it, and promote it to the output dir.

        Parameters
        ----------
        identifier:
            Local path or ``file://``/``http(s)://`` URI ending in ``.pyz``
            (optionally ``.pyz.gz`` etc.).
        overwrite:
            Replace an existing trusted archive of the same name.  Without it
            an existing trusted archive is returned as-is, unverified again.

        Returns
        -------
        Path
            Absolute path of the trusted archive.

        Raises
        ------
        InvalidArchiveName, TransportError, SignatureVerificationFailure,
        PromotionError
        """
        validate_identifier(identifier)

        trusted = self._promoter.trusted_path(stable_filename(identifier))
        if trusted.exists():
            if not overwrite:
                logger.debug("'%s' already trusted at %s.", identifier, trusted)
                return trusted.resolve()
            logger.info(
                "Re-fetching '%s'; %s is replaced only if verification passes.",
                identifier,
                trusted,
            )

        staging_path = self._stage(identifier)
        self._assert_verified(identifier, staging_path)
        return self._promoter.promote(staging_path)

    def retry_promotion(self, staging_path: Path | str) -> Path:
        """Promote a staged archive kept by an earlier ``PromotionError``.

        The staged copy is verified again before promotion, so nothing is
        downloaded but nothing unverified is trusted either.

        Raises
        ------
        PromotionError
            If *staging_path* is not a staged archive of this verifier, or the
            promotion fails again.
        SignatureVerificationFailure
            If the staged copy no longer verifies; it is then removed.
        """
        staging_path = Path(staging_path)
        if (
            staging_path.parent.resolve() != self._staging_dir.resolve()
            or not is_valid_identifier(staging_path.name)
            or not staging_path.is_file()
        ):
            raise PromotionError(staging_path, "not a staged archive of this verifier")
        self._assert_verified(staging_path.name, staging_path)
        return self._promoter.promote(staging_path)

    def verify(self, identifier: str) -> bool:
        """Fetch and verify *identifier* without keeping a trusted copy.

        Staging is left empty whether verification passes or fails.

        Returns
        -------
        bool
            Always ``True``; failures raise.
        """
        validate_identifier(identifier)
        staging_path = self._stage(identifier)
        self._assert_verified(identifier, staging_path)
        self._discard(staging_path)
        logger.info("Verified '%s'.", identifier)
        return True

    def fetch_and_import(
        self, identifier: str, module_name: str, overwrite: bool = False
    ) -> ModuleType:
        """Fetch a trusted archive and import *module_name* from it.

        The module is loaded straight from the trusted archive with
        ``zipimport`` and registered in ``sys.modules``.

        Raises
        ------
        InvalidArchiveName
            If the identifier is compressed (zipimport reads plain zips only)
            or otherwise invalid.
        ArchiveError
            If *module_name* is not found in the archive.
        """
        validate_identifier(identifier)
        if compression_suffix(identifier):
            raise InvalidArchiveName(identifier, "compressed archives cannot be imported")

        trusted = self.fetch(identifier, overwrite=overwrite)
        try:
            spec = zipimport.zipimporter(str(trusted)).find_spec(module_name)
        except zipimport.ZipImportError as exc:
            raise ArchiveError(f"Cannot import from {trusted}: {exc}") from exc
        if spec is None:
            raise ArchiveError(f"Module '{module_name}' not found in {trusted}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        logger.info("Imported '%s' from %s.", module_name, trusted)
        return module

    # -- Internal helpers ---------------------------------------------------

    def _stage(self, identifier: str) -> Path:
        """Allocate, fetch and attach the key; staging is clean on failure."""
        staging_path = self._allocator.allocate(identifier)
        try:
            self._fetcher.fetch(identifier, staging_path)
            self._fetcher.attach_key(staging_path)
        except ArchiveError:
            self._discard(staging_path)
            raise
        return staging_path

    def _assert_verified(self, identifier: str, staging_path: Path) -> VerificationResult:
        try:
            result = self._verifier.verify(staging_path, self.requires_pubkey)
        except Exception:
            self._discard(staging_path)
            raise
        if result.verified:
            return result
        self._discard(staging_path)
        reason = result.reason or FailureReason.ARCHIVE_OPEN_ERROR
        logger.warning("Rejected '%s' (%s).", identifier, reason.value)
        raise SignatureVerificationFailure(reason, result.message)

    def _discard(self, staging_path: Path) -> None:
        """Remove staging artifacts on a failure path.

        A cleanup error is logged; the original failure is what the caller
        sees.
        """
        try:
            self._promoter.cleanup(staging_path)
        except OSError:
            logger.exception("Could not remove staged %s.", staging_path)
