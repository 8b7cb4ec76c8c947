"""Runtime configuration — env-driven via pydantic-settings.

Reads ``SIGARCHIVE_*`` environment variables and an optional ``.env`` file.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_lock_dir() -> Path:
    return Path(tempfile.gettempdir()) / "sigarchive-locks"


class Settings(BaseSettings):
    """Verifier and CLI settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export SIGARCHIVE_STAGING_DIR=/var/tmp/sigarchive
        export SIGARCHIVE_OUTPUT_DIR=/opt/app/lib
        export SIGARCHIVE_PUBLIC_KEY_FILE=/etc/app/pub.key
        export SIGARCHIVE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SIGARCHIVE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Directories
    staging_dir: Path = Path(tempfile.gettempdir())
    output_dir: Path = Path("./verified")
    lock_dir: Path = Field(default_factory=default_lock_dir)

    # Trust: the pinned public key (hex Ed25519, one line)
    public_key_file: Path | None = None
    # Accept checksum-only archives when no public key is pinned
    accept_checksum_only: bool = True

    # Transport
    http_timeout: float = 30.0
    chunk_size: int = 1024 * 1024

    # Promotion
    lock_timeout: float = 30.0


# Module-level singleton — import as `from sigarchive.config import settings`
settings = Settings()
