"""Rebuild-detection models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RebuildDecision(BaseModel):
    """Outcome of comparing current source checksums with a saved manifest.

    ``reason`` is empty when no rebuild is required.  ``previous_checksum`` and
    ``current_checksum`` are only set when a single changed file triggered
    the decision.
    """

    model_config = ConfigDict(frozen=True)

    rebuild_required: bool
    reason: str = ""
    changed_file: str = ""
    previous_checksum: str = ""
    current_checksum: str = ""
    checksums: dict[str, str] = Field(default_factory=dict)
