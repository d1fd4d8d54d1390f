"""Runtime configuration — env-driven.

Reads ``NCSUM_*`` environment variables and an optional ``.env`` file in the
working directory.

Examples
--------
Switch the digest algorithm and quarantine directory::

    export NCSUM_ALGORITHM=sha256
    export NCSUM_QUARANTINE_DIR=bad
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NcsumConfig(BaseSettings):
    """Settings shared by every ncsum command."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="NCSUM_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Digest engine
    algorithm: str = "md5"
    chunk_size: int = Field(default=1024 * 1024, gt=0)

    # Mismatched payloads are moved to this subdirectory beside their descriptor
    quarantine_dir: str = "mismatches"

    # Batch processing
    jobs: int = Field(default=1, ge=1)

    log_level: str = "WARNING"

    @field_validator("algorithm")
    @classmethod
    def _check_algorithm(cls, value: str) -> str:
        from ncsum.core.hasher import HashlibEngine

        return HashlibEngine(value).name

    @field_validator("quarantine_dir")
    @classmethod
    def _check_quarantine_dir(cls, value: str) -> str:
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"quarantine_dir must be a plain directory name: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value!r}")
        return level


# Module-level singleton; import as `from ncsum.config import config`
config = NcsumConfig()
