"""The descriptor record binding a digest to an original file name."""

from __future__ import annotations

import string
from pathlib import PurePath

from pydantic import BaseModel, ConfigDict, Field, field_validator

DESCRIPTOR_SUFFIX = ".ncsum"
ARCHIVE_SUFFIX = ".pncsum"

_HEX_DIGITS = frozenset(string.hexdigits)
_FORBIDDEN_NAME_CHARS = frozenset("/\\\n\r\x00")


def is_hex_digest(value: str) -> bool:
    return bool(value) and all(c in _HEX_DIGITS for c in value)


def payload_suffix(original_name: str) -> str:
    """Extension kept on the digest-named payload.

    Only the last suffix survives: ``backup.tar.gz`` keeps ``.gz``, and a
    name without a dot keeps nothing.
    """
    return PurePath(original_name).suffix


class Descriptor(BaseModel):
    """Digest plus the file name the payload had when it was named.

    Descriptors are immutable.  ``original_name`` is always a bare file
    name, never a path, so restoring it cannot escape the payload's
    directory.
    """

    model_config = ConfigDict(frozen=True)

    digest: str
    original_name: str
    size: int | None = Field(default=None, ge=0)

    @field_validator("digest")
    @classmethod
    def _check_digest(cls, value: str) -> str:
        if not is_hex_digest(value):
            raise ValueError(f"digest is not hexadecimal: {value!r}")
        return value.lower()

    @field_validator("original_name")
    @classmethod
    def _check_original_name(cls, value: str) -> str:
        if not value:
            raise ValueError("original name is empty")
        if value in (".", ".."):
            raise ValueError(f"original name is not a file name: {value!r}")
        if any(c in _FORBIDDEN_NAME_CHARS for c in value):
            raise ValueError(f"original name is not a bare file name: {value!r}")
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueError(f"original name is not valid UTF-8: {value!r}") from exc
        return value

    @property
    def payload_name(self) -> str:
        """``<digest><ext>`` — the content-addressed name of the payload."""
        return f"{self.digest}{payload_suffix(self.original_name)}"

    @property
    def descriptor_name(self) -> str:
        return f"{self.digest}{DESCRIPTOR_SUFFIX}"

    @property
    def archive_name(self) -> str:
        return f"{self.digest}{ARCHIVE_SUFFIX}"
