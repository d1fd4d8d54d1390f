"""ncsum data models — Pydantic v2, frozen."""

from ncsum.models.descriptor import (
    ARCHIVE_SUFFIX,
    DESCRIPTOR_SUFFIX,
    Descriptor,
    payload_suffix,
)
from ncsum.models.results import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    CheckResult,
    CheckState,
    FileFailure,
    HashResult,
    NameResult,
    PackResult,
    RenameResult,
)

__all__ = [
    # descriptor
    "ARCHIVE_SUFFIX",
    "DESCRIPTOR_SUFFIX",
    "Descriptor",
    "payload_suffix",
    # results
    "CheckState",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "HashResult",
    "NameResult",
    "RenameResult",
    "PackResult",
    "CheckResult",
    "FileFailure",
]
