"""Per-file outcomes of ncsum operations and the check state machine."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from ncsum.models.descriptor import Descriptor


class CheckState(str, Enum):
    """States a single check passes through."""

    RESOLVING = "resolving"
    RESOLVED = "resolved"
    HASHING = "hashing"
    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING = "missing"


# RESOLVED -> MISMATCH covers a size pre-check that fails before hashing.
VALID_TRANSITIONS: dict[CheckState, set[CheckState]] = {
    CheckState.RESOLVING: {CheckState.RESOLVED, CheckState.MISSING},
    CheckState.RESOLVED: {CheckState.HASHING, CheckState.MISMATCH},
    CheckState.HASHING: {CheckState.MATCH, CheckState.MISMATCH},
    CheckState.MATCH: set(),  # terminal
    CheckState.MISMATCH: set(),  # terminal
    CheckState.MISSING: set(),  # terminal
}

TERMINAL_STATES = frozenset(s for s, targets in VALID_TRANSITIONS.items() if not targets)


class HashResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path
    digest: str


class NameResult(BaseModel):
    """Outcome of naming a file after its digest."""

    model_config = ConfigDict(frozen=True)

    source: Path
    payload_path: Path
    descriptor_path: Path
    digest: str
    renamed: bool
    descriptor_written: bool


class RenameResult(BaseModel):
    """Outcome of restoring a payload to its original name."""

    model_config = ConfigDict(frozen=True)

    source: Path
    restored_path: Path
    digest: str
    already_restored: bool = False


class PackResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Path
    archive_path: Path
    digest: str
    already_packed: bool = False


class CheckResult(BaseModel):
    """Classification of one descriptor against its payload.

    ``actual_digest`` is ``None`` when the payload was never hashed
    (missing, or rejected by the size pre-check).
    """

    model_config = ConfigDict(frozen=True)

    source: Path
    status: CheckState
    descriptor: Descriptor
    actual_digest: str | None = None
    payload_path: Path | None = None
    relocated_to: list[Path] = []
    trace: list[CheckState] = []

    @field_validator("status")
    @classmethod
    def _must_be_terminal(cls, value: CheckState) -> CheckState:
        if value not in TERMINAL_STATES:
            raise ValueError(f"check status must be terminal, got {value.value}")
        return value

    @property
    def ok(self) -> bool:
        return self.status == CheckState.MATCH


class FileFailure(BaseModel):
    """A per-file error caught at the batch boundary."""

    model_config = ConfigDict(frozen=True)

    path: Path
    kind: str
    message: str
