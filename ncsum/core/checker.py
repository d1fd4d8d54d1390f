"""Integrity checking of payloads against their descriptors.

Each input is resolved once into a descriptor source (a standalone
``.ncsum`` or an archive embedding one) and then walks a small state
machine::

    RESOLVING -> RESOLVED | MISSING
    RESOLVED  -> HASHING | MISMATCH   (size pre-check)
    HASHING   -> MATCH | MISMATCH

MISSING, MATCH and MISMATCH are terminal.  A mismatch is a result, not an
error: it is reported and optionally quarantined, and the batch carries on.
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path, PurePath
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ncsum.core.archive import embedded_descriptor, read_archive
from ncsum.core.descriptor_codec import read_descriptor_file
from ncsum.core.errors import InvalidTransitionError, UnsupportedInputError
from ncsum.core.filesystem import Filesystem, LocalFilesystem
from ncsum.core.hasher import (
    DEFAULT_CHUNK_SIZE,
    DigestEngine,
    default_engine,
    digest_file,
    digest_stream,
)
from ncsum.core.locks import PathLocks, path_locks
from ncsum.models.descriptor import ARCHIVE_SUFFIX, DESCRIPTOR_SUFFIX, Descriptor
from ncsum.models.results import VALID_TRANSITIONS, CheckResult, CheckState

logger = logging.getLogger(__name__)

DEFAULT_QUARANTINE_DIR = "mismatches"


# ---------------------------------------------------------------------------
# Descriptor sources
# ---------------------------------------------------------------------------


class StandaloneSource(BaseModel):
    """A ``<digest>.ncsum`` file with its payload beside it."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["standalone"] = "standalone"
    path: Path


class EmbeddedSource(BaseModel):
    """A ``.pncsum`` archive carrying payload and descriptor together."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["embedded"] = "embedded"
    archive_path: Path


DescriptorSource = Annotated[
    Union[StandaloneSource, EmbeddedSource], Field(discriminator="kind")
]


def resolve_source(path: Path) -> DescriptorSource:
    """Classify an input path by its suffix."""
    path = Path(path)
    if path.suffix == DESCRIPTOR_SUFFIX:
        return StandaloneSource(path=path)
    if path.suffix == ARCHIVE_SUFFIX:
        return EmbeddedSource(archive_path=path)
    raise UnsupportedInputError(
        f"{path.name} is neither a {DESCRIPTOR_SUFFIX} nor a {ARCHIVE_SUFFIX} file"
    )


# ---------------------------------------------------------------------------
# State tracking
# ---------------------------------------------------------------------------


class CheckTracker:
    """Enforces the per-input check state machine and records its trace."""

    def __init__(self) -> None:
        self._state = CheckState.RESOLVING
        self._trace = [CheckState.RESOLVING]

    @property
    def state(self) -> CheckState:
        return self._state

    @property
    def trace(self) -> list[CheckState]:
        return list(self._trace)

    def advance(self, target: CheckState) -> None:
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot move check from {self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        self._state = target
        self._trace.append(target)


def quarantine_name(name: str, attempt: int) -> str:
    """``abc.pdf`` for the first attempt, then ``abc.1.pdf``, ``abc.2.pdf``..."""
    if attempt == 0:
        return name
    pure = PurePath(name)
    return f"{pure.stem}.{attempt}{pure.suffix}"


# ---------------------------------------------------------------------------
# Checker
# ---------------------------------------------------------------------------


class IntegrityChecker:
    """Recomputes payload digests and classifies them against descriptors.

    Parameters
    ----------
    fs:
        Filesystem capability.  Defaults to the local disk.
    engine:
        Digest engine.  Defaults to the configured algorithm.
    separate_mismatches:
        Move every MISMATCH payload and its descriptor (or its archive) into
        *quarantine_dir* beside the descriptor.
    quarantine_dir:
        Name of the quarantine subdirectory.
    locks:
        Per-path lock registry shared with other components.
    chunk_size:
        Read size used while hashing.
    """

    def __init__(
        self,
        fs: Filesystem | None = None,
        engine: DigestEngine | None = None,
        *,
        separate_mismatches: bool = False,
        quarantine_dir: str = DEFAULT_QUARANTINE_DIR,
        locks: PathLocks | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._fs = fs or LocalFilesystem()
        self._engine = engine or default_engine()
        self._separate = separate_mismatches
        self._quarantine_dir = quarantine_dir
        self._locks = locks or path_locks
        self._chunk_size = chunk_size

    def check(self, path: Path) -> CheckResult:
        """Check one descriptor or archive.

        Raises
        ------
        ParseError
            If a standalone descriptor is malformed.
        ArchiveFormatError
            If an archive is malformed.
        UnsupportedInputError
            If *path* is neither kind of file.
        """
        source = resolve_source(path)
        tracker = CheckTracker()
        if isinstance(source, StandaloneSource):
            result = self._check_standalone(source.path, tracker)
        else:
            result = self._check_embedded(source.archive_path, tracker)

        if result.status == CheckState.MISMATCH:
            logger.warning(
                "%s: digest mismatch (recorded %s, actual %s)",
                result.source,
                result.descriptor.digest,
                result.actual_digest or "not computed",
            )
            if self._separate:
                relocated = self._relocate(self._mismatch_files(result), result.source.parent)
                result = result.model_copy(update={"relocated_to": relocated})
        return result

    # ------------------------------------------------------------------
    # Resolution and hashing
    # ------------------------------------------------------------------

    def _check_standalone(self, path: Path, tracker: CheckTracker) -> CheckResult:
        descriptor = read_descriptor_file(self._fs, path, engine=self._engine)
        payload = path.with_name(descriptor.payload_name)

        if not self._fs.exists(payload):
            archive = path.with_name(descriptor.archive_name)
            if self._fs.exists(archive):
                logger.debug("%s missing; checking archive %s instead", payload, archive)
                return self._check_embedded(
                    archive, tracker, expected=descriptor, source=path
                )
            tracker.advance(CheckState.MISSING)
            logger.warning("%s: payload %s is missing", path, payload.name)
            return CheckResult(
                source=path,
                status=CheckState.MISSING,
                descriptor=descriptor,
                payload_path=payload,
                trace=tracker.trace,
            )

        tracker.advance(CheckState.RESOLVED)
        actual: str | None = None
        if descriptor.size is not None and self._fs.size(payload) != descriptor.size:
            logger.debug("%s: size differs from descriptor; skipping hash", payload)
            tracker.advance(CheckState.MISMATCH)
        else:
            tracker.advance(CheckState.HASHING)
            actual = digest_file(
                self._fs, payload, self._engine, chunk_size=self._chunk_size
            )
            tracker.advance(
                CheckState.MATCH if actual == descriptor.digest else CheckState.MISMATCH
            )

        return CheckResult(
            source=path,
            status=tracker.state,
            descriptor=descriptor,
            actual_digest=actual,
            payload_path=payload,
            trace=tracker.trace,
        )

    def _check_embedded(
        self,
        archive: Path,
        tracker: CheckTracker,
        *,
        expected: Descriptor | None = None,
        source: Path | None = None,
    ) -> CheckResult:
        """Hash an archive's payload as it streams past, then read its descriptor.

        With *expected* (a standalone descriptor whose payload was packed),
        the payload must match both descriptors.
        """

        def _hash_payload(stream) -> str:
            tracker.advance(CheckState.RESOLVED)
            tracker.advance(CheckState.HASHING)
            return digest_stream(stream, self._engine, chunk_size=self._chunk_size)

        with self._fs.open_read(archive) as fh:
            contents = read_archive(fh, _hash_payload)
        embedded = embedded_descriptor(contents, archive.name, engine=self._engine)

        descriptor = expected or embedded
        actual = contents.payload_result
        matched = actual == descriptor.digest == embedded.digest
        tracker.advance(CheckState.MATCH if matched else CheckState.MISMATCH)

        return CheckResult(
            source=source or archive,
            status=tracker.state,
            descriptor=descriptor,
            actual_digest=actual,
            payload_path=archive,
            trace=tracker.trace,
        )

    # ------------------------------------------------------------------
    # Quarantine
    # ------------------------------------------------------------------

    @staticmethod
    def _mismatch_files(result: CheckResult) -> list[Path]:
        files = [result.payload_path]
        if result.source != result.payload_path:
            files.append(result.source)
        return files

    def _relocate(self, files: list[Path], base_dir: Path) -> list[Path]:
        """Move *files* into the quarantine directory as a group.

        All files get the same numeric suffix, chosen so that none of the
        targets exists yet.  If a move fails, files already moved are put
        back before the error propagates.
        """
        quarantine = base_dir / self._quarantine_dir
        self._fs.makedirs(quarantine)
        with self._locks.hold(quarantine):
            for attempt in itertools.count():
                targets = [quarantine / quarantine_name(f.name, attempt) for f in files]
                if not any(self._fs.exists(t) for t in targets):
                    break
            moved: list[tuple[Path, Path]] = []
            try:
                for src, dst in zip(files, targets):
                    self._fs.move(src, dst)
                    moved.append((src, dst))
                    logger.info("Quarantined %s -> %s", src, dst)
            except OSError:
                self._restore(moved)
                raise
        return targets

    def _restore(self, moved: list[tuple[Path, Path]]) -> None:
        for src, dst in reversed(moved):
            try:
                self._fs.move(dst, src)
            except OSError as exc:
                logger.error("Could not return %s to %s; it stays quarantined: %s", dst, src, exc)
            else:
                logger.warning("Returned %s to %s after a failed quarantine", dst, src)
