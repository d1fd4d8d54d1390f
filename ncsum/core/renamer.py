"""Content-address renaming: ``name`` a file after its digest, ``rename`` it back.

``name`` writes ``<digest>.ncsum`` first and renames the payload second, so a
crash in between leaves an extra descriptor, never a lost file.  Neither
direction ever replaces an existing file that holds different content.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ncsum.core.archive import embedded_descriptor, read_archive
from ncsum.core.descriptor_codec import describe, encode, read_descriptor_file
from ncsum.core.errors import (
    ArchiveFormatError,
    NameCollisionError,
    NotFoundError,
    ParseError,
    UnsupportedInputError,
)
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
from ncsum.models.results import NameResult, RenameResult

logger = logging.getLogger(__name__)


class ContentAddressRenamer:
    """Renames payloads to and from their content address.

    Parameters
    ----------
    fs:
        Filesystem capability.  Defaults to the local disk.
    engine:
        Digest engine.  Defaults to the configured algorithm.
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
        locks: PathLocks | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._fs = fs or LocalFilesystem()
        self._engine = engine or default_engine()
        self._locks = locks or path_locks
        self._chunk_size = chunk_size

    def _digest(self, path: Path) -> str:
        return digest_file(self._fs, path, self._engine, chunk_size=self._chunk_size)

    # ------------------------------------------------------------------
    # name
    # ------------------------------------------------------------------

    def name(self, path: Path) -> NameResult:
        """Rename *path* to ``<digest><ext>`` and record its original name.

        Running ``name`` on an already-named payload is a no-op that keeps
        the existing descriptor, so the original name is never lost.
        A file whose content is already recorded under another extension is
        left in place as a duplicate.

        Raises
        ------
        NameCollisionError
            If ``<digest><ext>`` already exists with different content.
        ParseError
            If the file name cannot be recorded in a descriptor.
        UnsupportedInputError
            If *path* is itself a descriptor or archive.
        """
        path = Path(path)
        if path.suffix in (DESCRIPTOR_SUFFIX, ARCHIVE_SUFFIX):
            raise UnsupportedInputError(f"{path.name} is already a descriptor or archive")

        digest = self._digest(path)
        descriptor = describe(digest, path.name, self._fs.size(path))
        target = path.with_name(descriptor.payload_name)
        descriptor_path = path.with_name(descriptor.descriptor_name)

        with self._locks.hold(target, descriptor_path):
            already_named = target == path
            if not already_named and self._fs.exists(target):
                existing = self._digest(target)
                if existing != digest:
                    raise NameCollisionError(
                        f"{target.name} already exists with different content "
                        f"(digest {existing}); {path.name} left in place"
                    )
                logger.info("%s duplicates %s; leaving it in place", path, target)

            recorded, written = self._ensure_descriptor(
                descriptor_path, descriptor, original_known=not already_named
            )
            if recorded.payload_name != descriptor.payload_name:
                # Same content, recorded under another extension.
                kept = path.with_name(recorded.payload_name)
                logger.info(
                    "%s duplicates %s (recorded as %s); leaving it in place",
                    path,
                    kept,
                    recorded.original_name,
                )
                return NameResult(
                    source=path,
                    payload_path=kept,
                    descriptor_path=descriptor_path,
                    digest=digest,
                    renamed=False,
                    descriptor_written=False,
                )

            renamed = False
            if not self._fs.exists(target):
                try:
                    self._fs.move(path, target)
                except FileExistsError as exc:
                    raise NameCollisionError(
                        f"{target.name} appeared while naming {path.name}"
                    ) from exc
                renamed = True
                logger.info("Named %s -> %s", path, target)

        return NameResult(
            source=path,
            payload_path=target,
            descriptor_path=descriptor_path,
            digest=digest,
            renamed=renamed,
            descriptor_written=written,
        )

    def _ensure_descriptor(
        self, descriptor_path: Path, descriptor: Descriptor, *, original_known: bool
    ) -> tuple[Descriptor, bool]:
        """Write *descriptor* unless a valid one is already in place.

        Returns the descriptor now recorded at *descriptor_path* and whether
        it was written.

        A corrupt descriptor is only rewritten when the payload still carries
        its original name; otherwise the rewrite would record the digest name
        as the original and the real one would be gone.
        """
        if self._fs.exists(descriptor_path):
            try:
                existing = read_descriptor_file(self._fs, descriptor_path, engine=self._engine)
            except ParseError:
                if not original_known:
                    raise
                logger.warning("Rewriting corrupt descriptor %s", descriptor_path)
            else:
                logger.debug("Keeping existing descriptor %s", descriptor_path)
                return existing, False
        elif not original_known:
            logger.warning(
                "%s has no descriptor; recording its current name as the original",
                descriptor_path.with_name(descriptor.payload_name),
            )

        self._fs.write_atomic(descriptor_path, encode(descriptor))
        logger.debug("Wrote descriptor %s", descriptor_path)
        return descriptor, True

    # ------------------------------------------------------------------
    # rename
    # ------------------------------------------------------------------

    def rename(self, path: Path) -> RenameResult:
        """Restore the payload described by *path* to its original name.

        *path* is either a standalone ``.ncsum`` descriptor or a ``.pncsum``
        archive.  The descriptor (or archive) is removed once the payload is
        back under its original name.

        Raises
        ------
        NotFoundError
            If the digest-named payload is missing.
        NameCollisionError
            If the original name is taken by different content.
        """
        path = Path(path)
        if path.suffix == DESCRIPTOR_SUFFIX:
            return self._restore_standalone(path)
        if path.suffix == ARCHIVE_SUFFIX:
            return self._restore_embedded(path)
        raise UnsupportedInputError(
            f"{path.name} is neither a {DESCRIPTOR_SUFFIX} nor a {ARCHIVE_SUFFIX} file"
        )

    def _restore_standalone(self, path: Path) -> RenameResult:
        descriptor = read_descriptor_file(self._fs, path, engine=self._engine)
        payload = path.with_name(descriptor.payload_name)
        target = path.with_name(descriptor.original_name)

        with self._locks.hold(payload, target):
            if target == payload or self._fs.exists(target):
                if target != payload:
                    self._require_same_content(target, descriptor, path)
                    self._drop_duplicate(payload, descriptor)
                self._fs.remove(path)
                logger.info("%s already restored as %s", path, target)
                return RenameResult(
                    source=path,
                    restored_path=target,
                    digest=descriptor.digest,
                    already_restored=True,
                )

            if not self._fs.exists(payload):
                raise NotFoundError(f"{payload.name} referenced by {path.name} does not exist")
            try:
                self._fs.move(payload, target)
            except FileExistsError as exc:
                raise NameCollisionError(
                    f"{target.name} appeared while restoring {payload.name}"
                ) from exc
            self._fs.remove(path)

        logger.info("Restored %s -> %s", payload, target)
        return RenameResult(source=path, restored_path=target, digest=descriptor.digest)

    def _require_same_content(self, target: Path, descriptor: Descriptor, source: Path) -> None:
        existing = self._digest(target)
        if existing != descriptor.digest:
            raise NameCollisionError(
                f"{target.name} already exists with different content "
                f"(digest {existing}); {source.name} left in place"
            )

    def _drop_duplicate(self, payload: Path, descriptor: Descriptor) -> None:
        """Remove a digest-named copy only if it really holds the recorded content."""
        if not self._fs.exists(payload):
            return
        if self._digest(payload) == descriptor.digest:
            self._fs.remove(payload)
            logger.debug("Removed duplicate %s", payload)
        else:
            logger.warning("%s does not match its descriptor; leaving it in place", payload)

    def _restore_embedded(self, path: Path) -> RenameResult:
        temp = self._fs.temp_path(path.parent, f".{path.stem}.")

        def _extract(stream):
            with self._fs.open_new(temp) as out:
                return digest_stream(
                    stream, self._engine, chunk_size=self._chunk_size, sink=out
                )

        try:
            with self._fs.open_read(path) as fh:
                contents = read_archive(fh, _extract)
            descriptor = embedded_descriptor(contents, path.name, engine=self._engine)
            if contents.payload_result != descriptor.digest:
                raise ArchiveFormatError(
                    f"{path.name}: payload digest {contents.payload_result} does not "
                    f"match embedded descriptor {descriptor.digest}"
                )

            target = path.with_name(descriptor.original_name)
            with self._locks.hold(target):
                already_restored = self._fs.exists(target)
                if already_restored:
                    self._require_same_content(target, descriptor, path)
                else:
                    try:
                        self._fs.move(temp, target)
                    except FileExistsError as exc:
                        raise NameCollisionError(
                            f"{target.name} appeared while unpacking {path.name}"
                        ) from exc
        finally:
            if self._fs.exists(temp):
                self._fs.remove(temp)

        self._fs.remove(path)
        logger.info("Unpacked %s -> %s", path, target)
        return RenameResult(
            source=path,
            restored_path=target,
            digest=descriptor.digest,
            already_restored=already_restored,
        )
