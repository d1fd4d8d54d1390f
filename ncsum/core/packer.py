"""Bundle a payload and its descriptor into a ``<digest>.pncsum`` archive.

The archive is written under a temporary name and moved into place without
replacing anything; the inputs are only deleted after the move succeeded.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ncsum.core.archive import embedded_descriptor, read_archive, write_archive
from ncsum.core.descriptor_codec import describe, encode, read_descriptor_file
from ncsum.core.errors import (
    ArchiveFormatError,
    NameCollisionError,
    NotFoundError,
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
from ncsum.models.results import PackResult

logger = logging.getLogger(__name__)


class Packer:
    """Creates ``.pncsum`` archives from raw files or named payloads.

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

    def pack(self, path: Path) -> PackResult:
        """Pack *path* into ``<digest>.pncsum`` beside it.

        A raw file is hashed and packed with a fresh descriptor.  A ``.ncsum``
        descriptor is packed together with its digest-named payload.  The
        packed inputs are removed afterwards.

        Raises
        ------
        NameCollisionError
            If ``<digest>.pncsum`` exists and does not hold this content.
        UnsupportedInputError
            If *path* is already an archive.
        """
        path = Path(path)
        if path.suffix == ARCHIVE_SUFFIX:
            raise UnsupportedInputError(f"{path.name} is already an archive")

        if path.suffix == DESCRIPTOR_SUFFIX:
            descriptor = read_descriptor_file(self._fs, path, engine=self._engine)
            payload = path.with_name(descriptor.payload_name)
            if not self._fs.exists(payload):
                raise NotFoundError(f"{payload.name} referenced by {path.name} does not exist")
            consumed = [payload, path]
        else:
            digest = digest_file(self._fs, path, self._engine, chunk_size=self._chunk_size)
            descriptor = describe(digest, path.name, self._fs.size(path))
            payload = path
            consumed = [path]

        archive = path.with_name(descriptor.archive_name)
        with self._locks.hold(archive):
            if self._fs.exists(archive):
                if not self._holds_digest(archive, descriptor.digest):
                    raise NameCollisionError(
                        f"{archive.name} already exists with different content; "
                        f"{path.name} left in place"
                    )
                logger.info("%s is already packed as %s", path, archive)
                return PackResult(
                    source=path,
                    archive_path=archive,
                    digest=descriptor.digest,
                    already_packed=True,
                )
            self._write(archive, payload, descriptor)

        for consumed_path in consumed:
            self._fs.remove(consumed_path)
        logger.info("Packed %s -> %s", path, archive)
        return PackResult(source=path, archive_path=archive, digest=descriptor.digest)

    def _write(self, archive: Path, payload: Path, descriptor: Descriptor) -> None:
        temp = self._fs.temp_path(archive.parent, f".{descriptor.digest}.")
        try:
            with self._fs.open_read(payload) as src, self._fs.open_new(temp) as out:
                write_archive(
                    out,
                    descriptor.original_name,
                    src,
                    self._fs.size(payload),
                    descriptor.descriptor_name,
                    encode(descriptor),
                )
            try:
                self._fs.move(temp, archive)
            except FileExistsError as exc:
                raise NameCollisionError(f"{archive.name} appeared while packing") from exc
        finally:
            if self._fs.exists(temp):
                self._fs.remove(temp)

    def _holds_digest(self, archive: Path, digest: str) -> bool:
        """Whether *archive* is a valid archive whose payload hashes to *digest*."""
        try:
            with self._fs.open_read(archive) as fh:
                contents = read_archive(
                    fh,
                    lambda stream: digest_stream(
                        stream, self._engine, chunk_size=self._chunk_size
                    ),
                )
            embedded = embedded_descriptor(contents, archive.name, engine=self._engine)
        except ArchiveFormatError as exc:
            logger.warning("Existing archive %s is unreadable: %s", archive, exc)
            return False
        return contents.payload_result == digest == embedded.digest
