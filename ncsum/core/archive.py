"""The ``.pncsum`` archive: a payload and its descriptor in one file.

The container is an uncompressed POSIX tar stream with exactly two regular
file members, in fixed order:

1. the payload, stored under its original name;
2. the descriptor text, stored under ``<digest>.ncsum``.

Every member carries its own name and length, so both can be read strictly
in order from a non-seekable stream.  The payload comes first, which lets a
reader hash it before it has even seen the descriptor.
"""

from __future__ import annotations

import io
import logging
import tarfile
from collections.abc import Callable
from typing import Any, BinaryIO, NamedTuple, TypeVar

from ncsum.core.descriptor_codec import decode
from ncsum.core.errors import ArchiveFormatError, ParseError
from ncsum.core.hasher import DigestEngine
from ncsum.models.descriptor import DESCRIPTOR_SUFFIX, Descriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MEMBER_MODE = 0o644


class ArchiveContents(NamedTuple):
    payload_name: str
    payload_result: Any
    descriptor_name: str
    descriptor_bytes: bytes


def _member(name: str, size: int, mtime: int) -> tarfile.TarInfo:
    info = tarfile.TarInfo(name)
    info.size = size
    info.mode = _MEMBER_MODE
    info.mtime = mtime
    info.type = tarfile.REGTYPE
    return info


def write_archive(
    fileobj: BinaryIO,
    payload_name: str,
    payload: BinaryIO,
    payload_size: int,
    descriptor_name: str,
    descriptor_bytes: bytes,
    *,
    mtime: int = 0,
) -> None:
    """Stream a payload and its descriptor into *fileobj*.

    Exactly *payload_size* bytes are copied from *payload*; a shorter stream
    raises ``OSError``.
    """
    if not descriptor_name.endswith(DESCRIPTOR_SUFFIX):
        raise ValueError(f"descriptor member must end in {DESCRIPTOR_SUFFIX}: {descriptor_name!r}")
    with tarfile.open(fileobj=fileobj, mode="w|", format=tarfile.PAX_FORMAT) as tar:
        tar.addfile(_member(payload_name, payload_size, mtime), payload)
        tar.addfile(
            _member(descriptor_name, len(descriptor_bytes), mtime),
            io.BytesIO(descriptor_bytes),
        )


def _require_regular(member: tarfile.TarInfo, position: str) -> None:
    if not member.isreg():
        raise ArchiveFormatError(f"{position} member {member.name!r} is not a regular file")


def read_archive(
    fileobj: BinaryIO, consume_payload: Callable[[BinaryIO], T]
) -> ArchiveContents:
    """Read an archive from *fileobj* in a single forward pass.

    *consume_payload* receives the payload member as a stream, before the
    descriptor has been read, and its return value is passed through as
    ``payload_result``.

    Raises
    ------
    ArchiveFormatError
        If the archive is truncated or corrupt, holds fewer or more than two
        members, a member is not a regular file, or the second member is not
        named ``*.ncsum``.
    """
    try:
        with tarfile.open(fileobj=fileobj, mode="r|") as tar:
            members = iter(tar)

            payload_member = next(members, None)
            if payload_member is None:
                raise ArchiveFormatError("archive holds no members")
            _require_regular(payload_member, "payload")
            payload_stream = tar.extractfile(payload_member)
            payload_result = consume_payload(payload_stream)

            descriptor_member = next(members, None)
            if descriptor_member is None:
                raise ArchiveFormatError("archive holds fewer than two members")
            _require_regular(descriptor_member, "descriptor")
            if not descriptor_member.name.endswith(DESCRIPTOR_SUFFIX):
                raise ArchiveFormatError(
                    f"second member {descriptor_member.name!r} is not a {DESCRIPTOR_SUFFIX} descriptor"
                )
            descriptor_bytes = tar.extractfile(descriptor_member).read()

            if next(members, None) is not None:
                raise ArchiveFormatError("archive holds more than two members")
    except (tarfile.TarError, EOFError) as exc:
        raise ArchiveFormatError(f"malformed archive: {exc}") from exc

    logger.debug(
        "Read archive members %r (%d bytes) and %r",
        payload_member.name,
        payload_member.size,
        descriptor_member.name,
    )
    return ArchiveContents(
        payload_name=payload_member.name,
        payload_result=payload_result,
        descriptor_name=descriptor_member.name,
        descriptor_bytes=descriptor_bytes,
    )


def embedded_descriptor(
    contents: ArchiveContents, archive_name: str, *, engine: DigestEngine | None = None
) -> Descriptor:
    """Decode the descriptor member and check both member names against it.

    Raises
    ------
    ArchiveFormatError
        If the descriptor is malformed, the descriptor member is not named
        ``<digest>.ncsum`` for the digest it records, or the payload member
        is not stored under the recorded original name.
    """
    try:
        descriptor = decode(contents.descriptor_bytes, engine=engine)
    except ParseError as exc:
        raise ArchiveFormatError(f"{archive_name}: embedded descriptor: {exc}") from exc
    if contents.descriptor_name != descriptor.descriptor_name:
        raise ArchiveFormatError(
            f"{archive_name}: descriptor member {contents.descriptor_name!r} records "
            f"digest {descriptor.digest}; expected {descriptor.descriptor_name!r}"
        )
    if contents.payload_name != descriptor.original_name:
        raise ArchiveFormatError(
            f"{archive_name}: payload member {contents.payload_name!r} does not match "
            f"recorded name {descriptor.original_name!r}"
        )
    return descriptor


def pack(
    payload_name: str,
    payload_bytes: bytes,
    descriptor_bytes: bytes,
    *,
    engine: DigestEngine | None = None,
) -> bytes:
    """Build an archive in memory.

    The descriptor member is named after the digest recorded in
    *descriptor_bytes*, which must therefore decode cleanly.
    """
    descriptor = decode(descriptor_bytes, engine=engine)
    buf = io.BytesIO()
    write_archive(
        buf,
        payload_name,
        io.BytesIO(payload_bytes),
        len(payload_bytes),
        descriptor.descriptor_name,
        descriptor_bytes,
    )
    return buf.getvalue()


def unpack(archive_bytes: bytes) -> tuple[str, bytes, bytes]:
    """Split an in-memory archive into ``(payload_name, payload, descriptor)``."""
    contents = read_archive(io.BytesIO(archive_bytes), lambda stream: stream.read())
    return contents.payload_name, contents.payload_result, contents.descriptor_bytes
