"""Text codec for ``.ncsum`` descriptors.

A descriptor is one checksum-listing record, ``<digest>  <original name>``,
exactly as ``get-hash`` prints it, optionally followed by metadata lines of
the form ``# key: value``::

    9e107d9d372bb6826bd81d3542a419d6  report.pdf
    # size: 48213

Unknown metadata keys are ignored so newer writers stay readable.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from ncsum.core.errors import ParseError
from ncsum.core.filesystem import Filesystem
from ncsum.core.hasher import DigestEngine, default_engine
from ncsum.models.descriptor import Descriptor, is_hex_digest

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "  "
_SIZE_KEY = "size"


def format_record(digest: str, name: str) -> str:
    """The checksum-listing line shared by descriptors and ``get-hash``."""
    return f"{digest}{RECORD_SEPARATOR}{name}"


def describe(digest: str, original_name: str, size: int | None = None) -> Descriptor:
    """Build the descriptor for a file about to be named or packed.

    Raises
    ------
    ParseError
        If *original_name* cannot be recorded, e.g. it is not valid UTF-8.
    """
    try:
        return Descriptor(digest=digest, original_name=original_name, size=size)
    except ValidationError as exc:
        raise ParseError(f"cannot record {original_name!r}: {exc.errors()[0]['msg']}") from exc


def encode(descriptor: Descriptor) -> bytes:
    """Serialize a descriptor to UTF-8 text with a trailing newline."""
    lines = [format_record(descriptor.digest, descriptor.original_name)]
    if descriptor.size is not None:
        lines.append(f"# {_SIZE_KEY}: {descriptor.size}")
    return ("\n".join(lines) + "\n").encode("utf-8")


def decode(data: bytes, *, engine: DigestEngine | None = None) -> Descriptor:
    """Parse descriptor text.

    Raises
    ------
    ParseError
        If the text is not UTF-8, does not hold exactly one record line, the
        digest is not hexadecimal or has the wrong length for *engine*, the
        name is empty or a path, or a metadata line is malformed.
    """
    engine = engine or default_engine()
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"descriptor is not valid UTF-8: {exc}") from exc

    record: str | None = None
    size: int | None = None
    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.rstrip("\r")
        if not line.strip():
            continue
        if line.startswith("#"):
            key, sep, value = line[1:].partition(":")
            key, value = key.strip(), value.strip()
            if not sep or not key:
                raise ParseError(f"line {lineno}: malformed metadata line {line!r}")
            if key == _SIZE_KEY:
                if not value.isdigit():
                    raise ParseError(f"line {lineno}: size is not a byte count: {value!r}")
                size = int(value)
            else:
                logger.debug("Ignoring unknown descriptor metadata %r", key)
            continue
        if record is not None:
            raise ParseError(f"line {lineno}: more than one record in descriptor")
        record = line

    if record is None:
        raise ParseError("descriptor holds no record")

    digest, sep, name = record.partition(RECORD_SEPARATOR)
    if not sep:
        raise ParseError(f"record has no two-space separator: {record!r}")
    if not is_hex_digest(digest):
        raise ParseError(f"digest is not hexadecimal: {digest!r}")
    if len(digest) != engine.hex_length:
        raise ParseError(
            f"digest has {len(digest)} hex digits, {engine.name} produces {engine.hex_length}"
        )
    if not name:
        raise ParseError("original name is empty")

    try:
        return Descriptor(digest=digest, original_name=name, size=size)
    except ValidationError as exc:
        raise ParseError(f"invalid descriptor: {exc.errors()[0]['msg']}") from exc


def read_descriptor_file(
    fs: Filesystem, path: Path, *, engine: DigestEngine | None = None
) -> Descriptor:
    """Decode a standalone ``.ncsum`` file.

    The file must be named ``<digest>.ncsum`` for the digest it records;
    anything else means the file was renamed or tampered with.
    """
    descriptor = decode(fs.read_bytes(path), engine=engine)
    if path.name != descriptor.descriptor_name:
        raise ParseError(
            f"{path.name} records digest {descriptor.digest}; "
            f"expected file name {descriptor.descriptor_name}"
        )
    return descriptor
