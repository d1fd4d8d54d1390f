"""Streaming content digests for payload files.

The digest engine is a capability: anything with a ``name``, a fixed
``hex_length`` and a ``new()`` factory returning a hashlib-style object can
be plugged in.  Only the digest length depends on the choice of algorithm;
the descriptor and archive formats do not.

The default algorithm is MD5, which matches conventional ``md5sum`` listings.
It detects accidental corruption; it is not a defence against someone
crafting colliding files.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO, Protocol

from ncsum.core.filesystem import Filesystem

DEFAULT_ALGORITHM = "md5"
DEFAULT_CHUNK_SIZE = 1024 * 1024


class HashObject(Protocol):
    def update(self, data: bytes, /) -> None: ...

    def hexdigest(self) -> str: ...


class DigestEngine(Protocol):
    """Capability interface for a fixed-length digest algorithm."""

    name: str
    hex_length: int

    def new(self) -> HashObject: ...


class HashlibEngine:
    """Digest engine backed by any fixed-size :mod:`hashlib` algorithm.

    Parameters
    ----------
    algorithm:
        A name accepted by :func:`hashlib.new`.  Extendable-output functions
        (``shake_*``) are rejected because they have no fixed length.
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        try:
            probe = hashlib.new(algorithm, usedforsecurity=False)
        except ValueError as exc:
            raise ValueError(f"Unsupported digest algorithm: {algorithm!r}") from exc
        if probe.digest_size == 0:
            raise ValueError(f"Digest algorithm {algorithm!r} has no fixed length")
        self.name = probe.name
        self.hex_length = probe.digest_size * 2

    def new(self) -> HashObject:
        return hashlib.new(self.name, usedforsecurity=False)

    def __repr__(self) -> str:
        return f"HashlibEngine({self.name!r})"


def default_engine() -> DigestEngine:
    """Return the engine selected by the active configuration."""
    from ncsum.config import config

    return HashlibEngine(config.algorithm)


def digest_bytes(data: bytes, engine: DigestEngine | None = None) -> str:
    """Return the lowercase hex digest of raw bytes."""
    h = (engine or default_engine()).new()
    h.update(data)
    return h.hexdigest()


def digest_stream(
    stream: BinaryIO,
    engine: DigestEngine | None = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    sink: BinaryIO | None = None,
) -> str:
    """Digest *stream* chunk by chunk without holding it in memory.

    If *sink* is given every chunk is also written to it, so a payload can
    be copied and hashed in a single pass.  Read errors propagate.
    """
    h = (engine or default_engine()).new()
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        h.update(chunk)
        if sink is not None:
            sink.write(chunk)
    return h.hexdigest()


def digest_file(
    fs: Filesystem,
    path: Path,
    engine: DigestEngine | None = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Digest the file at *path*, read through *fs*."""
    with fs.open_read(path) as fh:
        return digest_stream(fh, engine, chunk_size=chunk_size)
