"""Filesystem capability used by every ncsum operation.

Operations never call OS APIs directly; they receive a :class:`Filesystem`
and work on explicit paths.  :class:`LocalFilesystem` talks to the real
disk, :class:`MemoryFilesystem` keeps everything in a dict for dry runs and
tests.

Two rules hold for both implementations:

- ``open_new`` creates exclusively and ``move`` never replaces, so a second
  writer to the same target gets ``FileExistsError`` instead of clobbering
  the first.
- ``write_atomic`` either leaves the old content or the complete new
  content, never a partial file.
"""

from __future__ import annotations

import errno
import io
import itertools
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import BinaryIO, Protocol

logger = logging.getLogger(__name__)


class Filesystem(Protocol):
    def exists(self, path: Path) -> bool: ...

    def size(self, path: Path) -> int: ...

    def open_read(self, path: Path) -> BinaryIO: ...

    def read_bytes(self, path: Path) -> bytes: ...

    def open_new(self, path: Path) -> BinaryIO: ...

    def write_atomic(self, path: Path, data: bytes) -> None: ...

    def move(self, src: Path, dst: Path) -> None: ...

    def remove(self, path: Path) -> None: ...

    def makedirs(self, path: Path) -> None: ...

    def temp_path(self, directory: Path, prefix: str) -> Path: ...


def _exists_error(path: Path) -> FileExistsError:
    return FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(path))


def _missing_error(path: Path) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))


class LocalFilesystem:
    """The real filesystem."""

    def exists(self, path: Path) -> bool:
        return os.path.lexists(path)

    def size(self, path: Path) -> int:
        return os.stat(path).st_size

    def open_read(self, path: Path) -> BinaryIO:
        return open(path, "rb")

    def read_bytes(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def open_new(self, path: Path) -> BinaryIO:
        return open(path, "xb")

    def write_atomic(self, path: Path, data: bytes) -> None:
        path = Path(path)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, path)
        except BaseException:
            if os.path.lexists(tmp):
                os.unlink(tmp)
            raise

    def move(self, src: Path, dst: Path) -> None:
        """Rename *src* to *dst*, refusing to replace an existing *dst*.

        A hard link followed by an unlink is atomic and fails if *dst*
        exists.  Filesystems without hard links fall back to a checked
        rename.
        """
        try:
            os.link(src, dst)
        except FileExistsError:
            raise
        except OSError as exc:
            if exc.errno == errno.ENOENT:
                raise
            logger.debug("Hard link %s -> %s unavailable (%s); using rename", src, dst, exc)
            if os.path.lexists(dst):
                raise _exists_error(dst) from None
            os.rename(src, dst)
            return
        os.unlink(src)

    def remove(self, path: Path) -> None:
        os.unlink(path)

    def makedirs(self, path: Path) -> None:
        os.makedirs(path, exist_ok=True)

    def temp_path(self, directory: Path, prefix: str) -> Path:
        return Path(directory) / f"{prefix}{uuid.uuid4().hex[:12]}.tmp"


class _MemoryWriter(io.BytesIO):
    def __init__(self, fs: MemoryFilesystem, path: Path) -> None:
        super().__init__()
        self._fs = fs
        self._path = path

    def close(self) -> None:
        if not self.closed:
            with self._fs._lock:
                self._fs._files[self._path] = self.getvalue()
        super().close()


class MemoryFilesystem:
    """In-memory filesystem with the same no-overwrite rules as the disk.

    Parameters
    ----------
    files:
        Initial contents, keyed by path.
    """

    def __init__(self, files: dict[Path, bytes] | None = None) -> None:
        self._files: dict[Path, bytes] = {Path(p): bytes(d) for p, d in (files or {}).items()}
        self._dirs: set[Path] = {p.parent for p in self._files}
        self._lock = threading.RLock()
        self._counter = itertools.count()

    @property
    def files(self) -> dict[Path, bytes]:
        """Snapshot of every stored file."""
        with self._lock:
            return dict(self._files)

    def exists(self, path: Path) -> bool:
        path = Path(path)
        with self._lock:
            return path in self._files or path in self._dirs

    def size(self, path: Path) -> int:
        return len(self.read_bytes(path))

    def open_read(self, path: Path) -> BinaryIO:
        return io.BytesIO(self.read_bytes(path))

    def read_bytes(self, path: Path) -> bytes:
        path = Path(path)
        with self._lock:
            if path not in self._files:
                raise _missing_error(path)
            return self._files[path]

    def open_new(self, path: Path) -> BinaryIO:
        path = Path(path)
        with self._lock:
            if self.exists(path):
                raise _exists_error(path)
            # Reserve the name so a concurrent writer is rejected.
            self._files[path] = b""
        return _MemoryWriter(self, path)

    def write_atomic(self, path: Path, data: bytes) -> None:
        with self._lock:
            self._files[Path(path)] = bytes(data)

    def move(self, src: Path, dst: Path) -> None:
        src, dst = Path(src), Path(dst)
        with self._lock:
            if src not in self._files:
                raise _missing_error(src)
            if self.exists(dst):
                raise _exists_error(dst)
            self._files[dst] = self._files.pop(src)

    def remove(self, path: Path) -> None:
        path = Path(path)
        with self._lock:
            if path not in self._files:
                raise _missing_error(path)
            del self._files[path]

    def makedirs(self, path: Path) -> None:
        path = Path(path)
        with self._lock:
            self._dirs.add(path)
            self._dirs.update(path.parents)

    def temp_path(self, directory: Path, prefix: str) -> Path:
        return Path(directory) / f"{prefix}{next(self._counter)}.tmp"
