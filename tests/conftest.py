"""Shared test fixtures for ncsum."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ncsum.core.checker import IntegrityChecker
from ncsum.core.filesystem import LocalFilesystem, MemoryFilesystem
from ncsum.core.hasher import HashlibEngine
from ncsum.core.locks import PathLocks
from ncsum.core.packer import Packer
from ncsum.core.renamer import ContentAddressRenamer


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def engine() -> HashlibEngine:
    """MD5, the default algorithm, pinned so tests ignore NCSUM_* settings."""
    return HashlibEngine("md5")


@pytest.fixture
def fs() -> LocalFilesystem:
    return LocalFilesystem()


@pytest.fixture
def memory_fs() -> MemoryFilesystem:
    return MemoryFilesystem()


@pytest.fixture
def locks() -> PathLocks:
    return PathLocks()


@pytest.fixture
def renamer(fs: LocalFilesystem, engine: HashlibEngine, locks: PathLocks) -> ContentAddressRenamer:
    return ContentAddressRenamer(fs, engine, locks=locks)


@pytest.fixture
def packer(fs: LocalFilesystem, engine: HashlibEngine, locks: PathLocks) -> Packer:
    return Packer(fs, engine, locks=locks)


@pytest.fixture
def checker(fs: LocalFilesystem, engine: HashlibEngine, locks: PathLocks) -> IntegrityChecker:
    return IntegrityChecker(fs, engine, locks=locks)


@pytest.fixture
def separating_checker(
    fs: LocalFilesystem, engine: HashlibEngine, locks: PathLocks
) -> IntegrityChecker:
    """A checker that quarantines mismatches into ``mismatches/``."""
    return IntegrityChecker(fs, engine, separate_mismatches=True, locks=locks)


@pytest.fixture
def make_file(tmp_dir: Path) -> Callable[..., Path]:
    """Factory fixture: write *content* to *name* inside the temp directory."""

    def _factory(name: str = "report.pdf", content: bytes = b"X") -> Path:
        path = tmp_dir / name
        path.write_bytes(content)
        return path

    return _factory
