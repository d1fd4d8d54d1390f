"""Per-path advisory locks.

Operations hold the lock for every path they are about to create or move
onto, so two threads targeting the same digest-named path serialize instead
of racing.  Locks are taken in sorted order to avoid deadlock.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path


class PathLocks:
    """Registry of one :class:`threading.Lock` per absolute path."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    @contextmanager
    def hold(self, *paths: Path) -> Iterator[None]:
        keys = sorted({os.path.abspath(p) for p in paths})
        with ExitStack() as stack:
            for key in keys:
                stack.enter_context(self._lock_for(key))
            yield


# Shared by every component in the process unless one is injected.
path_locks = PathLocks()
