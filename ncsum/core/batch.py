"""Batch execution with per-file error isolation.

Every operation runs over an explicit list of paths.  A failure on one path
is caught here, logged, and recorded; the remaining paths are still
processed.  The summary collector is append-only and lock-protected, so
results may arrive from worker threads in any order.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from ncsum.core.errors import UnsupportedInputError, as_ncsum_error
from ncsum.models.results import FileFailure

logger = logging.getLogger(__name__)


class BatchSummary:
    """Thread-safe collector of per-file outcomes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: list[tuple[int, Any]] = []
        self._failures: list[tuple[int, FileFailure]] = []
        self._skipped: list[tuple[int, Path]] = []
        self._cancelled = False

    def add_result(self, index: int, result: Any) -> None:
        with self._lock:
            self._results.append((index, result))

    def add_failure(self, index: int, failure: FileFailure) -> None:
        with self._lock:
            self._failures.append((index, failure))

    def add_skipped(self, index: int, path: Path) -> None:
        with self._lock:
            self._skipped.append((index, path))

    def mark_cancelled(self) -> None:
        with self._lock:
            self._cancelled = True

    @property
    def results(self) -> list[Any]:
        """Results in input order."""
        with self._lock:
            return [r for _, r in sorted(self._results, key=lambda item: item[0])]

    @property
    def failures(self) -> list[FileFailure]:
        with self._lock:
            return [f for _, f in sorted(self._failures, key=lambda item: item[0])]

    @property
    def skipped(self) -> list[Path]:
        with self._lock:
            return [p for _, p in sorted(self._skipped, key=lambda item: item[0])]

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def ok(self) -> bool:
        """True when nothing failed, nothing was cancelled and every result is ok."""
        with self._lock:
            if self._failures or self._cancelled:
                return False
            return all(getattr(r, "ok", True) for _, r in self._results)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def _run_one(
    index: int,
    path: Path,
    operation: Callable[[Path], Any],
    summary: BatchSummary,
) -> tuple[str, Any]:
    try:
        result = operation(path)
    except UnsupportedInputError as exc:
        logger.warning("Skipping %s: %s", path, exc)
        summary.add_skipped(index, path)
        return "skipped", path
    except Exception as exc:
        error = as_ncsum_error(exc)
        if error is None:
            raise
        failure = FileFailure(path=path, kind=error.kind, message=str(error))
        logger.error("%s: %s: %s", path, failure.kind, failure.message)
        summary.add_failure(index, failure)
        return "failure", failure
    summary.add_result(index, result)
    return "result", result


def run_batch(
    paths: Sequence[Path],
    operation: Callable[[Path], Any],
    *,
    jobs: int = 1,
    cancel: threading.Event | None = None,
    on_result: Callable[[Any], None] | None = None,
    on_failure: Callable[[FileFailure], None] | None = None,
) -> BatchSummary:
    """Apply *operation* to every path, isolating per-file failures.

    ``ncsum`` errors and ``OSError`` are recorded as failures; inputs of the
    wrong kind are recorded as skipped.  Any other exception is a bug and
    propagates.  The callbacks run on the calling thread as outcomes arrive.

    Parameters
    ----------
    jobs:
        Number of worker threads.  ``1`` processes paths in order.
    cancel:
        Checked between files; once set, no further files are started.
    """
    summary = BatchSummary()

    def _dispatch(outcome: tuple[str, Any]) -> None:
        kind, value = outcome
        if kind == "result" and on_result is not None:
            on_result(value)
        elif kind == "failure" and on_failure is not None:
            on_failure(value)

    if jobs <= 1:
        for index, path in enumerate(paths):
            if cancel is not None and cancel.is_set():
                summary.mark_cancelled()
                break
            _dispatch(_run_one(index, Path(path), operation, summary))
        return summary

    def _guarded(index: int, path: Path) -> tuple[str, Any] | None:
        if cancel is not None and cancel.is_set():
            summary.mark_cancelled()
            return None
        return _run_one(index, path, operation, summary)

    with ThreadPoolExecutor(max_workers=jobs) as pool:
        futures = [
            pool.submit(_guarded, index, Path(path)) for index, path in enumerate(paths)
        ]
        try:
            for future in as_completed(futures):
                outcome = future.result()
                if outcome is not None:
                    _dispatch(outcome)
        except KeyboardInterrupt:
            summary.mark_cancelled()
            for future in futures:
                future.cancel()
            raise
    return summary
