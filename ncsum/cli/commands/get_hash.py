"""``ncsum get-hash FILE...`` — print checksum-listing lines."""

from __future__ import annotations

from pathlib import Path

import typer

from ncsum.cli._reporting import finish, print_failure, print_line, settings_from
from ncsum.core.batch import run_batch
from ncsum.core.descriptor_codec import format_record
from ncsum.core.filesystem import LocalFilesystem
from ncsum.core.hasher import HashlibEngine, digest_file
from ncsum.models.results import HashResult


def get_hash_cmd(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., metavar="FILE...", help="Files to hash."),
) -> None:
    """Print ``<digest>  <name>`` for every file.

    Exits non-zero if any file could not be read.
    """
    settings = settings_from(ctx)
    engine = HashlibEngine(settings.algorithm)
    fs = LocalFilesystem()

    def _hash(path: Path) -> HashResult:
        digest = digest_file(fs, path, engine, chunk_size=settings.chunk_size)
        return HashResult(path=path, digest=digest)

    summary = run_batch(
        files,
        _hash,
        on_result=lambda r: print_line(format_record(r.digest, str(r.path))),
        on_failure=print_failure,
    )
    finish(summary)
