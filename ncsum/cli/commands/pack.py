"""``ncsum pack FILE...`` — bundle payloads and descriptors into archives."""

from __future__ import annotations

from pathlib import Path

import typer

from ncsum.cli._reporting import finish, print_failure, print_line, settings_from
from ncsum.core.batch import run_batch
from ncsum.core.hasher import HashlibEngine
from ncsum.core.packer import Packer
from ncsum.models.results import PackResult


def _report(result: PackResult) -> None:
    if result.already_packed:
        print_line(f"{result.archive_path} (already packed)")
    else:
        print_line(f"{result.source} -> {result.archive_path}")


def pack_cmd(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(
        ..., metavar="FILE...", help="Raw files or .ncsum descriptors."
    ),
) -> None:
    """Create ``<digest>.pncsum`` for each file.

    A raw file is hashed and packed; a ``.ncsum`` descriptor is packed with
    its digest-named payload.  Packed inputs are removed.
    """
    settings = settings_from(ctx)
    packer = Packer(engine=HashlibEngine(settings.algorithm), chunk_size=settings.chunk_size)
    summary = run_batch(files, packer.pack, on_result=_report, on_failure=print_failure)
    finish(summary)
