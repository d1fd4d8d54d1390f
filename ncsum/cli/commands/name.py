"""``ncsum name FILE...`` — rename files to their digest."""

from __future__ import annotations

from pathlib import Path

import typer

from ncsum.cli._reporting import finish, print_failure, print_line, settings_from
from ncsum.core.batch import run_batch
from ncsum.core.hasher import HashlibEngine
from ncsum.core.renamer import ContentAddressRenamer
from ncsum.models.results import NameResult


def _report(result: NameResult) -> None:
    if result.renamed:
        print_line(f"{result.source} -> {result.payload_path}")
    else:
        print_line(f"{result.payload_path} (already named)")


def name_cmd(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., metavar="FILE...", help="Files to name."),
) -> None:
    """Rename each file to ``<digest><ext>`` and write ``<digest>.ncsum`` beside it.

    Descriptor and archive inputs are skipped.
    """
    settings = settings_from(ctx)
    renamer = ContentAddressRenamer(
        engine=HashlibEngine(settings.algorithm), chunk_size=settings.chunk_size
    )
    summary = run_batch(files, renamer.name, on_result=_report, on_failure=print_failure)
    finish(summary)
