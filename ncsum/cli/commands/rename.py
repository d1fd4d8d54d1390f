"""``ncsum rename FILE...`` — restore original names from descriptors."""

from __future__ import annotations

from pathlib import Path

import typer

from ncsum.cli._reporting import finish, print_failure, print_line, settings_from
from ncsum.core.batch import run_batch
from ncsum.core.hasher import HashlibEngine
from ncsum.core.renamer import ContentAddressRenamer
from ncsum.models.results import RenameResult


def _report(result: RenameResult) -> None:
    if result.already_restored:
        print_line(f"{result.restored_path} (already restored)")
    else:
        print_line(f"{result.source} -> {result.restored_path}")


def rename_cmd(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(
        ..., metavar="FILE...", help=".ncsum descriptors or .pncsum archives."
    ),
) -> None:
    """Restore each payload to the name recorded in its descriptor.

    The descriptor, or the archive, is removed once the payload is restored.
    """
    settings = settings_from(ctx)
    renamer = ContentAddressRenamer(
        engine=HashlibEngine(settings.algorithm), chunk_size=settings.chunk_size
    )
    summary = run_batch(files, renamer.rename, on_result=_report, on_failure=print_failure)
    finish(summary)
