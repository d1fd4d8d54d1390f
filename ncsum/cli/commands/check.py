"""``ncsum check FILE...`` — verify payloads against their descriptors.

Every input gets one result line: MATCH, MISMATCH or MISSING.  The exit code
is 0 only if every input matched.
"""

from __future__ import annotations

from pathlib import Path

import typer

from ncsum.cli._reporting import (
    err_console,
    finish,
    print_failure,
    print_line,
    settings_from,
)
from ncsum.core.batch import run_batch
from ncsum.core.checker import IntegrityChecker
from ncsum.core.hasher import HashlibEngine
from ncsum.models.results import CheckResult, CheckState


def format_check_line(result: CheckResult) -> str:
    line = f"{result.source}: {result.status.name} ({result.descriptor.original_name})"
    if result.relocated_to:
        line += f" -> {result.relocated_to[0].parent}"
    return line


def check_cmd(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(
        ..., metavar="FILE...", help=".ncsum descriptors or .pncsum archives."
    ),
    only_show_mismatches: bool = typer.Option(
        False,
        "--only-show-mismatches",
        "-o",
        help="Do not print MATCH results.",
    ),
    separate_mismatches: bool = typer.Option(
        False,
        "--separate-mismatches",
        "-s",
        help="Move mismatched payloads and descriptors into a quarantine directory.",
    ),
    jobs: int = typer.Option(
        None,
        "--jobs",
        "-j",
        min=1,
        help="Number of files to check in parallel.",
    ),
) -> None:
    """Recompute each payload's digest and compare it with its descriptor."""
    settings = settings_from(ctx)
    checker = IntegrityChecker(
        engine=HashlibEngine(settings.algorithm),
        separate_mismatches=separate_mismatches,
        quarantine_dir=settings.quarantine_dir,
        chunk_size=settings.chunk_size,
    )

    def _report(result: CheckResult) -> None:
        if only_show_mismatches and result.status == CheckState.MATCH:
            return
        print_line(format_check_line(result))

    try:
        summary = run_batch(
            files,
            checker.check,
            jobs=jobs or settings.jobs,
            on_result=_report,
            on_failure=print_failure,
        )
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130)
    finish(summary)
