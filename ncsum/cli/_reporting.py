"""Shared output helpers for ncsum commands.

Result lines are printed without Rich markup or highlighting so they stay
machine-readable; failures go to standard error.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from ncsum.config import NcsumConfig
from ncsum.core.batch import BatchSummary
from ncsum.models.results import FileFailure

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


def configure_logging(level: str) -> None:
    """Route log records through Rich on standard error."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def settings_from(ctx: typer.Context) -> NcsumConfig:
    """Settings resolved by the top-level callback, or the defaults."""
    root = ctx.find_root()
    if isinstance(root.obj, NcsumConfig):
        return root.obj
    return NcsumConfig()


def print_line(text: str) -> None:
    console.print(text, markup=False)


def print_failure(failure: FileFailure) -> None:
    err_console.print(f"{failure.path}: {failure.kind}: {failure.message}", markup=False)


def finish(summary: BatchSummary) -> None:
    """Print the batch tally when something went wrong and set the exit code."""
    if summary.cancelled:
        err_console.print("[yellow]Interrupted; remaining files were not processed.[/yellow]")
    if summary.failures or summary.skipped:
        err_console.print(
            f"[dim]{len(summary.results)} processed, "
            f"{len(summary.failures)} failed, {len(summary.skipped)} skipped[/dim]"
        )
    if summary.exit_code:
        raise typer.Exit(code=summary.exit_code)
