"""Main Typer application — imports and registers all CLI commands.

Entry point: ``ncsum`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import typer
from pydantic import ValidationError

from ncsum import __version__
from ncsum.cli._reporting import configure_logging, err_console
from ncsum.cli.commands.check import check_cmd
from ncsum.cli.commands.get_hash import get_hash_cmd
from ncsum.cli.commands.name import name_cmd
from ncsum.cli.commands.pack import pack_cmd
from ncsum.cli.commands.rename import rename_cmd
from ncsum.config import NcsumConfig

app = typer.Typer(
    name="ncsum",
    help="ncsum: content-addressed names and integrity checks for file collections.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="get-hash", help="Print the digest of each file.")(get_hash_cmd)
app.command(
    name="name",
    help="Rename files to their digest and write a .ncsum descriptor for each.",
)(name_cmd)
app.command(
    name="rename",
    help="Restore original names from .ncsum descriptors or .pncsum archives.",
)(rename_cmd)
app.command(name="check", help="Verify files against their descriptors.")(check_cmd)
app.command(name="pack", help="Bundle files and descriptors into .pncsum archives.")(pack_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ncsum {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    algorithm: str = typer.Option(
        None,
        "--algorithm",
        "-a",
        help="Digest algorithm (any fixed-size hashlib name). Default: md5.",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level for diagnostics on standard error.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Resolve settings once for whichever subcommand runs."""
    overrides = {
        key: value
        for key, value in {"algorithm": algorithm, "log_level": log_level}.items()
        if value is not None
    }
    try:
        settings = NcsumConfig(**overrides)
    except ValidationError as exc:
        err_console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=2)
    configure_logging(settings.log_level)
    ctx.obj = settings


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
