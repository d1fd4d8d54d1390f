"""ncsum CLI — Typer-based command-line interface.

Provides the ``ncsum`` command with the get-hash, name, rename, check and
pack subcommands.  Each subcommand resolves its settings, builds the core
component it needs and feeds every input path through it.

Result lines go to standard output, failures to standard error.
"""
