"""Subcommand implementations for the ncsum CLI."""
