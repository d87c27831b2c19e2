"""CLI error handling."""

from __future__ import annotations

import typer

# Exit codes
EXIT_SIMPLE = 0
EXIT_ADVANCED = 1
EXIT_INVALID = 2


def report_error(msg: str) -> None:
    """Print an error message without exiting."""
    typer.echo(f"Error: {msg}", err=True)


def handle_error(msg: str, code: int = EXIT_INVALID) -> None:
    """Print an error message and exit."""
    report_error(msg)
    raise typer.Exit(code)
