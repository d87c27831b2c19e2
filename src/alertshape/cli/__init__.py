"""alertshape CLI -- typer-based command interface.

Commands:
    alertshape check <path>...   Simple or advanced editor, per rule file
    alertshape explain <path>    Walk through every simple-condition check
    alertshape template          Print a simple-condition rule document
    alertshape schema            Show or export the rule document schema
"""

from __future__ import annotations

import typer

from alertshape.cli import check as check_cmd
from alertshape.cli import template as template_cmd
from alertshape.cli._errors import handle_error
from alertshape.observability.config import get_config
from alertshape.observability.logging import setup_logging

app = typer.Typer(
    name="alertshape",
    help="Check whether alert rules fit the simple-condition editor.",
    no_args_is_help=True,
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    try:
        config = get_config()
        if verbose:
            config.log_level = "DEBUG"
        setup_logging(config)
    except ValueError as err:
        handle_error(str(err))


app.command("check")(check_cmd.check)
app.command("explain")(check_cmd.explain)
app.command("template")(template_cmd.template)
app.command("schema")(template_cmd.schema)


def main() -> None:
    """Entry point for the alertshape CLI."""
    app()
