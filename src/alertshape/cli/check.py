"""CLI commands for checking rule files against the simple-condition shape."""

from __future__ import annotations

from pathlib import Path

import typer

from alertshape.cli._errors import EXIT_ADVANCED, EXIT_INVALID, EXIT_SIMPLE, handle_error, report_error
from alertshape.codec import load_rule
from alertshape.matcher import ShapeMismatch, check_simple_condition
from alertshape.observability.logging import get_logger
from alertshape.simple_condition import get_simple_condition_from_expressions

logger = get_logger(__name__)

_CHECK_LABELS: dict[ShapeMismatch, str] = {
    ShapeMismatch.DATA_QUERY_COUNT: "exactly one data query",
    ShapeMismatch.EXPRESSION_QUERY_COUNT: "exactly two expression queries",
    ShapeMismatch.DATA_QUERY_REF_ID: "data query is A",
    ShapeMismatch.REDUCE_EXPRESSION: "reduce expression is B",
    ShapeMismatch.THRESHOLD_EXPRESSION: "threshold expression is C",
    ShapeMismatch.REDUCER_MODE: "reducer mode is strict",
    ShapeMismatch.UNLOAD_EVALUATOR: "no unload evaluator",
}


def check(
    paths: list[Path] = typer.Argument(..., help="Rule files (.json, .yaml, .yml)."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only set the exit code."),
) -> None:
    """Report whether each rule fits the simple-condition editor.

    Exit code: 0 if every rule is simple, 1 if any needs the advanced
    editor, 2 if any file could not be read.
    """
    exit_code = EXIT_SIMPLE
    for path in paths:
        try:
            document = load_rule(path)
        except (FileNotFoundError, ValueError) as err:
            report_error(str(err))
            exit_code = EXIT_INVALID
            continue

        result = check_simple_condition(document.data_queries, document.expression_queries)
        logger.info(
            "shape.checked",
            source=str(path),
            ok=result.ok,
            mismatch=str(result.mismatch) if result.mismatch else None,
        )

        if result.ok:
            line = f"{path}: simple"
        else:
            line = f"{path}: advanced ({result.mismatch}: {result.detail})"
            exit_code = max(exit_code, EXIT_ADVANCED)
        if not quiet:
            typer.echo(line)

    if exit_code != EXIT_SIMPLE:
        raise typer.Exit(exit_code)


def explain(
    path: Path = typer.Argument(..., help="Rule file (.json, .yaml, .yml)."),
) -> None:
    """Walk through every simple-condition check for one rule."""
    try:
        document = load_rule(path)
    except (FileNotFoundError, ValueError) as err:
        handle_error(str(err))

    result = check_simple_condition(document.data_queries, document.expression_queries)

    title = document.title or path.name
    typer.echo(f"Rule: {title}")
    typer.echo(
        f"Queries: {len(document.data_queries)} data, "
        f"{len(document.expression_queries)} expression"
    )
    typer.echo("-" * 50)

    failed_seen = False
    for reason in ShapeMismatch:
        if failed_seen:
            status = "skip"
        elif reason is result.mismatch:
            status = "FAIL"
            failed_seen = True
        else:
            status = "ok"
        typer.echo(f"  [{status:>4}] {_CHECK_LABELS[reason]}")

    typer.echo("-" * 50)
    if not result.ok:
        typer.echo(f"advanced: {result.detail}")
        raise typer.Exit(EXIT_ADVANCED)

    condition = get_simple_condition_from_expressions(document.expression_queries)
    params = ", ".join(f"{p:g}" for p in condition.evaluator.params)
    typer.echo(
        f"simple: WHEN {condition.when_field} OF A IS "
        f"{condition.evaluator.type.value} ({params})"
    )
