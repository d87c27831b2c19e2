"""CLI commands that emit documents: rule templates and the rule schema."""

from __future__ import annotations

import json
from pathlib import Path

import typer
import yaml

from alertshape.cli._errors import handle_error
from alertshape.codec import RuleDocument, dump_rule
from alertshape.observability.config import get_config
from alertshape.schemas import RULE_SCHEMA_VERSION, export_schema, get_rule_schema
from alertshape.simple_condition import SimpleCondition, build_simple_condition_queries
from alertshape.types import (
    DataQuery,
    EvalFunction,
    Evaluator,
    RelativeTimeRange,
    SimpleConditionIdentifier,
)


def template(
    datasource: str = typer.Option(None, "--datasource", "-d", help="Datasource uid of query A"),
    title: str = typer.Option("New alert rule", "--title", "-t", help="Rule title"),
    reducer: str = typer.Option("last", "--reducer", "-r", help="Reduce function (last, mean, max, ...)"),
    evaluator: str = typer.Option("gt", "--evaluator", "-e", help="Evaluator type (gt, lt, ...)"),
    threshold: list[float] = typer.Option(
        [0.0], "--threshold", help="Evaluator params; repeat for range evaluators"
    ),
    format: str = typer.Option("yaml", "--format", "-f", help="Output format: yaml or json"),
) -> None:
    """Print a rule document in the simple-condition shape."""
    config = get_config()

    try:
        eval_type = EvalFunction(evaluator)
    except ValueError:
        handle_error(
            f"Invalid evaluator: {evaluator!r}. Must be one of {[e.value for e in EvalFunction]}"
        )

    if format not in ("yaml", "json"):
        handle_error(f"Invalid format: {format!r}. Must be one of ['json', 'yaml']")

    data_query = DataQuery(
        ref_id=SimpleConditionIdentifier.QUERY_ID,
        datasource_uid=datasource or config.default_datasource,
        relative_time_range=RelativeTimeRange(from_seconds=config.default_window_seconds),
    )
    condition = SimpleCondition(
        when_field=reducer,
        evaluator=Evaluator(params=tuple(threshold), type=eval_type),
    )
    document = RuleDocument(
        queries=build_simple_condition_queries(data_query, condition),
        title=title,
        condition=SimpleConditionIdentifier.THRESHOLD_ID,
    )
    typer.echo(dump_rule(document, fmt=format), nl=False)


def schema(
    output: Path = typer.Option(None, "--output", "-o", help="Directory to export the schema to"),
    format: str = typer.Option("json", "--format", "-f", help="Output format: json or yaml"),
) -> None:
    """Show or export the JSON Schema for rule documents."""
    if output:
        path = export_schema(output)
        typer.echo(f"Exported schema to {path}")
        return

    typer.echo(f"# Rule Schema v{RULE_SCHEMA_VERSION}")
    if format == "yaml":
        typer.echo(yaml.dump(get_rule_schema(), default_flow_style=False, sort_keys=False))
    else:
        typer.echo(json.dumps(get_rule_schema(), indent=2))
