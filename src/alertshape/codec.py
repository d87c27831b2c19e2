"""Rule document codec: camelCase wire dicts <-> alertshape types.

Reads the query list of an alerting rule from JSON or YAML, validates it
against the rule schema, and converts each entry into a DataQuery or an
ExpressionQuery. Writing goes the other way and produces dicts that load
back into equal records.

All shape errors surface here as ValueError; the matcher downstream only
ever sees well-typed records.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from alertshape.observability.logging import get_logger
from alertshape.schemas import validate_rule_document
from alertshape.types import (
    EXPRESSION_DATASOURCE_UID,
    EXPRESSION_QUERY_TYPE,
    AlertQuery,
    ClassicConditionsExpression,
    ConditionQuery,
    ConditionReducer,
    DataQuery,
    EvalFunction,
    Evaluator,
    ExpressionModel,
    ExpressionQuery,
    ExpressionQueryType,
    MathExpression,
    ReduceExpression,
    ReducerMode,
    ReduceSettings,
    RelativeTimeRange,
    ResampleExpression,
    SqlExpression,
    ThresholdCondition,
    ThresholdExpression,
)

logger = get_logger(__name__)

_LOADERS = {
    ".json": json.loads,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}


@dataclass(frozen=True)
class RuleDocument:
    """The queries of one alert rule, as read from a rule file."""

    queries: tuple[AlertQuery, ...]
    title: str = ""
    condition: str | None = None
    source: str | None = field(default=None, compare=False)

    @property
    def data_queries(self) -> list[DataQuery]:
        return [q for q in self.queries if isinstance(q, DataQuery)]

    @property
    def expression_queries(self) -> list[ExpressionQuery]:
        return [q for q in self.queries if isinstance(q, ExpressionQuery)]


# =============================================================================
# Decoding
# =============================================================================


def _evaluator_from_dict(data: dict[str, Any]) -> Evaluator:
    try:
        func = EvalFunction(data.get("type"))
    except ValueError as err:
        raise ValueError(f"Unknown evaluator type: {data.get('type')!r}") from err
    return Evaluator(params=tuple(data.get("params") or ()), type=func)


def _condition_from_dict(data: dict[str, Any]) -> ThresholdCondition:
    if "evaluator" not in data:
        raise ValueError("Threshold condition is missing required key 'evaluator'")
    unload = data.get("unloadEvaluator")
    operator = data.get("operator")
    reducer = data.get("reducer") or {}
    return ThresholdCondition(
        evaluator=_evaluator_from_dict(data["evaluator"]),
        unload_evaluator=_evaluator_from_dict(unload) if unload is not None else None,
        query=ConditionQuery(params=tuple((data.get("query") or {}).get("params") or ())),
        reducer=ConditionReducer(
            type=reducer.get("type", "last"),
            params=tuple(reducer.get("params") or ()),
        ),
        operator=operator.get("type") if operator else None,
        type=data.get("type", "query"),
    )


def _conditions_from_list(items: list[dict[str, Any]] | None) -> tuple[ThresholdCondition, ...] | None:
    if items is None:
        return None
    return tuple(_condition_from_dict(c) for c in items)


def _settings_from_dict(data: dict[str, Any] | None) -> ReduceSettings | None:
    if data is None:
        return None
    # Key presence, not truthiness: "" is strict, a missing key is no mode.
    mode = None
    if "mode" in data:
        try:
            mode = ReducerMode(data["mode"])
        except ValueError as err:
            raise ValueError(f"Unknown reducer mode: {data['mode']!r}") from err
    return ReduceSettings(mode=mode, replace_with_value=data.get("replaceWithValue"))


def expression_model_from_dict(data: dict[str, Any], ref_id: str) -> ExpressionModel:
    """Build the expression variant named by ``data["type"]``."""
    raw_type = data.get("type")
    try:
        kind = ExpressionQueryType(raw_type)
    except ValueError as err:
        raise ValueError(f"Unknown expression type: {raw_type!r}") from err

    ref_id = data.get("refId", ref_id)
    if kind is ExpressionQueryType.REDUCE:
        return ReduceExpression(
            ref_id=ref_id,
            settings=_settings_from_dict(data.get("settings")),
            reducer=data.get("reducer"),
            expression=data.get("expression"),
        )
    if kind is ExpressionQueryType.THRESHOLD:
        return ThresholdExpression(
            ref_id=ref_id,
            conditions=_conditions_from_list(data.get("conditions")),
            expression=data.get("expression"),
        )
    if kind is ExpressionQueryType.MATH:
        return MathExpression(ref_id=ref_id, expression=data.get("expression"))
    if kind is ExpressionQueryType.RESAMPLE:
        return ResampleExpression(
            ref_id=ref_id,
            expression=data.get("expression"),
            window=data.get("window"),
            downsampler=data.get("downsampler"),
            upsampler=data.get("upsampler"),
        )
    if kind is ExpressionQueryType.CLASSIC_CONDITIONS:
        return ClassicConditionsExpression(
            ref_id=ref_id,
            conditions=_conditions_from_list(data.get("conditions")),
        )
    return SqlExpression(ref_id=ref_id, expression=data.get("expression"))


def query_from_dict(data: dict[str, Any]) -> AlertQuery:
    """Decode one entry of a rule's ``data`` list.

    Entries on the ``__expr__`` datasource become ExpressionQuery, all
    others DataQuery.

    Raises:
        ValueError: If a required key is missing or a discriminator is unknown.
    """
    try:
        ref_id = data["refId"]
        datasource_uid = data["datasourceUid"]
        model = data["model"]
    except KeyError as err:
        raise ValueError(f"Query is missing required key {err.args[0]!r}") from err
    if not isinstance(model, dict):
        raise ValueError(f"Query {ref_id!r} model must be an object, got {type(model).__name__}")

    time_range = None
    if data.get("relativeTimeRange"):
        rtr = data["relativeTimeRange"]
        time_range = RelativeTimeRange(from_seconds=rtr["from"], to_seconds=rtr.get("to", 0))

    if datasource_uid == EXPRESSION_DATASOURCE_UID:
        return ExpressionQuery(
            ref_id=ref_id,
            model=expression_model_from_dict(model, ref_id),
            query_type=data.get("queryType", EXPRESSION_QUERY_TYPE),
            relative_time_range=time_range,
        )
    return DataQuery(
        ref_id=ref_id,
        datasource_uid=datasource_uid,
        query_type=data.get("queryType", ""),
        model=dict(model),
        relative_time_range=time_range,
    )


# =============================================================================
# Encoding
# =============================================================================


def _evaluator_to_dict(evaluator: Evaluator) -> dict[str, Any]:
    return {"params": list(evaluator.params), "type": evaluator.type.value}


def _condition_to_dict(condition: ThresholdCondition) -> dict[str, Any]:
    d: dict[str, Any] = {
        "evaluator": _evaluator_to_dict(condition.evaluator),
        "query": {"params": list(condition.query.params)},
        "reducer": {"params": list(condition.reducer.params), "type": condition.reducer.type},
        "type": condition.type,
    }
    if condition.unload_evaluator is not None:
        d["unloadEvaluator"] = _evaluator_to_dict(condition.unload_evaluator)
    if condition.operator is not None:
        d["operator"] = {"type": condition.operator}
    return d


def expression_model_to_dict(model: ExpressionModel) -> dict[str, Any]:
    d: dict[str, Any] = {"type": model.type.value, "refId": model.ref_id}

    if isinstance(model, ReduceExpression):
        if model.settings is not None:
            settings: dict[str, Any] = {}
            if model.settings.mode is not None:
                settings["mode"] = model.settings.mode.value
            if model.settings.replace_with_value is not None:
                settings["replaceWithValue"] = model.settings.replace_with_value
            d["settings"] = settings
        extras = {"reducer": model.reducer, "expression": model.expression}
    elif isinstance(model, (ThresholdExpression, ClassicConditionsExpression)):
        if model.conditions is not None:
            d["conditions"] = [_condition_to_dict(c) for c in model.conditions]
        extras = {"expression": getattr(model, "expression", None)}
    elif isinstance(model, ResampleExpression):
        extras = {
            "expression": model.expression,
            "window": model.window,
            "downsampler": model.downsampler,
            "upsampler": model.upsampler,
        }
    elif isinstance(model, (MathExpression, SqlExpression)):
        extras = {"expression": model.expression}
    else:
        raise TypeError(f"Not an expression model: {type(model).__name__}")

    d.update({k: v for k, v in extras.items() if v is not None})
    return d


def query_to_dict(query: AlertQuery) -> dict[str, Any]:
    """Encode a query in the camelCase wire shape."""
    d: dict[str, Any] = {
        "refId": query.ref_id,
        "datasourceUid": query.datasource_uid,
        "queryType": query.query_type,
    }
    if query.relative_time_range is not None:
        d["relativeTimeRange"] = {
            "from": query.relative_time_range.from_seconds,
            "to": query.relative_time_range.to_seconds,
        }
    if isinstance(query, ExpressionQuery):
        d["model"] = expression_model_to_dict(query.model)
    else:
        d["model"] = dict(query.model)
    return d


# =============================================================================
# Documents
# =============================================================================


def rule_from_obj(obj: Any, source: str | None = None) -> RuleDocument:
    """Validate a parsed document and decode it into a RuleDocument.

    Raises:
        ValueError: If the document fails schema validation or decoding.
    """
    errors = validate_rule_document(obj)
    if errors:
        logger.warning("rule.invalid", source=source, errors=errors)
        raise ValueError(
            f"Invalid rule document{f' {source}' if source else ''}: " + "; ".join(errors)
        )

    if isinstance(obj, list):
        items, title, condition = obj, "", None
    else:
        items, title, condition = obj["data"], obj.get("title", ""), obj.get("condition")

    queries = tuple(query_from_dict(item) for item in items)
    return RuleDocument(queries=queries, title=title, condition=condition, source=source)


def load_rule(path: Path | str) -> RuleDocument:
    """Read a rule document from a .json, .yaml or .yml file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: On an unsupported extension, an unreadable file,
            unparsable content, or a document that fails validation.
    """
    path = Path(path)
    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ValueError(
            f"Unsupported rule file extension: {path.suffix!r}. Must be one of {sorted(_LOADERS)}"
        )
    if not path.is_file():
        raise FileNotFoundError(f"Rule file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise ValueError(f"Could not read {path}: {err}") from err

    try:
        obj = loader(text)
    except (json.JSONDecodeError, yaml.YAMLError, RecursionError) as err:
        raise ValueError(f"Could not parse {path}: {err}") from err

    document = rule_from_obj(obj, source=str(path))
    logger.debug(
        "rule.loaded",
        source=str(path),
        title=document.title,
        data_queries=len(document.data_queries),
        expression_queries=len(document.expression_queries),
    )
    return document


def rule_to_obj(document: RuleDocument) -> dict[str, Any]:
    obj: dict[str, Any] = {"title": document.title}
    if document.condition is not None:
        obj["condition"] = document.condition
    obj["data"] = [query_to_dict(q) for q in document.queries]
    return obj


def dump_rule(document: RuleDocument, fmt: str = "yaml") -> str:
    """Serialize a RuleDocument as YAML or JSON text."""
    obj = rule_to_obj(document)
    if fmt == "json":
        return json.dumps(obj, indent=2) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(obj, sort_keys=False)
    raise ValueError(f"Invalid format: {fmt!r}. Must be one of ['json', 'yaml']")
