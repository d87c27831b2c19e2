"""JSON Schema for alert rule query documents.

The schema is the contract for rule files read by the codec and the CLI.
It describes the camelCase wire shape of an alert rule's query list, either
wrapped in a rule object (``{title, condition, data: [...]}``) or as a bare
list of queries.

Schemas are versioned independently of the alertshape package version.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

RULE_SCHEMA_VERSION = "1.0"

_EVALUATOR: dict[str, Any] = {
    "type": "object",
    "required": ["params", "type"],
    "properties": {
        "params": {"type": "array", "items": {"type": "number"}},
        "type": {
            "type": "string",
            "enum": [
                "gt",
                "lt",
                "outside_range",
                "within_range",
                "outside_range_included",
                "within_range_included",
                "eq",
                "ne",
                "gte",
                "lte",
                "no_value",
            ],
        },
    },
}

RULE_DOCUMENT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://alertshape.dev/schemas/rule.v1.schema.json",
    "title": "Alert rule queries",
    "description": "Data queries and expression steps of one alerting rule.",
    "oneOf": [
        {
            "type": "object",
            "required": ["data"],
            "properties": {
                "title": {"type": "string"},
                "condition": {"type": ["string", "null"]},
                "data": {"type": "array", "items": {"$ref": "#/$defs/query"}},
            },
        },
        {"type": "array", "items": {"$ref": "#/$defs/query"}},
    ],
    "$defs": {
        "query": {
            "type": "object",
            "required": ["refId", "datasourceUid", "model"],
            "properties": {
                "refId": {"type": "string", "minLength": 1},
                "datasourceUid": {"type": "string"},
                "queryType": {"type": "string"},
                "relativeTimeRange": {
                    "type": "object",
                    "required": ["from"],
                    "properties": {
                        "from": {"type": "integer", "minimum": 0},
                        "to": {"type": "integer", "minimum": 0},
                    },
                },
                "model": {"type": "object"},
            },
            "if": {"properties": {"datasourceUid": {"const": "__expr__"}}},
            "then": {"properties": {"model": {"$ref": "#/$defs/expression"}}},
        },
        "expression": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "type": {
                    "type": "string",
                    "enum": [
                        "math",
                        "reduce",
                        "resample",
                        "classic_conditions",
                        "threshold",
                        "sql",
                    ],
                },
                "refId": {"type": "string"},
                "expression": {"type": "string"},
                "reducer": {"type": "string"},
                "settings": {
                    "type": "object",
                    "properties": {
                        "mode": {"type": "string", "enum": ["", "replaceNN", "dropNN"]},
                        "replaceWithValue": {"type": "number"},
                    },
                },
                "conditions": {
                    "type": "array",
                    "items": {"$ref": "#/$defs/condition"},
                },
                "window": {"type": "string"},
                "downsampler": {"type": "string"},
                "upsampler": {"type": "string"},
            },
        },
        "condition": {
            "type": "object",
            "required": ["evaluator"],
            "properties": {
                "evaluator": _EVALUATOR,
                "unloadEvaluator": {"oneOf": [_EVALUATOR, {"type": "null"}]},
                "operator": {
                    "type": "object",
                    "properties": {"type": {"type": "string", "enum": ["and", "or"]}},
                },
                "query": {
                    "type": "object",
                    "properties": {"params": {"type": "array", "items": {"type": "string"}}},
                },
                "reducer": {
                    "type": "object",
                    "properties": {
                        "params": {"type": "array"},
                        "type": {"type": "string"},
                    },
                },
                "type": {"type": "string"},
            },
        },
    },
}


def get_rule_schema() -> dict[str, Any]:
    """Get the rule document schema as a dict."""
    return RULE_DOCUMENT_SCHEMA.copy()


def export_schema(directory: Path | str) -> Path:
    """Write the rule document schema to ``rule.v<version>.schema.json``.

    Args:
        directory: Directory to write the schema file to.

    Returns:
        Path of the written file.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / f"rule.v{RULE_SCHEMA_VERSION}.schema.json"
    path.write_text(json.dumps(RULE_DOCUMENT_SCHEMA, indent=2))
    return path


def validate_rule_document(document: Any) -> list[str]:
    """Validate a parsed rule document against the schema.

    Returns list of validation errors (empty if valid).
    """
    if not isinstance(document, (dict, list)):
        return ["Rule document must be an object or a list of queries"]

    validator = jsonschema.Draft202012Validator(RULE_DOCUMENT_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(document), key=lambda e: e.json_path):
        errors.append(f"{error.json_path}: {error.message}")
    return errors
