"""Shared fixtures: the canonical simple-condition pipeline, in records and on the wire.

    A  data query       (datasource abc123)
    B  reduce over A    (strict)
    C  threshold over B (no conditions)
"""

from __future__ import annotations

from typing import Any

import pytest

from alertshape.observability.logging import reset_logging
from alertshape.types import (
    DataQuery,
    ExpressionQuery,
    ReduceExpression,
    ReducerMode,
    ReduceSettings,
    SimpleConditionIdentifier,
    ThresholdExpression,
)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop the managed log handler between tests."""
    reset_logging()
    yield
    reset_logging()


# =============================================================================
# Records
# =============================================================================


@pytest.fixture
def data_query() -> DataQuery:
    return DataQuery(
        ref_id=SimpleConditionIdentifier.QUERY_ID,
        datasource_uid="abc123",
        query_type="",
        model={"refId": SimpleConditionIdentifier.QUERY_ID},
    )


@pytest.fixture
def reduce_expression() -> ExpressionQuery:
    return ExpressionQuery(
        ref_id=SimpleConditionIdentifier.REDUCER_ID,
        model=ReduceExpression(
            ref_id=SimpleConditionIdentifier.REDUCER_ID,
            settings=ReduceSettings(mode=ReducerMode.STRICT),
        ),
    )


@pytest.fixture
def threshold_expression() -> ExpressionQuery:
    return ExpressionQuery(
        ref_id=SimpleConditionIdentifier.THRESHOLD_ID,
        model=ThresholdExpression(ref_id=SimpleConditionIdentifier.THRESHOLD_ID),
    )


@pytest.fixture
def expression_queries(reduce_expression, threshold_expression) -> list[ExpressionQuery]:
    return [reduce_expression, threshold_expression]


# =============================================================================
# Wire format
# =============================================================================


def simple_rule_dict() -> dict[str, Any]:
    return {
        "title": "High CPU",
        "condition": "C",
        "data": [
            {
                "refId": "A",
                "datasourceUid": "abc123",
                "queryType": "",
                "relativeTimeRange": {"from": 600, "to": 0},
                "model": {"refId": "A", "expr": "avg(cpu_usage)"},
            },
            {
                "refId": "B",
                "datasourceUid": "__expr__",
                "queryType": "expression",
                "model": {
                    "type": "reduce",
                    "refId": "B",
                    "expression": "A",
                    "reducer": "mean",
                    "settings": {"mode": ""},
                },
            },
            {
                "refId": "C",
                "datasourceUid": "__expr__",
                "queryType": "expression",
                "model": {
                    "type": "threshold",
                    "refId": "C",
                    "expression": "B",
                    "conditions": [
                        {
                            "evaluator": {"params": [80], "type": "gt"},
                            "query": {"params": ["B"]},
                            "reducer": {"params": [], "type": "last"},
                            "type": "query",
                        }
                    ],
                },
            },
        ],
    }


@pytest.fixture
def simple_rule() -> dict[str, Any]:
    return simple_rule_dict()
