"""Simple-condition shape matching.

Pure functions: given the data queries and expression queries of an alert
rule, decide whether they form the canonical simple condition

    A (data query) -> B (strict reduce over A) -> C (threshold over B)

so the rule can be edited with the simplified editor instead of the full
expression pipeline editor. Matching is by variant type and ref id, not by
following the ``expression`` references between steps, and not by position.

Nothing here logs, caches or mutates its inputs.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from alertshape.types import (
    DataQuery,
    ExpressionQuery,
    ReduceExpression,
    ReducerMode,
    SimpleConditionIdentifier,
    ThresholdExpression,
)


class ShapeMismatch(StrEnum):
    """The first check a query pipeline failed, in evaluation order."""

    DATA_QUERY_COUNT = "data_query_count"
    EXPRESSION_QUERY_COUNT = "expression_query_count"
    DATA_QUERY_REF_ID = "data_query_ref_id"
    REDUCE_EXPRESSION = "reduce_expression"
    THRESHOLD_EXPRESSION = "threshold_expression"
    REDUCER_MODE = "reducer_mode"
    UNLOAD_EVALUATOR = "unload_evaluator"


@dataclass(frozen=True)
class ShapeCheck:
    """Outcome of check_simple_condition. mismatch is None on success."""

    mismatch: ShapeMismatch | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.mismatch is None


def _find_reduce(
    expression_queries: Sequence[ExpressionQuery],
) -> tuple[ExpressionQuery, ReduceExpression] | None:
    for query in expression_queries:
        if isinstance(query.model, ReduceExpression):
            return query, query.model
    return None


def _find_threshold(
    expression_queries: Sequence[ExpressionQuery],
) -> tuple[ExpressionQuery, ThresholdExpression] | None:
    for query in expression_queries:
        if isinstance(query.model, ThresholdExpression):
            return query, query.model
    return None


def check_simple_condition(
    data_queries: Sequence[DataQuery],
    expression_queries: Sequence[ExpressionQuery],
) -> ShapeCheck:
    """Run the simple-condition checks in order and stop at the first failure.

    Args:
        data_queries: The rule's data source queries.
        expression_queries: The rule's expression steps, in any order.

    Returns:
        ShapeCheck with mismatch=None when the pipeline is a simple
        condition, otherwise the failed check and a human-readable detail.
    """
    if len(data_queries) != 1:
        return ShapeCheck(
            ShapeMismatch.DATA_QUERY_COUNT,
            f"expected exactly 1 data query, got {len(data_queries)}",
        )

    if len(expression_queries) != 2:
        return ShapeCheck(
            ShapeMismatch.EXPRESSION_QUERY_COUNT,
            f"expected exactly 2 expression queries, got {len(expression_queries)}",
        )

    data_query = data_queries[0]
    if data_query.ref_id != SimpleConditionIdentifier.QUERY_ID:
        return ShapeCheck(
            ShapeMismatch.DATA_QUERY_REF_ID,
            f"data query ref id is {data_query.ref_id!r}, "
            f"expected {SimpleConditionIdentifier.QUERY_ID!r}",
        )

    reduce = _find_reduce(expression_queries)
    if reduce is None:
        return ShapeCheck(ShapeMismatch.REDUCE_EXPRESSION, "no reduce expression")
    reduce_query, reduce_model = reduce
    if reduce_query.ref_id != SimpleConditionIdentifier.REDUCER_ID:
        return ShapeCheck(
            ShapeMismatch.REDUCE_EXPRESSION,
            f"reduce expression ref id is {reduce_query.ref_id!r}, "
            f"expected {SimpleConditionIdentifier.REDUCER_ID!r}",
        )

    threshold = _find_threshold(expression_queries)
    if threshold is None:
        return ShapeCheck(ShapeMismatch.THRESHOLD_EXPRESSION, "no threshold expression")
    threshold_query, threshold_model = threshold
    if threshold_query.ref_id != SimpleConditionIdentifier.THRESHOLD_ID:
        return ShapeCheck(
            ShapeMismatch.THRESHOLD_EXPRESSION,
            f"threshold expression ref id is {threshold_query.ref_id!r}, "
            f"expected {SimpleConditionIdentifier.THRESHOLD_ID!r}",
        )

    # Absent settings or mode is not strict.
    mode = reduce_model.settings.mode if reduce_model.settings is not None else None
    if mode is None or mode != ReducerMode.STRICT:
        return ShapeCheck(
            ShapeMismatch.REDUCER_MODE,
            f"reducer mode is {mode!r}, expected strict",
        )

    for index, condition in enumerate(threshold_model.conditions or ()):
        if condition.unload_evaluator is not None:
            return ShapeCheck(
                ShapeMismatch.UNLOAD_EVALUATOR,
                f"threshold condition {index} has an unload evaluator",
            )

    return ShapeCheck()


def are_queries_transformable_to_simple_condition(
    data_queries: Sequence[DataQuery],
    expression_queries: Sequence[ExpressionQuery],
) -> bool:
    """True if the pipeline can be shown in the simple-condition editor."""
    return check_simple_condition(data_queries, expression_queries).ok
