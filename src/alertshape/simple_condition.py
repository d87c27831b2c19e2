"""Simple condition: the A -> B -> C pipeline as one editable value.

The simplified editor shows a rule as "WHEN <reducer> OF query A IS
<evaluator>". These helpers convert between that view and the three-query
pipeline the matcher recognizes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from alertshape.matcher import are_queries_transformable_to_simple_condition
from alertshape.types import (
    EXPRESSION_DATASOURCE_UID,
    AlertQuery,
    ConditionQuery,
    ConditionReducer,
    DataQuery,
    EvalFunction,
    Evaluator,
    ExpressionQuery,
    ReduceExpression,
    ReducerMode,
    ReduceSettings,
    SimpleConditionIdentifier,
    ThresholdCondition,
    ThresholdExpression,
)

DEFAULT_REDUCER = "last"
DEFAULT_EVALUATOR = Evaluator(params=(0,), type=EvalFunction.IS_ABOVE)


@dataclass(frozen=True)
class SimpleCondition:
    """Reducer function applied to query A and the evaluator applied to the result."""

    when_field: str = DEFAULT_REDUCER
    evaluator: Evaluator = DEFAULT_EVALUATOR


def is_expression_query(query: AlertQuery) -> bool:
    return query.datasource_uid == EXPRESSION_DATASOURCE_UID


def split_queries(
    queries: Iterable[AlertQuery],
) -> tuple[list[DataQuery], list[ExpressionQuery]]:
    """Partition a rule's flat query list into data and expression queries.

    Order inside each partition follows the input.
    """
    data_queries: list[DataQuery] = []
    expression_queries: list[ExpressionQuery] = []
    for query in queries:
        if isinstance(query, ExpressionQuery) and is_expression_query(query):
            expression_queries.append(query)
        elif isinstance(query, DataQuery) and not is_expression_query(query):
            data_queries.append(query)
        else:
            raise ValueError(
                f"Query {query.ref_id!r} has datasource {query.datasource_uid!r} "
                f"that does not match its kind ({type(query).__name__})"
            )
    return data_queries, expression_queries


def is_simple_condition_rule(queries: Iterable[AlertQuery]) -> bool:
    """Split a rule's queries and check them against the simple-condition shape."""
    data_queries, expression_queries = split_queries(queries)
    return are_queries_transformable_to_simple_condition(data_queries, expression_queries)


def get_simple_condition_from_expressions(
    expression_queries: Sequence[ExpressionQuery],
) -> SimpleCondition:
    """Read the simple condition back out of a rule's expression steps.

    Missing pieces fall back to the defaults (last value, above 0), so this
    also works on a pipeline that is still being built.
    """
    when_field = DEFAULT_REDUCER
    evaluator = DEFAULT_EVALUATOR

    for query in expression_queries:
        model = query.model
        if isinstance(model, ReduceExpression) and model.reducer:
            when_field = model.reducer
        elif isinstance(model, ThresholdExpression) and model.conditions:
            evaluator = model.conditions[0].evaluator

    return SimpleCondition(when_field=when_field, evaluator=evaluator)


def build_simple_condition_queries(
    data_query: DataQuery,
    condition: SimpleCondition | None = None,
) -> tuple[DataQuery, ExpressionQuery, ExpressionQuery]:
    """Lay out the canonical three-query pipeline around a data query.

    The data query is re-keyed to the canonical query id. The reduce step
    is strict and the threshold step carries a single condition without an
    unload evaluator, so the result always satisfies the matcher.
    """
    condition = condition or SimpleCondition()
    query_id = SimpleConditionIdentifier.QUERY_ID
    reducer_id = SimpleConditionIdentifier.REDUCER_ID
    threshold_id = SimpleConditionIdentifier.THRESHOLD_ID

    model = {**data_query.model, "refId": query_id} if data_query.model else {}
    keyed = replace(data_query, ref_id=query_id, model=model)

    reduce_query = ExpressionQuery(
        ref_id=reducer_id,
        model=ReduceExpression(
            ref_id=reducer_id,
            settings=ReduceSettings(mode=ReducerMode.STRICT),
            reducer=condition.when_field,
            expression=query_id,
        ),
        relative_time_range=data_query.relative_time_range,
    )
    threshold_query = ExpressionQuery(
        ref_id=threshold_id,
        model=ThresholdExpression(
            ref_id=threshold_id,
            conditions=(
                ThresholdCondition(
                    evaluator=condition.evaluator,
                    query=ConditionQuery(params=(reducer_id,)),
                    reducer=ConditionReducer(type="last"),
                    operator="and",
                ),
            ),
            expression=reducer_id,
        ),
        relative_time_range=data_query.relative_time_range,
    )
    return keyed, reduce_query, threshold_query
