"""alertshape: decide whether an alert rule's query pipeline is a simple condition.

A simple condition is one data query (A), a strict reduce step over it (B)
and a threshold step over the reduction (C). Rules of that shape can be
edited with the simplified condition editor; everything else needs the full
expression pipeline editor.

    from alertshape import are_queries_transformable_to_simple_condition
    ok = are_queries_transformable_to_simple_condition(data_queries, expression_queries)
"""

from alertshape.codec import RuleDocument, dump_rule, load_rule, query_from_dict, query_to_dict
from alertshape.matcher import (
    ShapeCheck,
    ShapeMismatch,
    are_queries_transformable_to_simple_condition,
    check_simple_condition,
)
from alertshape.simple_condition import (
    SimpleCondition,
    build_simple_condition_queries,
    get_simple_condition_from_expressions,
    is_simple_condition_rule,
    split_queries,
)
from alertshape.types import (
    DataQuery,
    EvalFunction,
    Evaluator,
    ExpressionQuery,
    ExpressionQueryType,
    ReduceExpression,
    ReducerMode,
    ReduceSettings,
    SimpleConditionIdentifier,
    ThresholdCondition,
    ThresholdExpression,
)

__all__ = [
    # Matcher
    "are_queries_transformable_to_simple_condition",
    "check_simple_condition",
    "ShapeCheck",
    "ShapeMismatch",
    # Simple condition
    "SimpleCondition",
    "build_simple_condition_queries",
    "get_simple_condition_from_expressions",
    "is_simple_condition_rule",
    "split_queries",
    # Types
    "DataQuery",
    "ExpressionQuery",
    "ExpressionQueryType",
    "ReduceExpression",
    "ReduceSettings",
    "ReducerMode",
    "ThresholdExpression",
    "ThresholdCondition",
    "Evaluator",
    "EvalFunction",
    "SimpleConditionIdentifier",
    # Codec
    "RuleDocument",
    "load_rule",
    "dump_rule",
    "query_from_dict",
    "query_to_dict",
]
