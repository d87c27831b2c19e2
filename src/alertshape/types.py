"""Alert query type system: enums, query records, expression models.

Every other alertshape module imports from here. Records are frozen
dataclasses holding tuples, so a rule's query pipeline can be passed
around and compared without anyone mutating it.

The expression model is a closed union (ExpressionModel): one dataclass
per expression type, each pinning its own ``type`` discriminator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar, Union

# =============================================================================
# Constants
# =============================================================================

EXPRESSION_DATASOURCE_UID = "__expr__"
EXPRESSION_QUERY_TYPE = "expression"


class SimpleConditionIdentifier:
    """Ref ids of the three queries that make up a simple condition."""

    QUERY_ID = "A"
    REDUCER_ID = "B"
    THRESHOLD_ID = "C"


# =============================================================================
# Enums
# =============================================================================


class ExpressionQueryType(StrEnum):
    """Discriminator of an expression model (``model.type`` on the wire)."""

    MATH = "math"
    REDUCE = "reduce"
    RESAMPLE = "resample"
    CLASSIC_CONDITIONS = "classic_conditions"
    THRESHOLD = "threshold"
    SQL = "sql"


class ReducerMode(StrEnum):
    """How a reduce step treats non-numeric values.

    Strict is the empty string on the wire. An absent mode is None and is
    NOT strict.
    """

    STRICT = ""
    REPLACE_NON_NUMBERS = "replaceNN"
    DROP_NON_NUMBERS = "dropNN"


class EvalFunction(StrEnum):
    """Comparison applied by a threshold evaluator."""

    IS_ABOVE = "gt"
    IS_BELOW = "lt"
    IS_OUTSIDE_RANGE = "outside_range"
    IS_WITHIN_RANGE = "within_range"
    IS_OUTSIDE_RANGE_INCLUDED = "outside_range_included"
    IS_WITHIN_RANGE_INCLUDED = "within_range_included"
    IS_EQUAL = "eq"
    IS_NOT_EQUAL = "ne"
    IS_GREATER_THAN_EQUAL = "gte"
    IS_LESS_THAN_EQUAL = "lte"
    HAS_NO_VALUE = "no_value"


# =============================================================================
# Threshold conditions
# =============================================================================


@dataclass(frozen=True)
class Evaluator:
    params: tuple[float, ...]
    type: EvalFunction


@dataclass(frozen=True)
class ConditionQuery:
    params: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConditionReducer:
    type: str
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ThresholdCondition:
    """One evaluator row of a threshold or classic-conditions step.

    unload_evaluator, when set, is the recovery threshold of a firing
    alert (hysteresis).
    """

    evaluator: Evaluator
    query: ConditionQuery = field(default_factory=ConditionQuery)
    reducer: ConditionReducer = field(default_factory=lambda: ConditionReducer(type="last"))
    unload_evaluator: Evaluator | None = None
    operator: str | None = None  # "and" | "or"
    type: str = "query"


# =============================================================================
# Expression models
# =============================================================================


@dataclass(frozen=True)
class ReduceSettings:
    mode: ReducerMode | None = None
    replace_with_value: float | None = None


@dataclass(frozen=True)
class ReduceExpression:
    """Aggregate a series into a scalar."""

    type: ClassVar[ExpressionQueryType] = ExpressionQueryType.REDUCE

    ref_id: str
    settings: ReduceSettings | None = None
    reducer: str | None = None  # "last" | "mean" | "max" | ...
    expression: str | None = None  # ref id of the input query


@dataclass(frozen=True)
class ThresholdExpression:
    """Compare a scalar against evaluator conditions."""

    type: ClassVar[ExpressionQueryType] = ExpressionQueryType.THRESHOLD

    ref_id: str
    conditions: tuple[ThresholdCondition, ...] | None = None
    expression: str | None = None


@dataclass(frozen=True)
class MathExpression:
    type: ClassVar[ExpressionQueryType] = ExpressionQueryType.MATH

    ref_id: str
    expression: str | None = None


@dataclass(frozen=True)
class ResampleExpression:
    type: ClassVar[ExpressionQueryType] = ExpressionQueryType.RESAMPLE

    ref_id: str
    expression: str | None = None
    window: str | None = None
    downsampler: str | None = None
    upsampler: str | None = None


@dataclass(frozen=True)
class ClassicConditionsExpression:
    type: ClassVar[ExpressionQueryType] = ExpressionQueryType.CLASSIC_CONDITIONS

    ref_id: str
    conditions: tuple[ThresholdCondition, ...] | None = None


@dataclass(frozen=True)
class SqlExpression:
    type: ClassVar[ExpressionQueryType] = ExpressionQueryType.SQL

    ref_id: str
    expression: str | None = None


ExpressionModel = Union[
    ReduceExpression,
    ThresholdExpression,
    MathExpression,
    ResampleExpression,
    ClassicConditionsExpression,
    SqlExpression,
]

EXPRESSION_MODELS: dict[ExpressionQueryType, type] = {
    ExpressionQueryType.REDUCE: ReduceExpression,
    ExpressionQueryType.THRESHOLD: ThresholdExpression,
    ExpressionQueryType.MATH: MathExpression,
    ExpressionQueryType.RESAMPLE: ResampleExpression,
    ExpressionQueryType.CLASSIC_CONDITIONS: ClassicConditionsExpression,
    ExpressionQueryType.SQL: SqlExpression,
}


# =============================================================================
# Alert queries
# =============================================================================


@dataclass(frozen=True)
class RelativeTimeRange:
    """Query window in seconds before evaluation time."""

    from_seconds: int
    to_seconds: int = 0


@dataclass(frozen=True)
class DataQuery:
    """A query against a real data source.

    model is the datasource-specific payload; it is carried but never
    interpreted here.
    """

    ref_id: str
    datasource_uid: str
    query_type: str = ""
    model: dict[str, Any] = field(default_factory=dict)
    relative_time_range: RelativeTimeRange | None = None


@dataclass(frozen=True)
class ExpressionQuery:
    """A computed step over other queries, addressed by ref id."""

    ref_id: str
    model: ExpressionModel
    query_type: str = EXPRESSION_QUERY_TYPE
    datasource_uid: str = EXPRESSION_DATASOURCE_UID
    relative_time_range: RelativeTimeRange | None = None


AlertQuery = Union[DataQuery, ExpressionQuery]
