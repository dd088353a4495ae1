"""
Filter Evaluator

Decides whether one response satisfies one ReportFilter, and whether it
satisfies a whole filter set (logical AND, empty set matches all).

Operator/value-kind incompatibilities raise TypeMismatch internally and
resolve to "no match" at the evaluate() boundary, so evaluation is a
total function over any response data. Absent answers are never an
error: they simply fail every operator except equality with Absent.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence, Tuple

from formlogic.config import get_settings
from formlogic.model import FilterOperator, ReportFilter, Response
from formlogic.values import (
    Absent,
    StringList,
    Text,
    TypeMismatch,
    Value,
    as_number,
    canonical,
    value_of,
    values_equal,
)

logger = logging.getLogger(__name__)


def _coerce(raw: Any) -> Value:
    try:
        return value_of(raw)
    except TypeError as exc:
        raise TypeMismatch(str(exc))


def _bounds(raw: Any) -> Tuple[Value, Value]:
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        return _coerce(raw[0]), _coerce(raw[1])
    raise TypeMismatch(f"between expects a (low, high) pair, got {raw!r}")


def _contains(value: Value, needle: Value) -> bool:
    if isinstance(needle, Absent):
        return False
    if isinstance(value, Text):
        return canonical(needle) in value.value
    if isinstance(value, StringList):
        if isinstance(needle, StringList):
            return all(item in value.items for item in needle.items)
        return canonical(needle) in value.items
    raise TypeMismatch(f"contains is undefined for {value.kind.value}", value.kind)


def check(report_filter: ReportFilter, value: Value) -> bool:
    """
    Apply one filter to one answer.

    Raises:
        TypeMismatch: When the operator cannot be applied to the value kind
    """
    op = report_filter.operator

    if op is FilterOperator.EQUALS:
        return values_equal(value, _coerce(report_filter.comparison_value))

    if isinstance(value, Absent):
        return False

    if op is FilterOperator.CONTAINS:
        return _contains(value, _coerce(report_filter.comparison_value))
    if op is FilterOperator.GREATER:
        return as_number(value) > as_number(_coerce(report_filter.comparison_value))
    if op is FilterOperator.LESS:
        return as_number(value) < as_number(_coerce(report_filter.comparison_value))
    if op is FilterOperator.BETWEEN:
        low, high = _bounds(report_filter.comparison_value)
        return as_number(low) <= as_number(value) <= as_number(high)

    raise TypeMismatch(f"Unsupported filter operator: {op}")


def evaluate(report_filter: ReportFilter, response: Response) -> bool:
    """
    Whether ``response`` satisfies ``report_filter``.

    Never raises for response data; a TypeMismatch is logged and counts
    as a non-match.
    """
    value = response.value(report_filter.field_id)
    try:
        return check(report_filter, value)
    except TypeMismatch as exc:
        if get_settings().log_type_mismatches:
            logger.debug(
                "Filter %s on '%s' skipped response %s: %s",
                report_filter.operator.value,
                report_filter.field_id,
                response.id,
                exc,
            )
        return False


def matches_all(filters: Sequence[ReportFilter], response: Response) -> bool:
    """AND over ``filters``; an empty filter set matches every response."""
    return all(evaluate(f, response) for f in filters)


def apply_filters(filters: Sequence[ReportFilter], responses: Iterable[Response]) -> list:
    """Responses satisfying every filter, in input order."""
    return [r for r in responses if matches_all(filters, r)]
