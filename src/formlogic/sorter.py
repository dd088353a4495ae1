"""
Sorter

Stable ordering of report rows (responses, group rows or projected
dicts) by one field, under a total order that never fails on mixed data:

    Absent < Number < Boolean < Text < StringList < FileRefList

Within a kind: numbers numerically with NaN after every other number,
booleans False before True, text by code point (case-sensitive), string
lists by their sorted items, file lists by (name, id) of each file.
"""

from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Any, List, Mapping, Optional, Sequence

from formlogic.model import SortDirection, SortSpec
from formlogic.values import (
    ABSENT,
    KIND_RANK,
    Boolean,
    FileRefList,
    Number,
    StringList,
    Text,
    Value,
)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _within_kind_key(value: Value):
    if isinstance(value, Number):
        n = float(value.value)
        # NaN sorts after every other number
        if math.isnan(n):
            return (True, 0.0)
        return (False, n)
    if isinstance(value, Boolean):
        return value.value
    if isinstance(value, Text):
        return value.value
    if isinstance(value, StringList):
        return tuple(sorted(value.items))
    if isinstance(value, FileRefList):
        return tuple((f.name, f.id) for f in value.files)
    return 0


def compare_values(a: Value, b: Value) -> int:
    """Three-way comparison under the cross-kind total order."""
    rank = _cmp(KIND_RANK[a.kind], KIND_RANK[b.kind])
    if rank:
        return rank
    return _cmp(_within_kind_key(a), _within_kind_key(b))


def row_value(row: Any, field_id: str) -> Value:
    """Read ``field_id`` from a Response, GroupRow or projected mapping."""
    if isinstance(row, Mapping):
        return row.get(field_id, ABSENT)
    return row.value(field_id)


def sort_rows(rows: Sequence[Any], sort_spec: Optional[SortSpec]) -> List[Any]:
    """
    Return a new list of ``rows`` ordered by ``sort_spec``.

    Ties keep their input order in both directions. Without a sort spec
    the rows come back in input order.
    """
    if sort_spec is None:
        return list(rows)

    sign = -1 if sort_spec.direction is SortDirection.DESC else 1

    def compare(left, right) -> int:
        return sign * compare_values(
            row_value(left, sort_spec.field_id),
            row_value(right, sort_spec.field_id),
        )

    return sorted(rows, key=cmp_to_key(compare))
