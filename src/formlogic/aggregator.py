"""
Aggregator

Buckets responses by the canonical values of the group-by fields and
accumulates a count plus numeric sums for every other selected field.

With no group-by fields the aggregator is a pass-through: the input
responses come back unchanged, one row per response, in input order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from formlogic.config import get_settings
from formlogic.model import Response
from formlogic.values import ABSENT, Absent, Number, Value, canonical

logger = logging.getLogger(__name__)

COUNT_FIELD = "count"


@dataclass
class GroupRow:
    """
    One aggregation bucket.

    Properties:
        key: Canonical group key (components joined by the separator)
        group_values: First-seen Value of each group-by field
        count: Number of responses in the bucket
        sums: Running sum per selected field, for fields that saw a Number
        carried: First-seen non-numeric Value per selected field (display only)
    """

    key: str
    group_values: Dict[str, Value] = field(default_factory=dict)
    count: int = 0
    sums: Dict[str, float] = field(default_factory=dict)
    carried: Dict[str, Value] = field(default_factory=dict)

    def value(self, field_id: str) -> Value:
        """
        Value of a column in this row.

        The pseudo-field ``count`` always resolves to the bucket size.
        Otherwise group-by fields first, then sums, then carried values.
        """
        if field_id == COUNT_FIELD:
            return Number(float(self.count))
        if field_id in self.group_values:
            return self.group_values[field_id]
        if field_id in self.sums:
            return Number(self.sums[field_id])
        if field_id in self.carried:
            return self.carried[field_id]
        return ABSENT


Row = Union[Response, GroupRow]


def group_key_parts(
    response: Response,
    group_by_fields: Sequence[str],
    missing_marker: str,
) -> Tuple[Tuple[bool, str], ...]:
    """
    Ordered key components for one response.

    Each component is (is_missing, text) so an Absent answer never
    collides with a real answer that happens to read like the marker.
    """
    parts = []
    for field_id in group_by_fields:
        value = response.value(field_id)
        if isinstance(value, Absent):
            parts.append((True, missing_marker))
        else:
            parts.append((False, canonical(value)))
    return tuple(parts)


def aggregate(
    responses: Sequence[Response],
    group_by_fields: Optional[Sequence[str]],
    selected_fields: Sequence[str],
    missing_marker: Optional[str] = None,
    separator: Optional[str] = None,
) -> List[Row]:
    """
    Group ``responses`` and accumulate counts and sums.

    Args:
        responses: Already-filtered responses
        group_by_fields: Grouping keys; None or empty means pass-through
        selected_fields: Fields to carry into each group row
        missing_marker: Key text for Absent values (defaults from settings)
        separator: Joins key components (defaults from settings)

    Returns:
        Responses unchanged (no grouping) or GroupRows in order of
        first occurrence
    """
    if not group_by_fields:
        return list(responses)

    settings = get_settings()
    marker = settings.missing_group_marker if missing_marker is None else missing_marker
    sep = settings.group_key_separator if separator is None else separator

    if COUNT_FIELD in selected_fields or COUNT_FIELD in group_by_fields:
        logger.warning(
            "Field '%s' is shadowed by the group size column and is not aggregated",
            COUNT_FIELD,
        )
    summed_fields = [
        f for f in selected_fields if f not in group_by_fields and f != COUNT_FIELD
    ]
    groups: Dict[Tuple[Tuple[bool, str], ...], GroupRow] = {}

    for response in responses:
        parts = group_key_parts(response, group_by_fields, marker)
        row = groups.get(parts)
        if row is None:
            row = GroupRow(
                key=sep.join(text for _, text in parts),
                group_values={f: response.value(f) for f in group_by_fields},
            )
            groups[parts] = row

        row.count += 1
        for field_id in summed_fields:
            value = response.value(field_id)
            if isinstance(value, Number):
                row.sums[field_id] = row.sums.get(field_id, 0.0) + value.value
            elif isinstance(value, Absent):
                continue
            elif field_id not in row.carried:
                row.carried[field_id] = value

    logger.debug(
        "Aggregated %d responses into %d groups by %s",
        len(responses),
        len(groups),
        ", ".join(group_by_fields),
    )
    return list(groups.values())
