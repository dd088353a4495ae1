"""
Report Pipeline

Runs one visualization over a response collection:

    1. select responses from the visualization's source forms
    2. filter (AND over all filters)
    3. aggregate by the group-by fields
    4. sort by the sort spec, if any
    5. project each row to the columns the chart layer needs

Responses are read through a ResponseRepository supplied by the caller.
Nothing here holds process-wide state or mutates its inputs.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from formlogic.aggregator import COUNT_FIELD, aggregate
from formlogic.filters import apply_filters
from formlogic.model import Report, ReportVisualization, Response
from formlogic.sorter import row_value, sort_rows
from formlogic.values import Value

logger = logging.getLogger(__name__)

ProjectedRow = Dict[str, Value]


class ResponseRepository(Protocol):
    """Read-only access to stored responses."""

    def responses_by_form(self, form_id: str) -> Sequence[Response]:
        ...

    def response_by_user_and_form(self, user_id: str, form_id: str) -> Optional[Response]:
        ...


class InMemoryResponseRepository:
    """ResponseRepository over a plain list, in insertion order."""

    def __init__(self, responses: Iterable[Response] = ()):
        self._responses: List[Response] = list(responses)

    def responses_by_form(self, form_id: str) -> Sequence[Response]:
        return [r for r in self._responses if r.form_id == form_id]

    def response_by_user_and_form(self, user_id: str, form_id: str) -> Optional[Response]:
        for r in self._responses:
            if r.user_id == user_id and r.form_id == form_id:
                return r
        return None


def projected_columns(visualization: ReportVisualization) -> List[str]:
    """
    Column order of the output rows.

    Grouped output leads with the group-by fields and ``count``; the
    selected fields follow. Ungrouped output is the selected fields only.
    """
    if not visualization.group_by_fields:
        return list(visualization.selected_fields)
    columns = list(visualization.group_by_fields) + [COUNT_FIELD]
    columns += [f for f in visualization.selected_fields if f not in columns]
    return columns


def project(row, columns: Sequence[str]) -> ProjectedRow:
    return {column: row_value(row, column) for column in columns}


def run(visualization: ReportVisualization, all_responses: Iterable[Response]) -> List[ProjectedRow]:
    """
    Compute the rows for one visualization.

    Returns:
        Ordered list of {column: Value} mappings
    """
    selected = [r for r in all_responses if r.form_id in visualization.source_form_ids]
    filtered = apply_filters(visualization.filters, selected)
    rows = aggregate(
        filtered,
        visualization.group_by_fields,
        visualization.selected_fields,
    )
    rows = sort_rows(rows, visualization.sort_spec)

    logger.debug(
        "Visualization %s: %d selected, %d after filters, %d rows",
        visualization.id,
        len(selected),
        len(filtered),
        len(rows),
    )
    columns = projected_columns(visualization)
    return [project(row, columns) for row in rows]


def collect_responses(visualization: ReportVisualization, repository: ResponseRepository) -> List[Response]:
    """Responses of every source form, form ids taken in sorted order."""
    responses: List[Response] = []
    for form_id in sorted(visualization.source_form_ids):
        responses.extend(repository.responses_by_form(form_id))
    return responses


def run_report(report: Report, repository: ResponseRepository) -> Dict[str, List[ProjectedRow]]:
    """Run every visualization of ``report``, keyed by visualization id."""
    return {
        viz.id: run(viz, collect_responses(viz, repository))
        for viz in report.visualizations
    }


def visible_reports(
    reports: Iterable[Report],
    user_id: str,
    academic_year_id: Optional[str],
    is_admin: bool = False,
) -> List[Report]:
    """
    Reports a user may open.

    Administrators see everything. Everyone else sees reports of the given
    academic year that they created or that are public.
    """
    if is_admin:
        return list(reports)
    return [
        r for r in reports
        if r.academic_year_id == academic_year_id and (r.created_by == user_id or r.is_public)
    ]
