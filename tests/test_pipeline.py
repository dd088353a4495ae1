"""
Tests for the Report Pipeline.

Tests verify that the pipeline:
    - Selects responses from the visualization's source forms
    - Applies filter -> group -> sort -> project in order
    - Leaves its inputs untouched
    - Runs whole reports through a repository
    - Applies report visibility rules
"""

import copy

from formlogic.examples import (
    FORM_ID,
    build_sample_report,
    build_sample_responses,
)
from formlogic.model import (
    ChartKind,
    FilterOperator,
    Report,
    ReportFilter,
    ReportVisualization,
    Response,
    SortDirection,
    SortSpec,
)
from formlogic.pipeline import (
    InMemoryResponseRepository,
    project,
    projected_columns,
    run,
    run_report,
    visible_reports,
)
from formlogic.values import ABSENT, Number, StringList, Text


def response(rid, form_id="f", **values):
    return Response(id=rid, form_id=form_id, user_id="u" + rid, values=values)


def viz(**kwargs):
    defaults = dict(id="v", chart_kind=ChartKind.TABLE, title="T", source_form_ids={"f"})
    defaults.update(kwargs)
    return ReportVisualization(**defaults)


class TestRun:
    """Test one visualization run."""

    def test_selects_source_forms_only(self):
        responses = [response("1"), response("2", form_id="other"), response("3")]
        rows = run(viz(selected_fields=["a"]), responses)
        assert len(rows) == 2

    def test_projection_to_selected_fields(self):
        responses = [response("1", a=Text("x"), b=Text("hidden"))]
        rows = run(viz(selected_fields=["a", "c"]), responses)
        assert rows == [{"a": Text("x"), "c": ABSENT}]

    def test_zero_filter_ungrouped_unsorted_is_identity_projection(self):
        responses = [
            response("1", a=Number(3)),
            response("2", a=Number(1)),
            response("3", a=Number(2)),
        ]
        rows = run(viz(selected_fields=["a"]), responses)
        assert rows == [{"a": r.value("a")} for r in responses]

    def test_already_sorted_input_is_unchanged(self):
        responses = [response(str(i), a=Number(i)) for i in range(4)]
        rows = run(viz(selected_fields=["a"], sort_spec=SortSpec("a")), responses)
        assert rows == [{"a": r.value("a")} for r in responses]

    def test_filter_group_sort(self):
        responses = [
            response("1", region=Text("N"), n=Number(3)),
            response("2", region=Text("N"), n=Number(4)),
            response("3", region=Text("S"), n=Number(1)),
            response("4", region=Text("S"), n=Number(50)),
            response("5", region=Text("E"), n=Number(9)),
        ]
        v = viz(
            selected_fields=["region", "n"],
            filters=[ReportFilter("n", FilterOperator.LESS, Number(20))],
            group_by_fields=["region"],
            sort_spec=SortSpec("n", SortDirection.DESC),
        )
        rows = run(v, responses)
        assert rows == [
            {"region": Text("E"), "count": Number(1), "n": Number(9)},
            {"region": Text("N"), "count": Number(2), "n": Number(7)},
            {"region": Text("S"), "count": Number(1), "n": Number(1)},
        ]

    def test_selected_field_named_count_keeps_group_size(self):
        responses = [
            response("1", region=Text("N"), count=Number(10)),
            response("2", region=Text("N"), count=Number(5)),
        ]
        v = viz(selected_fields=["count"], group_by_fields=["region"])
        assert run(v, responses) == [{"region": Text("N"), "count": Number(2)}]

    def test_grouped_columns(self):
        v = viz(selected_fields=["region", "n"], group_by_fields=["region"])
        assert projected_columns(v) == ["region", "count", "n"]

    def test_inputs_are_not_mutated(self):
        responses = build_sample_responses()
        before = copy.deepcopy(responses)
        report = build_sample_report()
        for v in report.visualizations:
            run(v, responses)
        assert responses == before

    def test_project_helper(self):
        assert project({"a": Text("x")}, ["a", "b"]) == {"a": Text("x"), "b": ABSENT}


class TestRunReport:
    """Test whole-report execution through a repository."""

    def test_sample_report(self):
        repo = InMemoryResponseRepository(build_sample_responses())
        result = run_report(build_sample_report(), repo)
        assert set(result) == {"students-by-region", "large-centres"}

        by_region = result["students-by-region"]
        assert [row["region"] for row in by_region] == [
            Text("East"), Text("North"), Text("South"), ABSENT,
        ]
        assert by_region[1]["count"] == Number(2)
        assert by_region[1]["students"] == Number(165)

        large = result["large-centres"]
        assert [row["region"] for row in large] == [Text("East"), Text("North"), Text("South")]
        assert large[0]["programmes"] == StringList(("health", "trades"))

    def test_multiple_source_forms(self):
        repo = InMemoryResponseRepository([
            response("1", form_id="b", a=Number(1)),
            response("2", form_id="a", a=Number(2)),
            response("3", form_id="c", a=Number(3)),
        ])
        report = Report(id="r", title="R", visualizations=[
            viz(id="both", source_form_ids={"a", "b"}, selected_fields=["a"]),
        ])
        rows = run_report(report, repo)["both"]
        assert rows == [{"a": Number(2)}, {"a": Number(1)}]

    def test_repository_lookup_by_user(self):
        repo = InMemoryResponseRepository(build_sample_responses())
        found = repo.response_by_user_and_form("u2", FORM_ID)
        assert found is not None and found.id == "r2"
        assert repo.response_by_user_and_form("nobody", FORM_ID) is None


class TestVisibleReports:
    """Test report visibility."""

    def reports(self):
        return [
            Report(id="own", title="Own", created_by="u1", academic_year_id="2024"),
            Report(id="public", title="Public", created_by="u2", academic_year_id="2024", is_public=True),
            Report(id="private", title="Private", created_by="u2", academic_year_id="2024"),
            Report(id="old", title="Old", created_by="u1", academic_year_id="2023"),
        ]

    def test_admin_sees_all(self):
        assert len(visible_reports(self.reports(), "u1", "2024", is_admin=True)) == 4

    def test_user_sees_own_and_public_of_year(self):
        ids = [r.id for r in visible_reports(self.reports(), "u1", "2024")]
        assert ids == ["own", "public"]
