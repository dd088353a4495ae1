"""
Tests for the Sorter.
"""

from formlogic.aggregator import GroupRow
from formlogic.model import Response, SortDirection, SortSpec
from formlogic.sorter import compare_values, row_value, sort_rows
from formlogic.values import (
    ABSENT,
    Boolean,
    FileRef,
    FileRefList,
    Number,
    StringList,
    Text,
)


def response(rid, **values):
    return Response(id=rid, form_id="f", user_id="u", values=values)


class TestCompareValues:
    """Test the cross-kind total order."""

    def test_kind_order(self):
        ref = FileRef("f", "a.pdf", "application/pdf", 1, "u", "t")
        ordered = [
            ABSENT,
            Number(100),
            Boolean(False),
            Text("a"),
            StringList(("a",)),
            FileRefList((ref,)),
        ]
        for lower, higher in zip(ordered, ordered[1:]):
            assert compare_values(lower, higher) < 0
            assert compare_values(higher, lower) > 0

    def test_numbers_numeric(self):
        assert compare_values(Number(9), Number(10)) < 0

    def test_text_is_case_sensitive_code_point(self):
        assert compare_values(Text("B"), Text("a")) < 0

    def test_equal_values(self):
        assert compare_values(Text("x"), Text("x")) == 0
        assert compare_values(ABSENT, ABSENT) == 0


class TestSortRows:
    """Test ordering of rows."""

    def test_desc_scenario(self):
        """Desc over b, Absent, a gives b, a, Absent."""
        rows = [
            response("1", name=Text("b")),
            response("2"),
            response("3", name=Text("a")),
        ]
        out = sort_rows(rows, SortSpec("name", SortDirection.DESC))
        assert [r.id for r in out] == ["1", "3", "2"]

    def test_asc_puts_absent_first(self):
        rows = [response("1", name=Text("b")), response("2")]
        out = sort_rows(rows, SortSpec("name", SortDirection.ASC))
        assert [r.id for r in out] == ["2", "1"]

    def test_stable_ascending(self):
        rows = [
            response("1", k=Number(1)),
            response("2", k=Number(0)),
            response("3", k=Number(1)),
            response("4", k=Number(0)),
        ]
        out = sort_rows(rows, SortSpec("k"))
        assert [r.id for r in out] == ["2", "4", "1", "3"]

    def test_stable_descending(self):
        """Ties keep input order in Desc too."""
        rows = [
            response("1", k=Number(1)),
            response("2", k=Number(0)),
            response("3", k=Number(1)),
        ]
        out = sort_rows(rows, SortSpec("k", SortDirection.DESC))
        assert [r.id for r in out] == ["1", "3", "2"]

    def test_mixed_kinds_never_fail(self):
        rows = [
            response("t", v=Text("x")),
            response("n", v=Number(3)),
            response("b", v=Boolean(True)),
            response("l", v=StringList(("q",))),
            response("a"),
        ]
        out = sort_rows(rows, SortSpec("v"))
        assert [r.id for r in out] == ["a", "n", "b", "t", "l"]

    def test_no_sort_spec_keeps_order(self):
        rows = [response("2"), response("1")]
        assert sort_rows(rows, None) == rows

    def test_input_not_mutated(self):
        rows = [response("1", k=Number(2)), response("2", k=Number(1))]
        sort_rows(rows, SortSpec("k"))
        assert [r.id for r in rows] == ["1", "2"]

    def test_group_rows_by_count(self):
        rows = [GroupRow(key="a", count=1), GroupRow(key="b", count=5)]
        out = sort_rows(rows, SortSpec("count", SortDirection.DESC))
        assert [r.key for r in out] == ["b", "a"]

    def test_projected_mappings(self):
        rows = [{"n": Number(2)}, {"n": Number(1)}, {}]
        out = sort_rows(rows, SortSpec("n"))
        assert out == [{}, {"n": Number(1)}, {"n": Number(2)}]


class TestRowValue:
    """Test uniform column access."""

    def test_response(self):
        assert row_value(response("1", a=Text("x")), "a") == Text("x")

    def test_mapping_missing(self):
        assert row_value({}, "a") is ABSENT


class TestNaN:
    """Test that NaN keeps the order total."""

    def test_nan_sorts_after_numbers(self):
        rows = [
            response("3", k=Number(3)),
            response("nan", k=Number(float("nan"))),
            response("1", k=Number(1)),
        ]
        out = sort_rows(rows, SortSpec("k"))
        assert [r.id for r in out] == ["1", "3", "nan"]

    def test_nan_desc(self):
        rows = [
            response("1", k=Number(1)),
            response("nan", k=Number(float("nan"))),
            response("3", k=Number(3)),
        ]
        out = sort_rows(rows, SortSpec("k", SortDirection.DESC))
        assert [r.id for r in out] == ["nan", "3", "1"]

    def test_nan_still_before_other_kinds(self):
        assert compare_values(Number(float("nan")), Boolean(False)) < 0
        assert compare_values(Number(float("nan")), Number(float("nan"))) == 0
