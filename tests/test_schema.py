"""
Tests for schema validation, flattening and diagnostics.
"""

import pytest
from formlogic.model import (
    END_OF_FORM,
    ConditionalRule,
    Field,
    FieldKind,
    FormSchema,
    RuleOperator,
)
from formlogic.schema import (
    SchemaError,
    SchemaErrorKind,
    analyze_schema,
    field_index,
    flatten_fields,
    validate,
)


def text(field_id, **kwargs):
    return Field(id=field_id, kind=FieldKind.TEXT, label=field_id.upper(), **kwargs)


def section(field_id, children):
    return Field(id=field_id, kind=FieldKind.SECTION, label=field_id.upper(), fields=children)


def jump(source, value, target, operator=RuleOperator.EQUALS):
    return ConditionalRule(source, operator, value, target)


class TestFlattenFields:
    """Test the flattened field sequence."""

    def test_document_order_with_sections_inline(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a"),
            section("s", [text("b"), text("c")]),
            text("d"),
        ])
        assert flatten_fields(schema).ids() == ["a", "s", "b", "c", "d"]

    def test_restartable(self):
        """Iterating twice should yield the same sequence."""
        schema = FormSchema(id="f", title="F", fields=[text("a"), text("b")])
        flat = flatten_fields(schema)
        assert [f.id for f in flat] == [f.id for f in flat]

    def test_lazy_view_reflects_schema(self):
        """The view should walk the schema on each iteration."""
        schema = FormSchema(id="f", title="F", fields=[text("a")])
        flat = flatten_fields(schema)
        schema.fields.append(text("b"))
        assert flat.ids() == ["a", "b"]

    def test_field_index(self):
        schema = FormSchema(id="f", title="F", fields=[text("a"), section("s", [text("b")])])
        assert field_index(schema) == {"a": 0, "s": 1, "b": 2}


class TestValidate:
    """Test structural validation."""

    def test_valid_schema(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a", conditional_rules=[jump("a", "x", "c")]),
            section("s", [text("b"), text("c")]),
        ])
        validate(schema)

    def test_end_of_form_target_is_valid(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a", conditional_rules=[jump("a", "x", END_OF_FORM)]),
        ])
        validate(schema)

    def test_duplicate_top_level_id(self):
        schema = FormSchema(id="f", title="F", fields=[text("a"), text("a")])
        with pytest.raises(SchemaError) as info:
            validate(schema)
        assert info.value.kind is SchemaErrorKind.DUPLICATE_FIELD_ID
        assert info.value.field_id == "a"

    def test_duplicate_across_nesting(self):
        """Ids must be unique across sections too."""
        schema = FormSchema(id="f", title="F", fields=[text("a"), section("s", [text("a")])])
        with pytest.raises(SchemaError) as info:
            validate(schema)
        assert info.value.kind is SchemaErrorKind.DUPLICATE_FIELD_ID

    def test_dangling_target(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a", conditional_rules=[jump("a", "x", "ghost")]),
        ])
        with pytest.raises(SchemaError) as info:
            validate(schema)
        assert info.value.kind is SchemaErrorKind.DANGLING_CONDITIONAL_TARGET
        assert "ghost" in str(info.value)

    def test_dangling_target_inside_section(self):
        schema = FormSchema(id="f", title="F", fields=[
            section("s", [text("b", conditional_rules=[jump("b", "x", "ghost")])]),
        ])
        with pytest.raises(SchemaError) as info:
            validate(schema)
        assert info.value.field_id == "b"

    def test_non_section_cannot_nest(self):
        bad = text("a")
        bad.fields = [text("b")]
        schema = FormSchema(id="f", title="F", fields=[bad])
        with pytest.raises(SchemaError) as info:
            validate(schema)
        assert info.value.kind is SchemaErrorKind.INVALID_NESTING

    def test_section_inside_section(self):
        """Sections nest one level only."""
        schema = FormSchema(id="f", title="F", fields=[
            section("outer", [section("inner", [])]),
        ])
        with pytest.raises(SchemaError) as info:
            validate(schema)
        assert info.value.kind is SchemaErrorKind.INVALID_NESTING
        assert info.value.field_id == "inner"


class TestAnalyzeSchema:
    """Test non-fatal diagnostics."""

    def test_counts(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a", required=True),
            section("s", [text("b"), Field(id="n", kind=FieldKind.NUMBER, label="N")]),
        ])
        report = analyze_schema(schema)
        assert report.total_fields == 3
        assert report.total_sections == 1
        assert report.required_fields == 1
        assert report.fields_by_kind == {"text": 2, "section": 1, "number": 1}
        assert report.warnings == []

    def test_choice_without_options(self):
        schema = FormSchema(id="f", title="F", fields=[
            Field(id="c", kind=FieldKind.SELECT, label="C"),
        ])
        report = analyze_schema(schema)
        assert any("no options" in w for w in report.warnings)

    def test_rule_value_not_an_option(self):
        schema = FormSchema(id="f", title="F", fields=[
            Field(id="c", kind=FieldKind.RADIO, label="C", options=["x", "y"],
                  conditional_rules=[jump("c", "z", END_OF_FORM)]),
        ])
        report = analyze_schema(schema)
        assert report.total_rules == 1
        assert any("not offered" in w and "z" in w for w in report.warnings)

    def test_backward_jump_is_flagged(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a"),
            text("b", conditional_rules=[jump("b", "again", "a")]),
        ])
        report = analyze_schema(schema)
        assert report.backward_jumps == ["b -> a"]
        assert "Backward jump: b -> a" in report.warnings

    def test_rule_on_file_field_never_matches(self):
        schema = FormSchema(id="f", title="F", fields=[
            Field(id="doc", kind=FieldKind.FILE, label="Doc",
                  conditional_rules=[jump("doc", "x", END_OF_FORM)]),
        ])
        report = analyze_schema(schema)
        assert any("can never match" in w for w in report.warnings)

    def test_unknown_rule_source(self):
        schema = FormSchema(id="f", title="F", fields=[
            text("a", conditional_rules=[jump("missing", "x", END_OF_FORM)]),
        ])
        report = analyze_schema(schema)
        assert any("unknown field 'missing'" in w for w in report.warnings)

    def test_does_not_raise_on_invalid_schema(self):
        """Diagnostics should tolerate schemas validate() would reject."""
        schema = FormSchema(id="f", title="F", fields=[
            text("a", conditional_rules=[jump("a", "x", "ghost")]),
            text("a"),
        ])
        report = analyze_schema(schema)
        assert report.total_fields == 2
