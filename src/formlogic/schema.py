"""
Schema validation, flattening and diagnostics.

validate() rejects schemas that break structural invariants. Once a
schema passes, navigation and reporting assume it is well formed.

analyze_schema() produces a read-only SchemaReport of non-fatal smells
(choice fields without options, jumps that go backwards, ...). It never
raises and never modifies the schema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set

from formlogic.model import (
    CHOICE_KINDS,
    END_OF_FORM,
    Field,
    FieldKind,
    FormSchema,
)
from formlogic.values import string_items


class SchemaErrorKind(Enum):
    DUPLICATE_FIELD_ID = "duplicate_field_id"
    DANGLING_CONDITIONAL_TARGET = "dangling_conditional_target"
    INVALID_NESTING = "invalid_nesting"


class SchemaError(Exception):
    """Raised by validate() when a schema breaks a structural invariant."""

    def __init__(self, kind: SchemaErrorKind, field_id: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.field_id = field_id


class FlattenedFields:
    """
    Lazy, restartable view over every field in document order.

    Section children appear immediately after their Section. Iterating
    twice walks the schema twice; nothing is cached.
    """

    def __init__(self, schema: FormSchema):
        self._schema = schema

    def __iter__(self) -> Iterator[Field]:
        return self._schema.walk()

    def ids(self) -> List[str]:
        return [f.id for f in self]


def flatten_fields(schema: FormSchema) -> FlattenedFields:
    return FlattenedFields(schema)


def field_index(schema: FormSchema) -> Dict[str, int]:
    """Map each field id to its position in the flattened sequence."""
    return {f.id: i for i, f in enumerate(flatten_fields(schema))}


def validate(schema: FormSchema) -> None:
    """
    Check the structural invariants of a schema.

    Checks, in order:
        - Only Sections nest, and only one level deep
        - Field ids are unique across the whole tree
        - Every conditional target exists (or is END_OF_FORM)

    Raises:
        SchemaError: On the first violation found
    """
    for f in schema.fields:
        if f.fields and not f.is_section:
            raise SchemaError(
                SchemaErrorKind.INVALID_NESTING,
                f.id,
                f"Field '{f.id}' of kind {f.kind.value} cannot contain fields",
            )
        for child in f.fields:
            if child.is_section or child.fields:
                raise SchemaError(
                    SchemaErrorKind.INVALID_NESTING,
                    child.id,
                    f"Field '{child.id}' is nested too deeply inside section '{f.id}'",
                )

    seen: Set[str] = set()
    for f in flatten_fields(schema):
        if f.id in seen:
            raise SchemaError(
                SchemaErrorKind.DUPLICATE_FIELD_ID,
                f.id,
                f"Duplicate field id: '{f.id}'",
            )
        seen.add(f.id)

    for f in flatten_fields(schema):
        for rule in f.conditional_rules:
            if rule.target_field_id != END_OF_FORM and rule.target_field_id not in seen:
                raise SchemaError(
                    SchemaErrorKind.DANGLING_CONDITIONAL_TARGET,
                    f.id,
                    f"Rule on '{f.id}' jumps to unknown field '{rule.target_field_id}'",
                )


@dataclass
class SchemaReport:
    """Diagnostic summary of a schema."""

    schema_id: str
    total_fields: int = 0
    total_sections: int = 0
    required_fields: int = 0
    total_rules: int = 0

    fields_by_kind: Dict[str, int] = field(default_factory=dict)
    backward_jumps: List[str] = field(default_factory=list)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def analyze_schema(schema: FormSchema) -> SchemaReport:
    """
    Inventory a schema and flag authoring risks.

    Flags:
        - Choice fields (select/radio/checkbox) without options
        - Rules whose comparison value is not one of the source's options
        - Rules attached to File or Section sources, which never match
        - Rules whose source field does not exist
        - Backward jumps (target earlier than the rule's field)
    """
    report = SchemaReport(schema_id=schema.id)
    flat = list(flatten_fields(schema))
    positions = {f.id: i for i, f in enumerate(flat)}
    by_id = {f.id: f for f in flat}

    for position, f in enumerate(flat):
        if f.is_section:
            report.total_sections += 1
        else:
            report.total_fields += 1
        if f.required:
            report.required_fields += 1
        report.fields_by_kind[f.kind.value] = report.fields_by_kind.get(f.kind.value, 0) + 1

        if f.kind in CHOICE_KINDS and not f.options:
            report.add_warning(f"Choice field '{f.id}' has no options")

        for rule in f.conditional_rules:
            report.total_rules += 1
            source: Optional[Field] = by_id.get(rule.source_field_id)

            if source is None:
                report.add_warning(
                    f"Rule on '{f.id}' reads unknown field '{rule.source_field_id}'"
                )
            elif source.kind in (FieldKind.FILE, FieldKind.SECTION):
                report.add_warning(
                    f"Rule on '{f.id}' tests {source.kind.value} field '{source.id}' and can never match"
                )
            elif source.kind in CHOICE_KINDS and source.options:
                unknown = [v for v in string_items(rule.comparison_value) if v not in source.options]
                if unknown:
                    report.add_warning(
                        f"Rule on '{f.id}' compares against values not offered by "
                        f"'{source.id}': {', '.join(unknown)}"
                    )

            target = positions.get(rule.target_field_id)
            if target is not None and target <= position:
                report.backward_jumps.append(f"{f.id} -> {rule.target_field_id}")
                report.add_warning(f"Backward jump: {f.id} -> {rule.target_field_id}")

    return report
