"""
Core Form Model Objects

Defines the data structures shared by the schema, navigation and
reporting layers:
    - Fields (questions and sections)
    - Conditional rules (jumps between fields)
    - Form schemas (root container for a form)
    - Responses (one user's answers)
    - Report definitions (filters, grouping, sorting)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about rendering or storage
        - Are treated as immutable snapshots by every operation
        - Are fully serializable
        - Represent structure, not behavior
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from .values import ABSENT, Value


class FieldKind(Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    NUMBER = "number"
    FILE = "file"
    SECTION = "section"


CHOICE_KINDS = frozenset({FieldKind.SELECT, FieldKind.RADIO, FieldKind.CHECKBOX})


class RuleOperator(Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


class FormStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class ResponseStatus(Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class FilterOperator(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER = "greater"
    LESS = "less"
    BETWEEN = "between"


class ChartKind(Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    TABLE = "table"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class FileConstraints:
    """
    Upload limits for a File field.

    Properties:
        allowed_types: MIME types or extensions (".pdf"); empty means any
        max_size_mb: Per-file size limit in megabytes (optional)
        multiple: Whether more than one file may be attached
    """

    allowed_types: List[str] = field(default_factory=list)
    max_size_mb: Optional[float] = None
    multiple: bool = False


# Reserved jump target meaning "form complete"
END_OF_FORM = "__end__"


@dataclass
class ConditionalRule:
    """
    A forward jump attached to a field.

    When the field holding this rule is answered and the condition holds,
    navigation moves straight to ``target_field_id``, skipping every field
    in between.

    Properties:
        source_field_id:
            Field whose current answer is tested (usually the owning field)

        operator:
            RuleOperator (equals, not_equals, contains, not_contains)

        comparison_value:
            A single option string or a list of option strings

        target_field_id:
            Destination field id, or END_OF_FORM to finish the form

    Example:
        On "enrolled", jump to the end if the answer is "no":

        ConditionalRule(
            source_field_id="enrolled",
            operator=RuleOperator.EQUALS,
            comparison_value="no",
            target_field_id=END_OF_FORM,
        )
    """

    source_field_id: str
    operator: RuleOperator
    comparison_value: Union[str, List[str]]
    target_field_id: str


@dataclass
class Field:
    """
    One unit of input in a form, or a Section grouping other fields.

    Properties:
        id:
            Unique identifier across the whole schema tree

        kind:
            FieldKind; constrains which Value variants are legal answers

        label:
            Question text shown to the respondent

        required:
            Whether a non-empty answer is needed before submission

        options:
            Ordered choices for Select, Radio and Checkbox

        file_constraints:
            Upload limits, only meaningful for File

        fields:
            Child fields, only for Section (one level deep)

        conditional_rules:
            Evaluated in declaration order when advancing past this field

    INVARIANT:
        Only Section fields nest, and Section children never nest.
    """

    id: str
    kind: FieldKind
    label: str
    required: bool = False
    options: List[str] = field(default_factory=list)
    file_constraints: Optional[FileConstraints] = None
    description: Optional[str] = None
    placeholder: Optional[str] = None
    fields: List["Field"] = field(default_factory=list)
    conditional_rules: List[ConditionalRule] = field(default_factory=list)

    @property
    def is_section(self) -> bool:
        return self.kind is FieldKind.SECTION


@dataclass
class FormSchema:
    """
    Root container for a form definition.

    Properties:
        id:
            Form identifier

        title / description:
            Display metadata

        fields:
            Top-level fields in document order; may mix standalone
            fields and Sections

        status:
            FormStatus (draft, published, closed)

        allow_multiple_responses_per_user:
            When False a user may hold at most one submitted response

        academic_year_id:
            Scope the form belongs to (optional)

    INVARIANTS:
        - Field ids are unique across top-level and nested fields
        - Every conditional target exists in the schema (or is END_OF_FORM)
    """

    id: str
    title: str
    description: str = ""
    fields: List[Field] = field(default_factory=list)
    status: FormStatus = FormStatus.DRAFT
    allow_multiple_responses_per_user: bool = False
    academic_year_id: Optional[str] = None

    def walk(self) -> Iterator[Field]:
        """Yield every field in document order, Section children inline."""
        for f in self.fields:
            yield f
            if f.is_section:
                yield from f.fields

    def get_field(self, field_id: str) -> Optional[Field]:
        """
        Retrieve a field by ID, searching Section children too.

        Returns:
            Field object or None if not found
        """
        for f in self.walk():
            if f.id == field_id:
                return f
        return None


@dataclass
class Response:
    """
    One user's answers to one form.

    Created as Draft on first save and replaced (never edited in place)
    on every later save. ``submitted_at`` is set iff status is Submitted.
    """

    id: str
    form_id: str
    user_id: str
    values: Dict[str, Value] = field(default_factory=dict)
    status: ResponseStatus = ResponseStatus.DRAFT
    created_at: Optional[datetime] = None
    last_modified_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    def value(self, field_id: str) -> Value:
        """Answer for ``field_id``, Absent when missing."""
        return self.values.get(field_id, ABSENT)

    @property
    def is_submitted(self) -> bool:
        return self.status is ResponseStatus.SUBMITTED


Bounds = Tuple[Value, Value]


@dataclass
class ReportFilter:
    """
    One declarative filter condition.

    ``comparison_value`` is a Value, or a (low, high) pair of Values for
    BETWEEN.
    """

    field_id: str
    operator: FilterOperator
    comparison_value: Union[Value, Bounds]


@dataclass
class SortSpec:
    field_id: str
    direction: SortDirection = SortDirection.ASC


@dataclass
class ReportVisualization:
    """
    One chart or table definition over a set of source forms.

    Properties:
        source_form_ids: Forms whose responses feed this chart
        selected_fields: Field ids projected into each output row
        filters: ANDed together; empty matches everything
        group_by_fields: Optional grouping keys (None or empty = no grouping)
        sort_spec: Optional ordering of the output rows
    """

    id: str
    chart_kind: ChartKind
    title: str
    source_form_ids: Set[str] = field(default_factory=set)
    selected_fields: List[str] = field(default_factory=list)
    filters: List[ReportFilter] = field(default_factory=list)
    group_by_fields: Optional[List[str]] = None
    sort_spec: Optional[SortSpec] = None
    description: Optional[str] = None


@dataclass
class Report:
    """A titled collection of visualizations. Owns its visualizations."""

    id: str
    title: str
    visualizations: List[ReportVisualization] = field(default_factory=list)
    created_by: str = ""
    academic_year_id: str = ""
    is_public: bool = False
    description: str = ""

    def get_visualization(self, visualization_id: str) -> Optional[ReportVisualization]:
        for viz in self.visualizations:
            if viz.id == visualization_id:
                return viz
        return None
