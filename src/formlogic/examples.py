"""
Example enrolment form, responses and report used by the demo and tests.

The form has a consent question that ends the form early when answered
"no", an enrolment section, and a follow-up section with a jump that
skips the mentoring questions for respondents who opt out.
"""
from datetime import datetime, timedelta
from typing import List

from formlogic.model import (
    END_OF_FORM,
    ChartKind,
    ConditionalRule,
    Field,
    FieldKind,
    FileConstraints,
    FilterOperator,
    FormSchema,
    FormStatus,
    Report,
    ReportFilter,
    ReportVisualization,
    Response,
    ResponseStatus,
    RuleOperator,
    SortDirection,
    SortSpec,
)
from formlogic.values import Number, StringList, Text

FORM_ID = "enrolment-2024"
BASE_TIME = datetime(2024, 9, 2, 9, 0, 0)


def build_enrolment_form(form_id: str = FORM_ID) -> FormSchema:
    consent = Field(
        id="consent",
        kind=FieldKind.RADIO,
        label="Do you agree to take part?",
        required=True,
        options=["yes", "no"],
        conditional_rules=[
            ConditionalRule(
                source_field_id="consent",
                operator=RuleOperator.EQUALS,
                comparison_value="no",
                target_field_id=END_OF_FORM,
            ),
        ],
    )

    enrolment = Field(
        id="enrolment",
        kind=FieldKind.SECTION,
        label="Enrolment",
        fields=[
            Field(id="region", kind=FieldKind.SELECT, label="Region", required=True,
                  options=["North", "South", "East", "West"]),
            Field(id="students", kind=FieldKind.NUMBER, label="Students enrolled", required=True),
            Field(id="programmes", kind=FieldKind.CHECKBOX, label="Programmes offered",
                  options=["health", "tech", "arts", "trades"]),
        ],
    )

    follow_up = Field(
        id="follow_up",
        kind=FieldKind.SECTION,
        label="Follow-up",
        fields=[
            Field(
                id="mentoring",
                kind=FieldKind.RADIO,
                label="Would you like a mentor?",
                options=["yes", "no"],
                conditional_rules=[
                    ConditionalRule(
                        source_field_id="mentoring",
                        operator=RuleOperator.EQUALS,
                        comparison_value="no",
                        target_field_id="comments",
                    ),
                ],
            ),
            Field(id="mentor_topics", kind=FieldKind.TEXTAREA, label="Topics for your mentor",
                  required=True),
            Field(id="evidence", kind=FieldKind.FILE, label="Supporting documents",
                  file_constraints=FileConstraints(allowed_types=["application/pdf", ".docx"],
                                                   max_size_mb=5, multiple=True)),
            Field(id="comments", kind=FieldKind.TEXTAREA, label="Comments"),
        ],
    )

    return FormSchema(
        id=form_id,
        title="Centre enrolment survey",
        description="Yearly enrolment figures per centre",
        fields=[consent, enrolment, follow_up],
        status=FormStatus.PUBLISHED,
        academic_year_id="2024",
    )


def build_sample_responses(form_id: str = FORM_ID) -> List[Response]:
    rows = [
        ("u1", "North", 120, ["health", "tech"]),
        ("u2", "South", 80, ["arts"]),
        ("u3", "North", 45, ["tech"]),
        ("u4", None, 30, []),
        ("u5", "East", 200, ["health", "trades"]),
    ]
    responses = []
    for i, (user, region, students, programmes) in enumerate(rows):
        at = BASE_TIME + timedelta(hours=i)
        values = {
            "consent": Text("yes"),
            "students": Number(float(students)),
            "programmes": StringList(tuple(programmes)),
        }
        if region is not None:
            values["region"] = Text(region)
        responses.append(Response(
            id=f"r{i + 1}",
            form_id=form_id,
            user_id=user,
            values=values,
            status=ResponseStatus.SUBMITTED,
            created_at=at,
            last_modified_at=at,
            submitted_at=at,
        ))
    return responses


def build_sample_report(form_id: str = FORM_ID) -> Report:
    by_region = ReportVisualization(
        id="students-by-region",
        chart_kind=ChartKind.BAR,
        title="Students by region",
        source_form_ids={form_id},
        selected_fields=["region", "students"],
        group_by_fields=["region"],
        sort_spec=SortSpec("students", SortDirection.DESC),
    )
    large_centres = ReportVisualization(
        id="large-centres",
        chart_kind=ChartKind.TABLE,
        title="Centres with more than 50 students",
        source_form_ids={form_id},
        selected_fields=["region", "students", "programmes"],
        filters=[ReportFilter("students", FilterOperator.GREATER, Number(50))],
        sort_spec=SortSpec("region", SortDirection.ASC),
    )
    return Report(
        id="enrolment-overview",
        title="Enrolment overview",
        visualizations=[by_region, large_centres],
        created_by="admin",
        academic_year_id="2024",
        is_public=True,
    )
