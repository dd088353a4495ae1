"""
Response lifecycle and answer checking.

Lifecycle:
    new_draft -> save_draft* -> submit

Every step returns a new Response; the one passed in is left untouched.
A submitted response is immutable here (corrections are handled by the
administrative layer).

check_answers() reports problems with a set of answers against a schema
as a list of AnswerIssue. It never raises for user data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from formlogic.model import (
    CHOICE_KINDS,
    Field,
    FieldKind,
    FormSchema,
    FormStatus,
    Response,
    ResponseStatus,
)
from formlogic.schema import flatten_fields
from formlogic.values import (
    ABSENT,
    Absent,
    FileRefList,
    StringList,
    Text,
    Value,
    ValueKind,
    is_empty,
)

logger = logging.getLogger(__name__)


class ResponseStateError(Exception):
    """Raised when a lifecycle step does not apply to the response's status."""
    pass


# Value kinds each field kind may hold (Absent is always allowed)
LEGAL_KINDS: Dict[FieldKind, FrozenSet[ValueKind]] = {
    FieldKind.TEXT: frozenset({ValueKind.TEXT}),
    FieldKind.TEXTAREA: frozenset({ValueKind.TEXT}),
    FieldKind.SELECT: frozenset({ValueKind.TEXT}),
    FieldKind.RADIO: frozenset({ValueKind.TEXT}),
    FieldKind.CHECKBOX: frozenset({ValueKind.STRING_LIST, ValueKind.BOOLEAN}),
    FieldKind.DATE: frozenset({ValueKind.TEXT}),
    FieldKind.NUMBER: frozenset({ValueKind.NUMBER}),
    FieldKind.FILE: frozenset({ValueKind.FILE_REF_LIST}),
    FieldKind.SECTION: frozenset(),
}


def is_legal(f: Field, value: Value) -> bool:
    if isinstance(value, Absent):
        return True
    return value.kind in LEGAL_KINDS[f.kind]


# =========================================================================
# LIFECYCLE
# =========================================================================

def new_draft(response_id: str, form_id: str, user_id: str, now: datetime,
              values: Optional[Mapping[str, Value]] = None) -> Response:
    return Response(
        id=response_id,
        form_id=form_id,
        user_id=user_id,
        values=dict(values or {}),
        status=ResponseStatus.DRAFT,
        created_at=now,
        last_modified_at=now,
    )


def save_draft(response: Response, values: Mapping[str, Value], now: datetime) -> Response:
    """
    Replace the answers of a draft.

    Raises:
        ResponseStateError: If the response was already submitted
    """
    if response.is_submitted:
        raise ResponseStateError(f"Response {response.id} is submitted and cannot be edited")
    return replace(response, values=dict(values), last_modified_at=now)


def submit(response: Response, now: datetime) -> Response:
    """
    Mark a draft as submitted.

    Raises:
        ResponseStateError: If the response was already submitted
    """
    if response.is_submitted:
        raise ResponseStateError(f"Response {response.id} was already submitted")
    return replace(
        response,
        values=dict(response.values),
        status=ResponseStatus.SUBMITTED,
        last_modified_at=now,
        submitted_at=now,
    )


def can_start_response(schema: FormSchema, existing: Iterable[Response]) -> bool:
    """
    Whether a user may begin a new response.

    The form must be published. Unless the form allows several responses
    per user, an existing submitted response blocks a new one.
    """
    if schema.status is not FormStatus.PUBLISHED:
        return False
    if schema.allow_multiple_responses_per_user:
        return True
    return not any(r.form_id == schema.id and r.is_submitted for r in existing)


# =========================================================================
# ANSWER CHECKS
# =========================================================================

class IssueCode(Enum):
    REQUIRED = "required"
    WRONG_KIND = "wrong_kind"
    UNKNOWN_OPTION = "unknown_option"
    FILE_TYPE = "file_type"
    FILE_SIZE = "file_size"
    TOO_MANY_FILES = "too_many_files"
    UNKNOWN_FIELD = "unknown_field"


@dataclass(frozen=True)
class AnswerIssue:
    field_id: str
    code: IssueCode
    message: str


def _type_allowed(allowed: List[str], mime_type: str, name: str) -> bool:
    if not allowed:
        return True
    lowered = name.lower()
    for entry in allowed:
        entry = entry.strip().lower()
        if entry.startswith("."):
            if lowered.endswith(entry):
                return True
        elif entry.endswith("/*"):
            if mime_type.lower().startswith(entry[:-1]):
                return True
        elif mime_type.lower() == entry:
            return True
    return False


def _check_field(f: Field, value: Value) -> List[AnswerIssue]:
    issues: List[AnswerIssue] = []

    if f.required and is_empty(value):
        issues.append(AnswerIssue(f.id, IssueCode.REQUIRED, f"'{f.label}' is required"))
        return issues

    if not is_legal(f, value):
        issues.append(AnswerIssue(
            f.id,
            IssueCode.WRONG_KIND,
            f"'{f.id}' ({f.kind.value}) cannot hold a {value.kind.value} answer",
        ))
        return issues

    if f.kind in CHOICE_KINDS and f.options:
        chosen = ()
        if isinstance(value, Text) and value.value:
            chosen = (value.value,)
        elif isinstance(value, StringList):
            chosen = value.items
        for option in chosen:
            if option not in f.options:
                issues.append(AnswerIssue(
                    f.id, IssueCode.UNKNOWN_OPTION, f"'{option}' is not an option of '{f.id}'"
                ))

    if isinstance(value, FileRefList) and f.file_constraints is not None:
        limits = f.file_constraints
        if not limits.multiple and len(value.files) > 1:
            issues.append(AnswerIssue(
                f.id, IssueCode.TOO_MANY_FILES, f"'{f.id}' accepts a single file"
            ))
        for ref in value.files:
            if not _type_allowed(limits.allowed_types, ref.mime_type, ref.name):
                issues.append(AnswerIssue(
                    f.id, IssueCode.FILE_TYPE, f"{ref.name}: type {ref.mime_type} not allowed"
                ))
            if limits.max_size_mb is not None and ref.size_bytes > limits.max_size_mb * 1024 * 1024:
                issues.append(AnswerIssue(
                    f.id, IssueCode.FILE_SIZE, f"{ref.name} exceeds {limits.max_size_mb} MB"
                ))

    return issues


def check_answers(
    schema: FormSchema,
    values: Mapping[str, Value],
    visited: Optional[Iterable[str]] = None,
) -> List[AnswerIssue]:
    """
    Collect every problem with ``values`` against ``schema``.

    Args:
        schema: A schema that passed validate()
        values: Answers keyed by field id
        visited: Field ids actually presented (e.g. Navigator.path());
            required checks are limited to these when given, so fields
            skipped by a conditional jump are not demanded

    Returns:
        Issues in document order; empty when the answers are acceptable
    """
    on_path = set(visited) if visited is not None else None
    issues: List[AnswerIssue] = []
    known = set()

    for f in flatten_fields(schema):
        known.add(f.id)
        if f.is_section:
            continue
        value = values.get(f.id, ABSENT)
        if on_path is not None and f.id not in on_path:
            if is_empty(value):
                continue
        issues.extend(_check_field(f, value))

    for field_id in values:
        if field_id not in known:
            issues.append(AnswerIssue(
                field_id, IssueCode.UNKNOWN_FIELD, f"'{field_id}' is not part of form '{schema.id}'"
            ))

    if issues:
        logger.debug("Form %s: %d answer issues", schema.id, len(issues))
    return issues
