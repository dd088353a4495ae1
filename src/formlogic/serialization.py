"""
Serialization helpers for form and report objects.

Provides lossless JSON/YAML round-trip via an intermediate dict
representation. Values are tagged as {"kind": ..., "value": ...};
datetimes travel as ISO-8601 strings.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

import yaml

from formlogic.model import (
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
from formlogic.values import (
    ABSENT,
    Absent,
    Boolean,
    FileRef,
    FileRefList,
    Number,
    StringList,
    Text,
    Value,
    ValueKind,
    value_of,
)


class SerializationError(Exception):
    """Raised when a dict does not describe a valid object."""
    pass


def value_to_dict(v: Value) -> Dict[str, Any]:
    if isinstance(v, Absent):
        return {"kind": ValueKind.ABSENT.value}
    if isinstance(v, Text):
        return {"kind": v.kind.value, "value": v.value}
    if isinstance(v, Number):
        return {"kind": v.kind.value, "value": v.value}
    if isinstance(v, Boolean):
        return {"kind": v.kind.value, "value": v.value}
    if isinstance(v, StringList):
        return {"kind": v.kind.value, "value": list(v.items)}
    if isinstance(v, FileRefList):
        return {"kind": v.kind.value, "value": [file_ref_to_dict(f) for f in v.files]}
    raise TypeError(f"Unsupported Value type: {type(v)}")


def value_from_dict(d: Dict[str, Any]) -> Value:
    try:
        kind = ValueKind(d["kind"])
    except (KeyError, ValueError, TypeError):
        raise SerializationError(f"Unsupported value dict: {d!r}")
    if kind is ValueKind.ABSENT:
        return ABSENT
    raw = d.get("value")
    try:
        if kind is ValueKind.TEXT:
            return Text(str(raw))
        if kind is ValueKind.NUMBER:
            return Number(float(raw))
        if kind is ValueKind.BOOLEAN:
            return Boolean(_bool_from(raw))
        if kind is ValueKind.STRING_LIST:
            return StringList(tuple(str(i) for i in raw or []))
        return FileRefList(tuple(file_ref_from_dict(f) for f in raw or []))
    except (KeyError, ValueError, TypeError) as e:
        raise SerializationError(f"Invalid {kind.value} value {raw!r}: {e}")


def _bool_from(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    raise ValueError("expected true or false")


def file_ref_to_dict(f: FileRef) -> Dict[str, Any]:
    return {
        "id": f.id,
        "name": f.name,
        "mime_type": f.mime_type,
        "size_bytes": f.size_bytes,
        "url": f.url,
        "uploaded_at": f.uploaded_at,
    }


def file_ref_from_dict(d: Dict[str, Any]) -> FileRef:
    return FileRef(
        id=d["id"],
        name=d.get("name", ""),
        mime_type=d.get("mime_type", ""),
        size_bytes=int(d.get("size_bytes", 0)),
        url=d.get("url", ""),
        uploaded_at=d.get("uploaded_at", ""),
    )


def _dt_to_str(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _dt_from_str(s: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(s) if s else None


def rule_to_dict(r: ConditionalRule) -> Dict[str, Any]:
    value = r.comparison_value if isinstance(r.comparison_value, str) else list(r.comparison_value)
    return {
        "source_field_id": r.source_field_id,
        "operator": r.operator.value,
        "comparison_value": value,
        "target_field_id": r.target_field_id,
    }


def rule_from_dict(d: Dict[str, Any]) -> ConditionalRule:
    value = d["comparison_value"]
    return ConditionalRule(
        source_field_id=d["source_field_id"],
        operator=RuleOperator(d["operator"]),
        comparison_value=value if isinstance(value, str) else list(value),
        target_field_id=d["target_field_id"],
    )


def constraints_to_dict(c: FileConstraints | None) -> Dict[str, Any] | None:
    if c is None:
        return None
    return {"allowed_types": c.allowed_types, "max_size_mb": c.max_size_mb, "multiple": c.multiple}


def constraints_from_dict(d: Dict[str, Any] | None) -> FileConstraints | None:
    if d is None:
        return None
    return FileConstraints(
        allowed_types=d.get("allowed_types", []),
        max_size_mb=d.get("max_size_mb"),
        multiple=d.get("multiple", False),
    )


def field_to_dict(f: Field) -> Dict[str, Any]:
    return {
        "id": f.id,
        "kind": f.kind.value,
        "label": f.label,
        "required": f.required,
        "options": f.options,
        "file_constraints": constraints_to_dict(f.file_constraints),
        "description": f.description,
        "placeholder": f.placeholder,
        "fields": [field_to_dict(c) for c in f.fields],
        "conditional_rules": [rule_to_dict(r) for r in f.conditional_rules],
    }


def field_from_dict(d: Dict[str, Any]) -> Field:
    return Field(
        id=d["id"],
        kind=FieldKind(d["kind"]),
        label=d.get("label", ""),
        required=d.get("required", False),
        options=d.get("options", []),
        file_constraints=constraints_from_dict(d.get("file_constraints")),
        description=d.get("description"),
        placeholder=d.get("placeholder"),
        fields=[field_from_dict(c) for c in d.get("fields", [])],
        conditional_rules=[rule_from_dict(r) for r in d.get("conditional_rules", [])],
    )


def schema_to_dict(s: FormSchema) -> Dict[str, Any]:
    return {
        "id": s.id,
        "title": s.title,
        "description": s.description,
        "fields": [field_to_dict(f) for f in s.fields],
        "status": s.status.value,
        "allow_multiple_responses_per_user": s.allow_multiple_responses_per_user,
        "academic_year_id": s.academic_year_id,
    }


def schema_from_dict(d: Dict[str, Any]) -> FormSchema:
    try:
        return FormSchema(
            id=d["id"],
            title=d.get("title", ""),
            description=d.get("description", ""),
            fields=[field_from_dict(f) for f in d.get("fields", [])],
            status=FormStatus(d.get("status", FormStatus.DRAFT.value)),
            allow_multiple_responses_per_user=d.get("allow_multiple_responses_per_user", False),
            academic_year_id=d.get("academic_year_id"),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise SerializationError(f"Invalid form schema: {e}")


def response_to_dict(r: Response) -> Dict[str, Any]:
    return {
        "id": r.id,
        "form_id": r.form_id,
        "user_id": r.user_id,
        "values": {k: value_to_dict(v) for k, v in r.values.items()},
        "status": r.status.value,
        "created_at": _dt_to_str(r.created_at),
        "last_modified_at": _dt_to_str(r.last_modified_at),
        "submitted_at": _dt_to_str(r.submitted_at),
    }


def response_from_dict(d: Dict[str, Any]) -> Response:
    try:
        return Response(
            id=d["id"],
            form_id=d["form_id"],
            user_id=d["user_id"],
            values={k: value_from_dict(v) for k, v in d.get("values", {}).items()},
            status=ResponseStatus(d.get("status", ResponseStatus.DRAFT.value)),
            created_at=_dt_from_str(d.get("created_at")),
            last_modified_at=_dt_from_str(d.get("last_modified_at")),
            submitted_at=_dt_from_str(d.get("submitted_at")),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise SerializationError(f"Invalid response: {e}")


def filter_to_dict(f: ReportFilter) -> Dict[str, Any]:
    if f.operator is FilterOperator.BETWEEN:
        low, high = f.comparison_value
        value: Any = [value_to_dict(value_of(low)), value_to_dict(value_of(high))]
    else:
        value = value_to_dict(value_of(f.comparison_value))
    return {"field_id": f.field_id, "operator": f.operator.value, "comparison_value": value}


def filter_from_dict(d: Dict[str, Any]) -> ReportFilter:
    op = FilterOperator(d["operator"])
    raw = d["comparison_value"]
    if op is FilterOperator.BETWEEN:
        value: Any = (value_from_dict(raw[0]), value_from_dict(raw[1]))
    else:
        value = value_from_dict(raw)
    return ReportFilter(field_id=d["field_id"], operator=op, comparison_value=value)


def visualization_to_dict(v: ReportVisualization) -> Dict[str, Any]:
    sort = None
    if v.sort_spec is not None:
        sort = {"field_id": v.sort_spec.field_id, "direction": v.sort_spec.direction.value}
    return {
        "id": v.id,
        "chart_kind": v.chart_kind.value,
        "title": v.title,
        "description": v.description,
        "source_form_ids": sorted(v.source_form_ids),
        "selected_fields": v.selected_fields,
        "filters": [filter_to_dict(f) for f in v.filters],
        "group_by_fields": v.group_by_fields,
        "sort_spec": sort,
    }


def visualization_from_dict(d: Dict[str, Any]) -> ReportVisualization:
    sort = d.get("sort_spec")
    return ReportVisualization(
        id=d["id"],
        chart_kind=ChartKind(d["chart_kind"]),
        title=d.get("title", ""),
        description=d.get("description"),
        source_form_ids=set(d.get("source_form_ids", [])),
        selected_fields=d.get("selected_fields", []),
        filters=[filter_from_dict(f) for f in d.get("filters", [])],
        group_by_fields=d.get("group_by_fields"),
        sort_spec=SortSpec(sort["field_id"], SortDirection(sort["direction"])) if sort else None,
    )


def report_to_dict(r: Report) -> Dict[str, Any]:
    return {
        "id": r.id,
        "title": r.title,
        "description": r.description,
        "visualizations": [visualization_to_dict(v) for v in r.visualizations],
        "created_by": r.created_by,
        "academic_year_id": r.academic_year_id,
        "is_public": r.is_public,
    }


def report_from_dict(d: Dict[str, Any]) -> Report:
    try:
        return Report(
            id=d["id"],
            title=d.get("title", ""),
            description=d.get("description", ""),
            visualizations=[visualization_from_dict(v) for v in d.get("visualizations", [])],
            created_by=d.get("created_by", ""),
            academic_year_id=d.get("academic_year_id", ""),
            is_public=d.get("is_public", False),
        )
    except (KeyError, ValueError, TypeError, IndexError) as e:
        raise SerializationError(f"Invalid report: {e}")


def schema_to_json(s: FormSchema) -> str:
    return json.dumps(schema_to_dict(s), sort_keys=True)


def schema_from_json(s: str) -> FormSchema:
    return schema_from_dict(json.loads(s))


def schema_to_yaml(s: FormSchema) -> str:
    return yaml.safe_dump(schema_to_dict(s))


def schema_from_yaml(s: str) -> FormSchema:
    return schema_from_dict(yaml.safe_load(s))


def response_to_json(r: Response) -> str:
    return json.dumps(response_to_dict(r), sort_keys=True)


def response_from_json(s: str) -> Response:
    return response_from_dict(json.loads(s))


def response_to_yaml(r: Response) -> str:
    return yaml.safe_dump(response_to_dict(r))


def response_from_yaml(s: str) -> Response:
    return response_from_dict(yaml.safe_load(s))


def report_to_json(r: Report) -> str:
    return json.dumps(report_to_dict(r), sort_keys=True)


def report_from_json(s: str) -> Report:
    return report_from_dict(json.loads(s))


def report_to_yaml(r: Report) -> str:
    return yaml.safe_dump(report_to_dict(r))


def report_from_yaml(s: str) -> Report:
    return report_from_dict(yaml.safe_load(s))
