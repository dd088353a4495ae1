"""
Value Model for form answers

Every answer stored in a Response is one of a closed set of tagged
variants. Consumers match on the variant (or on ``value.kind``) instead
of guessing at the shape of a raw Python object.

Variants:
    - Text          (free text, dates, single choice)
    - Number        (numeric answers)
    - Boolean       (single checkbox)
    - StringList    (multi-select checkbox)
    - FileRefList   (uploaded file metadata)
    - Absent        (no answer)

ARCHITECTURAL RULE:
    Value objects are immutable (frozen=True).
    They carry data only. Comparison policies for filtering, grouping
    and sorting live in the modules that need them.
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterable, Optional, Tuple


class ValueKind(Enum):
    """
    Discriminator for Value variants.

    Declaration order is the fixed cross-kind sort order:
        Absent < Number < Boolean < Text < StringList < FileRefList
    """

    ABSENT = "absent"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"
    STRING_LIST = "string_list"
    FILE_REF_LIST = "file_ref_list"


KIND_RANK = {kind: rank for rank, kind in enumerate(ValueKind)}


class TypeMismatch(Exception):
    """Raised when an operator cannot be applied to a value kind."""

    def __init__(self, message: str, kind: Optional[ValueKind] = None):
        super().__init__(message)
        self.kind = kind


class Value(ABC):
    """
    Base class for all answer values.

    Subclasses declare ``kind`` as a class-level discriminator.
    """

    kind: ClassVar[ValueKind]


@dataclass(frozen=True)
class Absent(Value):
    """The field has no answer. Never an error."""

    kind: ClassVar[ValueKind] = ValueKind.ABSENT


ABSENT = Absent()


@dataclass(frozen=True)
class Text(Value):
    value: str
    kind: ClassVar[ValueKind] = ValueKind.TEXT


@dataclass(frozen=True)
class Number(Value):
    value: float
    kind: ClassVar[ValueKind] = ValueKind.NUMBER


@dataclass(frozen=True)
class Boolean(Value):
    value: bool
    kind: ClassVar[ValueKind] = ValueKind.BOOLEAN


@dataclass(frozen=True)
class StringList(Value):
    """
    Multi-select answer.

    Semantically a set, but stored in insertion order so checkbox
    rendering stays stable.
    """

    items: Tuple[str, ...] = ()
    kind: ClassVar[ValueKind] = ValueKind.STRING_LIST

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class FileRef:
    """Metadata for one uploaded file. The bytes live elsewhere."""

    id: str
    name: str
    mime_type: str
    size_bytes: int
    url: str
    uploaded_at: str


@dataclass(frozen=True)
class FileRefList(Value):
    files: Tuple[FileRef, ...] = field(default_factory=tuple)
    kind: ClassVar[ValueKind] = ValueKind.FILE_REF_LIST

    def __post_init__(self):
        object.__setattr__(self, "files", tuple(self.files))


def value_of(raw: Any) -> Value:
    """
    Wrap a plain Python object in the matching Value variant.

    None -> Absent, bool -> Boolean, int/float -> Number, str -> Text,
    list of str -> StringList, list of FileRef -> FileRefList.
    Existing Value instances are returned unchanged.
    """
    if isinstance(raw, Value):
        return raw
    if raw is None:
        return ABSENT
    # bool is a subclass of int, check it first
    if isinstance(raw, bool):
        return Boolean(raw)
    if isinstance(raw, (int, float)):
        return Number(float(raw))
    if isinstance(raw, str):
        return Text(raw)
    if isinstance(raw, (list, tuple)):
        items = list(raw)
        if items and all(isinstance(i, FileRef) for i in items):
            return FileRefList(tuple(items))
        if all(isinstance(i, str) for i in items):
            return StringList(tuple(items))
    raise TypeError(f"Cannot convert {type(raw).__name__} to a Value")


def as_number(value: Value) -> float:
    """
    Coerce a value to a float for numeric comparison.

    Number is used directly; Text is accepted when it parses as a number.
    Everything else raises TypeMismatch.
    """
    if isinstance(value, Number):
        return float(value.value)
    if isinstance(value, Text):
        try:
            return float(value.value.strip())
        except ValueError:
            raise TypeMismatch(f"Text {value.value!r} is not numeric", value.kind)
    raise TypeMismatch(f"{value.kind.value} cannot be compared numerically", value.kind)


def _format_number(n: float) -> str:
    if n.is_integer():
        return str(int(n))
    return repr(n)


def canonical(value: Value) -> str:
    """
    Render a value to its canonical string form.

    StringList renders its items sorted, since order carries no meaning.
    Absent renders as an empty string; callers that must tell Absent
    apart from empty text check ``kind`` first.
    """
    if isinstance(value, Text):
        return value.value
    if isinstance(value, Number):
        return _format_number(float(value.value))
    if isinstance(value, Boolean):
        return "true" if value.value else "false"
    if isinstance(value, StringList):
        return ",".join(sorted(value.items))
    if isinstance(value, FileRefList):
        return ",".join(f.id for f in value.files)
    if isinstance(value, Absent):
        return ""
    raise TypeError(f"Unsupported Value type: {type(value)}")


def values_equal(left: Value, right: Value) -> bool:
    """
    Kind-aware equality.

    Absent only equals Absent. Two StringLists are equal as sets.
    A StringList against a single Text, on either side, is membership.
    Number and numeric Text compare numerically.
    """
    if isinstance(left, Absent) or isinstance(right, Absent):
        return isinstance(left, Absent) and isinstance(right, Absent)
    if isinstance(left, StringList) and isinstance(right, StringList):
        return set(left.items) == set(right.items)
    if isinstance(left, StringList) and isinstance(right, Text):
        return right.value in left.items
    if isinstance(left, Text) and isinstance(right, StringList):
        return left.value in right.items
    if isinstance(left, Number) or isinstance(right, Number):
        try:
            return as_number(left) == as_number(right)
        except TypeMismatch:
            return False
    if left.kind is not right.kind:
        return False
    return left == right


def is_empty(value: Value) -> bool:
    """True for Absent, blank Text and empty lists."""
    if isinstance(value, Absent):
        return True
    if isinstance(value, Text):
        return not value.value.strip()
    if isinstance(value, StringList):
        return len(value.items) == 0
    if isinstance(value, FileRefList):
        return len(value.files) == 0
    return False


def string_items(values: Iterable[str]) -> Tuple[str, ...]:
    """Normalise a rule comparison value (str or list of str) to a tuple."""
    if isinstance(values, str):
        return (values,)
    return tuple(values)
