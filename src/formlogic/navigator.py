"""
Conditional Navigator

A state machine over positions in the flattened field sequence.

    position 0 .. n-1   a field to present
    position n          terminal: the form is complete

Moving forward from position i evaluates the conditional rules attached
to the field at i, in declaration order. The first rule that matches
decides the next position; when none match, the next position is i + 1.

Moving backward never evaluates rules: it returns to wherever the
respondent came from, so revisiting answered sections never redirects.

Navigation is a pure function of (schema, values). The renderer can
recompute it from scratch on every change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from formlogic.model import END_OF_FORM, ConditionalRule, Field, FormSchema, RuleOperator
from formlogic.schema import flatten_fields
from formlogic.values import (
    ABSENT,
    Absent,
    Number,
    StringList,
    Text,
    Value,
    canonical,
    string_items,
    values_equal,
)

logger = logging.getLogger(__name__)


def rule_matches(rule: ConditionalRule, values: Mapping[str, Value]) -> bool:
    """
    Evaluate one rule's condition against the current answers.

    equals / not_equals:
        StringList answer vs list    -> set equality
        StringList answer vs string  -> membership
        Number answer                -> numerically equal to any compared string
        any other answer             -> canonical form is one of the compared strings
    contains / not_contains:
        StringList answer -> every compared string is selected
        Text answer       -> every compared string is a substring

    Absent never equals anything and never contains anything. Kinds that
    cannot hold members (Number, Boolean, files) match neither contains
    nor not_contains.
    """
    value = values.get(rule.source_field_id, ABSENT)
    expected = string_items(rule.comparison_value)

    if rule.operator in (RuleOperator.EQUALS, RuleOperator.NOT_EQUALS):
        equal = _rule_equals(value, rule.comparison_value, expected)
        return equal if rule.operator is RuleOperator.EQUALS else not equal

    contained = _rule_contains(value, expected)
    if contained is None:
        return False
    return contained if rule.operator is RuleOperator.CONTAINS else not contained


def _rule_equals(value: Value, raw, expected: Tuple[str, ...]) -> bool:
    if isinstance(value, Absent):
        return False
    if isinstance(value, StringList):
        if isinstance(raw, str):
            return raw in value.items
        return set(value.items) == set(expected)
    if isinstance(value, Number):
        return any(values_equal(value, Text(item)) for item in expected)
    return canonical(value) in expected


def _rule_contains(value: Value, expected: Tuple[str, ...]) -> Optional[bool]:
    if isinstance(value, Absent):
        return False
    if isinstance(value, StringList):
        return all(e in value.items for e in expected)
    if isinstance(value, Text):
        return all(e in value.value for e in expected)
    return None


@dataclass(frozen=True)
class NavigationState:
    """
    Immutable navigation snapshot.

    Properties:
        position: Index into the flattened fields (len == terminal)
        history: Positions visited before this one, oldest first
    """

    position: int = 0
    history: Tuple[int, ...] = ()


class Navigator:
    """
    Computes forward and backward moves through one schema.

    The schema is flattened once on construction. The schema is assumed
    to have passed validate(); a dangling target met anyway is logged and
    treated as sequential fallthrough.
    """

    def __init__(self, schema: FormSchema):
        self.schema = schema
        self.fields: List[Field] = list(flatten_fields(schema))
        self._positions: Dict[str, int] = {f.id: i for i, f in enumerate(self.fields)}

    @property
    def terminal(self) -> int:
        return len(self.fields)

    def is_complete(self, position: int) -> bool:
        return position >= self.terminal

    def field_at(self, position: int) -> Optional[Field]:
        if 0 <= position < self.terminal:
            return self.fields[position]
        return None

    def position_of(self, field_id: str) -> Optional[int]:
        return self._positions.get(field_id)

    def start(self) -> NavigationState:
        return NavigationState()

    def next_position(self, position: int, values: Mapping[str, Value]) -> int:
        """
        Position to present after the field at ``position`` is answered.

        The terminal position maps to itself.
        """
        current = self.field_at(position)
        if current is None:
            return self.terminal

        for rule in current.conditional_rules:
            if not rule_matches(rule, values):
                continue
            if rule.target_field_id == END_OF_FORM:
                return self.terminal
            target = self._positions.get(rule.target_field_id)
            if target is None:
                logger.warning(
                    "Rule on '%s' targets unknown field '%s'; continuing sequentially",
                    current.id,
                    rule.target_field_id,
                )
                return position + 1
            return target

        return position + 1

    def advance(self, state: NavigationState, values: Mapping[str, Value]) -> NavigationState:
        """Move forward, recording the current position in history."""
        if self.is_complete(state.position):
            return state
        nxt = self.next_position(state.position, values)
        return NavigationState(position=nxt, history=state.history + (state.position,))

    def back(self, state: NavigationState) -> NavigationState:
        """Return to the previously visited position without evaluating rules."""
        if not state.history:
            return state
        return NavigationState(position=state.history[-1], history=state.history[:-1])

    def path(self, values: Mapping[str, Value]) -> List[str]:
        """
        Field ids visited by advancing repeatedly from the start.

        Stops at the terminal state, or when a backward jump would loop.
        """
        visited: List[str] = []
        seen = set()
        position = self.start().position
        while not self.is_complete(position):
            if position in seen:
                logger.warning(
                    "Navigation loop at '%s' in form '%s'",
                    self.fields[position].id,
                    self.schema.id,
                )
                break
            seen.add(position)
            visited.append(self.fields[position].id)
            position = self.next_position(position, values)
        return visited


@dataclass
class Page:
    """
    One screen of the form.

    Properties:
        title: Section label, or "General" for standalone fields
        fields: Fields presented together
        section_id: Id of the Section this page shows, if any
    """

    title: str
    fields: List[Field]
    section_id: Optional[str] = None


def paginate(schema: FormSchema, default_title: str = "General") -> List[Page]:
    """
    Group top-level fields into pages.

    Each Section opens a new page holding its children. A standalone
    field joins the page opened before it; standalone fields ahead of
    the first Section share a page titled ``default_title``.
    """
    pages: List[Page] = []
    for f in schema.fields:
        if f.is_section:
            pages.append(Page(title=f.label, fields=list(f.fields), section_id=f.id))
        elif pages:
            pages[-1].fields.append(f)
        else:
            pages.append(Page(title=default_title, fields=[f]))
    return pages


def next_page(pages: List[Page], index: int) -> int:
    return min(len(pages) - 1, index + 1) if pages else 0


def previous_page(pages: List[Page], index: int) -> int:
    return max(0, index - 1)
