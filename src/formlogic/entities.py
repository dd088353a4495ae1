"""
Imported catalogue entities (center types, networks, families, ...).

Rows arrive already parsed as (code, name) pairs; this module only turns
them into Entity records and merges them into an existing collection,
using ``code`` as the deduplication key and keeping the newest record.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entity:
    id: str
    code: str
    name: str
    academic_year_id: str = ""
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _new_id() -> str:
    return str(uuid.uuid4())


def entities_from_rows(
    rows: Iterable[Tuple[str, str]],
    academic_year_id: str,
    now: datetime,
    id_factory: Callable[[], str] = _new_id,
) -> List[Entity]:
    """Build entities from (code, name) rows; blank codes are skipped."""
    out = []
    for code, name in rows:
        code = (code or "").strip()
        if not code:
            continue
        out.append(Entity(
            id=id_factory(),
            code=code,
            name=(name or "").strip(),
            academic_year_id=academic_year_id,
            created_at=now,
            updated_at=now,
        ))
    return out


def merge_entities(existing: Iterable[Entity], imported: Iterable[Entity]) -> List[Entity]:
    """
    Merge two collections keyed by ``code``.

    The record with the newest ``updated_at`` wins; on a tie the one seen
    first is kept. Output follows the order in which codes first appear.
    """
    merged: Dict[str, Entity] = {}
    total = 0
    for entity in list(existing) + list(imported):
        total += 1
        current = merged.get(entity.code)
        if current is None or _newer(entity, current):
            merged[entity.code] = entity
    if total != len(merged):
        logger.info("Merged %d entities into %d unique codes", total, len(merged))
    return list(merged.values())


def _newer(candidate: Entity, current: Entity) -> bool:
    if candidate.updated_at is None:
        return False
    if current.updated_at is None:
        return True
    return candidate.updated_at > current.updated_at


def copy_to_year(
    entities: Iterable[Entity],
    from_year: str,
    to_year: str,
    now: datetime,
    id_factory: Callable[[], str] = _new_id,
) -> List[Entity]:
    """Fresh copies of the ``from_year`` entities, re-scoped to ``to_year``."""
    return [
        replace(e, id=id_factory(), academic_year_id=to_year, created_at=now, updated_at=now)
        for e in entities
        if e.academic_year_id == from_year
    ]
