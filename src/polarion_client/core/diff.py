"""
Minimal change sets between two states of a resource.

Rules for known attributes:
- an empty modified value (None, "", []) means "not touched" and is skipped;
- CLEAR means "clear it" and is kept only when the baseline holds a value;
- anything else is kept when it differs from the baseline.

Dynamic attributes are kept when the key is new or the value differs under
JSON equality, so ``1`` and ``True`` are different values here.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time
from typing import Any, Dict, Optional

from pydantic_core import to_jsonable_python

from .fields import Relationship
from .resource import CLEAR, AttributeSet, RelationshipSet, Resource
from .schema import is_empty


def _canonical(value: Any) -> str:
    return json.dumps(to_jsonable_python(value), sort_keys=True, separators=(",", ":"))


def _same(a: Any, b: Any) -> bool:
    if a is CLEAR or b is CLEAR:
        return a is b
    if isinstance(a, (datetime, date, time)) or isinstance(b, (datetime, date, time)):
        # instants compare by value, not by rendering (offsets may differ)
        return type(a) is type(b) and a == b
    return _canonical(a) == _canonical(b)


def _changed(baseline: Any, modified: Any) -> bool:
    if modified is CLEAR:
        return baseline is not CLEAR and not is_empty(baseline)
    if is_empty(modified):
        return False
    return baseline is None or not _same(baseline, modified)


def diff(
    baseline: Optional[AttributeSet], modified: AttributeSet
) -> Optional[AttributeSet]:
    """Return a sparse AttributeSet of the changed fields, or None."""
    base_known: Dict[str, Any] = baseline.known if baseline is not None else {}
    base_dynamic: Dict[str, Any] = baseline.dynamic if baseline is not None else {}

    changes = AttributeSet(modified.schema)
    for name, value in modified.known.items():
        if _changed(base_known.get(name), value):
            changes.known[name] = value

    for name, value in modified.dynamic.items():
        if value is CLEAR:
            if _changed(base_dynamic.get(name), value):
                changes.dynamic[name] = value
        elif name not in base_dynamic or not _same(base_dynamic[name], value):
            changes.dynamic[name] = value

    if not changes.known and not changes.dynamic:
        return None
    return changes


def equals(a: Optional[AttributeSet], b: Optional[AttributeSet]) -> bool:
    if a is None or b is None:
        return a is b
    return diff(a, b) is None


def _same_relationship(a: Relationship, b: Relationship) -> bool:
    return a.to_many == b.to_many and a.refs == b.refs


def diff_relationships(
    baseline: Optional[RelationshipSet], modified: Optional[RelationshipSet]
) -> Optional[RelationshipSet]:
    """Same rules as diff(); a relationship without references counts as empty."""
    if modified is None:
        return None
    changes = RelationshipSet(modified.schema)
    for partition, target in (
        (modified.known, changes.known),
        (modified.dynamic, changes.dynamic),
    ):
        for name, rel in partition.items():
            if not rel.refs:
                continue
            before = baseline.get(name) if baseline is not None else None
            if before is None or not _same_relationship(before, rel):
                target[name] = rel
    if not changes.known and not changes.dynamic:
        return None
    return changes


def diff_resources(baseline: Resource, modified: Resource) -> Optional[Resource]:
    """
    Sparse update resource carrying the modified identity and only the
    changed attributes and relationships; None when nothing changed.
    """
    attrs = diff(baseline.attributes, modified.attributes)
    rels = diff_relationships(baseline.relationships, modified.relationships)
    if attrs is None and rels is None:
        return None
    return Resource(
        type=modified.type,
        id=modified.id,
        attributes=attrs if attrs is not None else AttributeSet(modified.schema),
        relationships=rels,
    )


__all__ = ["diff", "equals", "diff_relationships", "diff_resources"]
