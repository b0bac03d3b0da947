"""
Known-field tables for resource types.

A ResourceSchema lists the attribute and relationship names a resource type
declares statically. The codec routes every wire key through it: names in the
table are decoded by their FieldKind, everything else lands in the dynamic bag.
Schemas are plain data, built once per resource type and passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python

from .errors import PolarionDecodeError
from .fields import (
    FieldKind,
    Hyperlink,
    TableField,
    TextContent,
    format_duration,
    parse_duration,
)

_ADAPTERS: Dict[FieldKind, TypeAdapter] = {
    FieldKind.TEXT: TypeAdapter(TextContent),
    FieldKind.TEXT_HTML: TypeAdapter(TextContent),
    FieldKind.DATE_TIME: TypeAdapter(datetime),
    FieldKind.DATE: TypeAdapter(date),
    FieldKind.TIME: TypeAdapter(time),
    FieldKind.HYPERLINKS: TypeAdapter(List[Hyperlink]),
    FieldKind.TABLE: TypeAdapter(TableField),
}


def is_empty(value: Any) -> bool:
    """None, "" and empty containers count as "not set". False and 0 do not."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)) and not value:
        return True
    return False


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: FieldKind = FieldKind.STRING
    read_only: bool = False

    @property
    def structured(self) -> bool:
        return self.kind in _ADAPTERS or self.kind is FieldKind.DURATION

    def decode(self, raw: Any) -> Any:
        if raw is None:
            return None
        if self.kind is FieldKind.DURATION:
            if isinstance(raw, timedelta):
                return raw
            try:
                return parse_duration(str(raw))
            except ValueError as exc:
                raise PolarionDecodeError(self.name, str(exc)) from exc
        adapter = _ADAPTERS.get(self.kind)
        if adapter is None:
            return raw
        try:
            return adapter.validate_python(raw)
        except ValidationError as exc:
            raise PolarionDecodeError(self.name, str(exc)) from exc

    def encode(self, value: Any) -> Any:
        if value is None:
            return None
        if self.kind is FieldKind.DURATION and isinstance(value, timedelta):
            return format_duration(value)
        adapter = _ADAPTERS.get(self.kind)
        if adapter is not None:
            return adapter.dump_python(adapter.validate_python(value), mode="json")
        return to_jsonable_python(value)


def attr(name: str, kind: FieldKind = FieldKind.STRING, *, read_only: bool = False):
    return FieldSpec(name=name, kind=kind, read_only=read_only)


def rel(name: str, *, read_only: bool = False):
    return FieldSpec(name=name, kind=FieldKind.RELATIONSHIP, read_only=read_only)


@dataclass(frozen=True)
class ResourceSchema:
    resource_type: str
    attributes: Tuple[FieldSpec, ...] = ()
    relationships: Tuple[FieldSpec, ...] = ()

    _attribute_map: Mapping[str, FieldSpec] = field(
        init=False, repr=False, compare=False
    )
    _relationship_map: Mapping[str, FieldSpec] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "relationships", tuple(self.relationships))
        object.__setattr__(
            self, "_attribute_map", _index(self.resource_type, self.attributes)
        )
        object.__setattr__(
            self, "_relationship_map", _index(self.resource_type, self.relationships)
        )

    @property
    def attribute_names(self) -> FrozenSet[str]:
        return frozenset(self._attribute_map)

    @property
    def relationship_names(self) -> FrozenSet[str]:
        return frozenset(self._relationship_map)

    def attribute(self, name: str) -> Optional[FieldSpec]:
        return self._attribute_map.get(name)

    def relationship(self, name: str) -> Optional[FieldSpec]:
        return self._relationship_map.get(name)

    def extend(
        self,
        *,
        attributes: Iterable[FieldSpec] = (),
        relationships: Iterable[FieldSpec] = (),
    ) -> "ResourceSchema":
        """Return a copy that also knows the given fields."""
        return ResourceSchema(
            resource_type=self.resource_type,
            attributes=self.attributes + tuple(attributes),
            relationships=self.relationships + tuple(relationships),
        )


def _index(resource_type: str, specs: Tuple[FieldSpec, ...]) -> Dict[str, FieldSpec]:
    index: Dict[str, FieldSpec] = {}
    for spec in specs:
        if spec.name in index:
            raise ValueError(
                f"Duplicate field '{spec.name}' in schema for {resource_type}"
            )
        index[spec.name] = spec
    return index


__all__ = ["FieldSpec", "ResourceSchema", "attr", "rel", "is_empty"]
