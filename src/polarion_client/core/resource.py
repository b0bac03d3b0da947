from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from .custom_fields import CustomFields
from .fields import Reference, Relationship
from .schema import ResourceSchema


class _Clear:
    """Marker for "explicitly clear this field" in updates."""

    _instance: Optional["_Clear"] = None

    def __new__(cls) -> "_Clear":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLEAR"

    def __copy__(self) -> "_Clear":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_Clear":
        return self

    def __reduce__(self) -> str:
        return "CLEAR"


CLEAR = _Clear()


@dataclass
class AttributeSet:
    """
    Attributes of one resource, split into the schema's known fields and a
    dynamic bag of everything else. A name lives in at most one partition.
    """

    schema: ResourceSchema
    known: Dict[str, Any] = field(default_factory=dict)
    dynamic: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        if name in self.known:
            return self.known[name]
        return self.dynamic.get(name, default)

    def set(self, name: str, value: Any) -> None:
        spec = self.schema.attribute(name)
        if spec is None:
            self.dynamic[name] = value
            return
        self.dynamic.pop(name, None)
        if value is None:
            self.known.pop(name, None)
        elif value is CLEAR:
            self.known[name] = CLEAR
        else:
            self.known[name] = spec.decode(value)

    def delete(self, name: str) -> None:
        self.known.pop(name, None)
        self.dynamic.pop(name, None)

    def set_custom(self, name: str, value: Any) -> None:
        self.dynamic[name] = value

    def get_custom(self, name: str, default: Any = None) -> Any:
        return self.dynamic.get(name, default)

    def has_custom(self, name: str) -> bool:
        return name in self.dynamic

    @property
    def custom(self) -> CustomFields:
        """Typed accessors over the dynamic bag (shares the same dict)."""
        return CustomFields(self.dynamic)

    def __getitem__(self, name: str) -> Any:
        if name in self.known:
            return self.known[name]
        return self.dynamic[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self.known or name in self.dynamic

    def __iter__(self) -> Iterator[str]:
        yield from self.known
        yield from self.dynamic

    def __len__(self) -> int:
        return len(self.known) + len(self.dynamic)

    def copy(self) -> "AttributeSet":
        return AttributeSet(
            schema=self.schema,
            known=copy.deepcopy(self.known),
            dynamic=copy.deepcopy(self.dynamic),
        )


RelationshipInput = Union[Relationship, Reference, Sequence[Reference], None]


def as_relationship(value: RelationshipInput) -> Optional[Relationship]:
    if value is None or isinstance(value, Relationship):
        return value
    if isinstance(value, Reference):
        return Relationship(refs=[value], to_many=False)
    return Relationship(refs=list(value), to_many=True)


@dataclass
class RelationshipSet:
    """Same split as AttributeSet, for reference-typed fields."""

    schema: ResourceSchema
    known: Dict[str, Relationship] = field(default_factory=dict)
    dynamic: Dict[str, Relationship] = field(default_factory=dict)

    def get(self, name: str) -> Optional[Relationship]:
        if name in self.known:
            return self.known[name]
        return self.dynamic.get(name)

    def set(self, name: str, value: RelationshipInput) -> None:
        target = self.known if self.schema.relationship(name) else self.dynamic
        other = self.dynamic if target is self.known else self.known
        other.pop(name, None)
        rel = as_relationship(value)
        if rel is None:
            target.pop(name, None)
        else:
            target[name] = rel

    def refs(self, name: str) -> List[Reference]:
        rel = self.get(name)
        return list(rel.refs) if rel is not None else []

    def __contains__(self, name: object) -> bool:
        return name in self.known or name in self.dynamic

    def __iter__(self) -> Iterator[str]:
        yield from self.known
        yield from self.dynamic

    def __len__(self) -> int:
        return len(self.known) + len(self.dynamic)

    def copy(self) -> "RelationshipSet":
        # Relationship values are frozen models; shallow dict copies suffice.
        return RelationshipSet(
            schema=self.schema, known=dict(self.known), dynamic=dict(self.dynamic)
        )


@dataclass
class Resource:
    type: str
    attributes: AttributeSet
    id: Optional[str] = None
    revision: Optional[str] = None
    relationships: Optional[RelationshipSet] = None
    links: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls, schema: ResourceSchema, *, id: Optional[str] = None, **attributes: Any
    ) -> "Resource":
        attrs = AttributeSet(schema)
        for name, value in attributes.items():
            attrs.set(name, value)
        return cls(type=schema.resource_type, attributes=attrs, id=id)

    @property
    def schema(self) -> ResourceSchema:
        return self.attributes.schema

    @property
    def short_id(self) -> Optional[str]:
        """Last path segment of the id ("Proj/WI-1" -> "WI-1")."""
        if not self.id:
            return None
        return self.id.rsplit("/", 1)[-1]

    def ensure_relationships(self) -> RelationshipSet:
        if self.relationships is None:
            self.relationships = RelationshipSet(self.schema)
        return self.relationships

    def copy(self) -> "Resource":
        return Resource(
            type=self.type,
            attributes=self.attributes.copy(),
            id=self.id,
            revision=self.revision,
            relationships=(
                self.relationships.copy() if self.relationships is not None else None
            ),
            links=copy.deepcopy(self.links),
            meta=copy.deepcopy(self.meta),
        )


__all__ = [
    "CLEAR",
    "AttributeSet",
    "RelationshipSet",
    "Resource",
    "as_relationship",
]
