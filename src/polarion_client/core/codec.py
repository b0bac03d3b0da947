"""
JSON:API codec for resources with known and dynamic fields.

Wire shape of one resource:

    {"type": "workitems", "id": "Proj/WI-1", "revision": "42",
     "attributes": {"title": "Foo", "priority": "high"},
     "relationships": {"author": {"data": {"type": "users", "id": "alice"}}},
     "links": {...}, "meta": {...}}

Attribute keys named by the schema are decoded by their FieldKind; every
other key is copied as-is into the dynamic bag. Encoding writes the known
fields first (skipping empty ones) and merges the dynamic bag at the same
level. A dynamic key that shadows a known one is rejected rather than dropped.
All functions here are pure.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from .errors import EncodingAmbiguityError, PolarionDecodeError, PolarionParseError
from .fields import Reference, Relationship
from .resource import CLEAR, AttributeSet, RelationshipSet, Resource
from .schema import ResourceSchema, is_empty


def _to_wire(value: Any) -> Any:
    if value is CLEAR:
        return None
    return to_jsonable_python(value)


# --- attributes ---


def decode_attributes(
    schema: ResourceSchema, wire: Optional[Mapping[str, Any]]
) -> AttributeSet:
    attrs = AttributeSet(schema)
    for key, raw in (wire or {}).items():
        spec = schema.attribute(key)
        if spec is None:
            attrs.dynamic[key] = raw
            continue
        value = spec.decode(raw)
        if value is not None:
            attrs.known[key] = value
    return attrs


def encode_attributes(
    attrs: AttributeSet, *, exclude_read_only: bool = False
) -> Dict[str, Any]:
    schema = attrs.schema
    out: Dict[str, Any] = {}

    # Emit in schema order so payloads are stable.
    for spec in schema.attributes:
        if spec.name not in attrs.known:
            continue
        if exclude_read_only and spec.read_only:
            continue
        value = attrs.known[spec.name]
        if value is CLEAR:
            out[spec.name] = None
        elif not is_empty(value):
            out[spec.name] = spec.encode(value)

    for key, value in attrs.dynamic.items():
        if schema.attribute(key) is not None:
            raise EncodingAmbiguityError(key, schema.resource_type)
        out[key] = _to_wire(value)
    return out


# --- relationships ---


def _decode_relationship(name: str, raw: Any) -> Relationship:
    if not isinstance(raw, Mapping):
        raise PolarionDecodeError(name, f"expected object, got {type(raw).__name__}")
    has_data = "data" in raw
    data = raw.get("data")
    try:
        if data is None:
            refs: List[Reference] = []
            to_many = False
        elif isinstance(data, list):
            refs = [Reference.model_validate(item) for item in data]
            to_many = True
        else:
            refs = [Reference.model_validate(data)]
            to_many = False
    except ValidationError as exc:
        raise PolarionDecodeError(name, str(exc)) from exc
    return Relationship(
        refs=refs,
        to_many=to_many,
        has_data=has_data,
        links=raw.get("links"),
        meta=raw.get("meta"),
    )


def _encode_relationship(rel: Relationship, *, with_links: bool) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if rel.has_data:
        refs = [{"type": r.type, "id": r.id} for r in rel.refs]
        out["data"] = refs if rel.to_many else (refs[0] if refs else None)
    if with_links:
        if rel.links is not None:
            out["links"] = rel.links
        if rel.meta is not None:
            out["meta"] = rel.meta
    return out


def decode_relationships(
    schema: ResourceSchema, wire: Optional[Mapping[str, Any]]
) -> RelationshipSet:
    rels = RelationshipSet(schema)
    for key, raw in (wire or {}).items():
        target = rels.known if schema.relationship(key) is not None else rels.dynamic
        target[key] = _decode_relationship(key, raw)
    return rels


def encode_relationships(
    rels: RelationshipSet, *, exclude_read_only: bool = False
) -> Dict[str, Any]:
    schema = rels.schema
    out: Dict[str, Any] = {}
    # links-only relationships carry nothing to write; sending data: null
    # in a PATCH would clear them
    for key, rel in rels.known.items():
        spec = schema.relationship(key)
        if exclude_read_only and not rel.has_data:
            continue
        if exclude_read_only and spec is not None and spec.read_only:
            continue
        out[key] = _encode_relationship(rel, with_links=not exclude_read_only)
    for key, rel in rels.dynamic.items():
        if schema.relationship(key) is not None:
            raise EncodingAmbiguityError(key, schema.resource_type)
        if exclude_read_only and not rel.has_data:
            continue
        out[key] = _encode_relationship(rel, with_links=not exclude_read_only)
    return out


# --- resources and documents ---


def decode_resource(schema: ResourceSchema, wire: Mapping[str, Any]) -> Resource:
    if not isinstance(wire, Mapping):
        raise PolarionParseError(
            f"Expected resource object, got {type(wire).__name__}"
        )
    raw_rels = wire.get("relationships")
    return Resource(
        type=str(wire.get("type") or schema.resource_type),
        id=wire.get("id") or None,
        revision=wire.get("revision") or None,
        attributes=decode_attributes(schema, wire.get("attributes")),
        relationships=(
            decode_relationships(schema, raw_rels) if raw_rels is not None else None
        ),
        links=dict(wire.get("links") or {}),
        meta=dict(wire.get("meta") or {}),
    )


def encode_resource(
    resource: Resource, *, exclude_read_only: bool = False
) -> Dict[str, Any]:
    """
    Wire object for one resource.

    With exclude_read_only the payload is shaped for PATCH: read-only
    attributes, revision, links and meta are left out.
    """
    out: Dict[str, Any] = {"type": resource.type}
    if resource.id:
        out["id"] = resource.id
    if resource.revision and not exclude_read_only:
        out["revision"] = resource.revision
    attrs = encode_attributes(resource.attributes, exclude_read_only=exclude_read_only)
    if attrs:
        out["attributes"] = attrs
    if resource.relationships is not None:
        rels = encode_relationships(
            resource.relationships, exclude_read_only=exclude_read_only
        )
        if rels:
            out["relationships"] = rels
    if not exclude_read_only:
        if resource.links:
            out["links"] = resource.links
        if resource.meta:
            out["meta"] = resource.meta
    return out


def decode_document(
    schema: ResourceSchema, body: Mapping[str, Any]
) -> Union[Resource, List[Resource], None]:
    """Decode the ``data`` member of a response: one resource, a list, or None."""
    if "data" not in body:
        raise PolarionParseError("Response document has no 'data' member")
    data = body["data"]
    if data is None:
        return None
    if isinstance(data, list):
        return [decode_resource(schema, item) for item in data]
    return decode_resource(schema, data)


def encode_document(
    data: Union[Resource, Sequence[Resource]], *, exclude_read_only: bool = False
) -> Dict[str, Any]:
    if isinstance(data, Resource):
        return {"data": encode_resource(data, exclude_read_only=exclude_read_only)}
    return {
        "data": [
            encode_resource(item, exclude_read_only=exclude_read_only) for item in data
        ]
    }


def dumps(obj: Any) -> bytes:
    """Compact UTF-8 JSON, exactly as sent on the wire."""
    return json.dumps(
        obj, separators=(",", ":"), ensure_ascii=False, default=to_jsonable_python
    ).encode("utf-8")


def encoded_size(resource: Resource) -> int:
    return len(dumps(encode_resource(resource)))


__all__ = [
    "decode_attributes",
    "encode_attributes",
    "decode_relationships",
    "encode_relationships",
    "decode_resource",
    "encode_resource",
    "decode_document",
    "encode_document",
    "dumps",
    "encoded_size",
]
