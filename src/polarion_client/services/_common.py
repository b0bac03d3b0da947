from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from polarion_client.client import PolarionClient
from polarion_client.core.codec import decode_document, decode_resource
from polarion_client.core.errors import PolarionParseError, PolarionValidationError
from polarion_client.core.query import PageResult, page_params
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema


def seg(value: str) -> str:
    """Escape one URL path segment."""
    return quote(str(value), safe="")


def short_id(value: str) -> str:
    """Last path segment of an id, e.g. Proj/WI-1 -> WI-1."""
    return value.rsplit("/", 1)[-1]


def full_id(project_id: str, value: str) -> str:
    """Prefix a bare id with its project, e.g. WI-1 -> Proj/WI-1."""
    if "/" in value:
        return value
    return f"{project_id}/{value}"


def require(value: Optional[str], field: str, message: str) -> str:
    if not value:
        raise PolarionValidationError(field, message)
    return value


def decode_one(schema: ResourceSchema, payload: Mapping[str, Any]) -> Resource:
    data = decode_document(schema, payload)
    if not isinstance(data, Resource):
        raise PolarionParseError(
            f"Expected a single {schema.resource_type} resource in 'data'"
        )
    return data


def decode_many(schema: ResourceSchema, payload: Mapping[str, Any]) -> List[Resource]:
    if not payload:
        return []
    data = decode_document(schema, payload)
    if data is None:
        return []
    if isinstance(data, Resource):
        return [data]
    return data


def decode_page(
    schema: ResourceSchema, payload: Mapping[str, Any], page_number: int
) -> PageResult[Resource]:
    links = payload.get("links") if isinstance(payload.get("links"), dict) else {}
    meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else {}
    total = meta.get("totalCount")
    return PageResult(
        items=decode_many(schema, payload),
        has_next=bool(links.get("next")),
        total_count=total if isinstance(total, int) else None,
        page_number=page_number,
    )


def merge_params(*parts: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for part in parts:
        if part:
            out.update(part)
    return out


def adopt_created(targets: Sequence[Resource], payload: Mapping[str, Any]) -> None:
    """
    Copy server-assigned identity from a create response onto the local
    resources, pairing them by position. Each response item is decoded with
    the schema of the resource it belongs to.
    """
    data = payload.get("data") if payload else None
    if isinstance(data, Mapping):
        data = [data]
    received = len(data) if isinstance(data, list) else 0
    if received != len(targets):
        raise PolarionParseError(
            f"Expected {len(targets)} created resources in 'data', got {received}"
        )
    for target, wire in zip(targets, data):
        created = decode_resource(target.schema, wire)
        target.id = created.id
        target.revision = created.revision
        if created.links:
            target.links = dict(created.links)


async def fetch_all(
    client: PolarionClient,
    url: str,
    schema: ResourceSchema,
    *,
    params: Optional[Dict[str, Any]] = None,
    page_size: Optional[int] = None,
    tool: Optional[str] = None,
) -> List[Resource]:
    """Read every page of a collection, following ``links.next``."""
    items: List[Resource] = []
    page_number = 1
    while True:
        query = merge_params(
            params, page_params(page_size or client.config.page_size, page_number)
        )
        payload = await client.get(url, params=query, tool=tool)
        page = decode_page(schema, payload, page_number)
        items.extend(page.items)
        if not page.has_next:
            break
        page_number += 1
    return items
