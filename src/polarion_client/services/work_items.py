from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from polarion_client.client import PolarionClient
from polarion_client.core.batching import plan_batches
from polarion_client.core.codec import encode_document, encode_resource
from polarion_client.core.diff import diff_resources, equals
from polarion_client.core.errors import (
    OversizedItemError,
    PolarionClientError,
    PolarionHTTPError,
    PolarionValidationError,
)
from polarion_client.core.fields import FieldKind, Reference
from polarion_client.core.observability import log_event
from polarion_client.core.query import (
    FIELDS_ALL,
    FieldSelector,
    PageResult,
    page_params,
)
from polarion_client.core.resource import CLEAR, Resource
from polarion_client.core.schema import ResourceSchema, attr, is_empty, rel
from polarion_client.services._common import (
    adopt_created,
    decode_one,
    decode_page,
    full_id,
    merge_params,
    require,
    seg,
    short_id,
)

log = logging.getLogger("polarion_client.services.work_items")

WORK_ITEM_TYPE = "workitems"

# Standard work item fields; project custom fields stay in the dynamic bag.
WORK_ITEM_SCHEMA = ResourceSchema(
    resource_type=WORK_ITEM_TYPE,
    attributes=(
        attr("type", read_only=True),
        attr("created", FieldKind.DATE_TIME, read_only=True),
        attr("updated", FieldKind.DATE_TIME, read_only=True),
        attr("resolvedOn", FieldKind.DATE_TIME, read_only=True),
        attr("title"),
        attr("description", FieldKind.TEXT),
        attr("status", FieldKind.ENUMERATION),
        attr("resolution", FieldKind.ENUMERATION),
        attr("priority", FieldKind.ENUMERATION),
        attr("severity", FieldKind.ENUMERATION),
        attr("dueDate", FieldKind.DATE),
        attr("plannedStart", FieldKind.DATE_TIME),
        attr("plannedEnd", FieldKind.DATE_TIME),
        # kept as strings: the server accepts several estimate notations
        attr("initialEstimate"),
        attr("remainingEstimate"),
        attr("timeSpent"),
        attr("outlineNumber"),
        attr("hyperlinks", FieldKind.HYPERLINKS),
    ),
    relationships=(
        rel("assignee"),
        rel("author", read_only=True),
        rel("categories"),
        rel("linkedWorkItems"),
        rel("attachments", read_only=True),
        rel("comments", read_only=True),
        rel("externallyLinkedWorkItems"),
        rel("linkedOslcResources"),
        rel("module", read_only=True),
        rel("plan"),
        rel("project", read_only=True),
        rel("votes"),
        rel("watches"),
        rel("workRecords", read_only=True),
        rel("approvals", read_only=True),
    ),
)


def _collection_url(project_id: str) -> str:
    return f"/projects/{seg(project_id)}/workitems"


def _item_url(project_id: str, work_item_id: str) -> str:
    return f"{_collection_url(project_id)}/{seg(short_id(work_item_id))}"


def _relationship_url(project_id: str, work_item_id: str, relationship: str) -> str:
    return (
        f"{_item_url(project_id, work_item_id)}/relationships/{seg(relationship)}"
    )


def new_work_item(
    title: str,
    *,
    type: Optional[str] = None,
    schema: ResourceSchema = WORK_ITEM_SCHEMA,
    **attributes: Any,
) -> Resource:
    """
    Build a local, not yet created work item.
    Keyword arguments are attribute wire names; unknown names become custom
    fields.
    """
    item = Resource.new(schema, title=title, **attributes)
    if type:
        item.attributes.set("type", type)
    return item


def _validate(item: Resource, index: int) -> None:
    if not isinstance(item, Resource):
        raise PolarionValidationError("item", f"item {index} is not a Resource")
    title = item.attributes.get("title")
    if title is CLEAR or is_empty(title):
        raise PolarionValidationError(
            "title", f"item {index}: work item title is required"
        )
    if not item.type:
        item.type = WORK_ITEM_TYPE


async def get_work_item(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    *,
    fields: Optional[FieldSelector] = None,
    revision: Optional[str] = None,
    schema: ResourceSchema = WORK_ITEM_SCHEMA,
) -> Resource:
    params = merge_params(
        fields.to_params() if fields else None,
        {"revision": revision} if revision else None,
    )
    payload = await client.get(
        _item_url(project_id, work_item_id), params=params or None, tool="work_items"
    )
    return decode_one(schema, payload)


async def query_work_items(
    client: PolarionClient,
    project_id: str,
    query: str = "",
    *,
    page_size: Optional[int] = None,
    page_number: int = 1,
    fields: Optional[FieldSelector] = FIELDS_ALL,
    revision: Optional[str] = None,
    schema: ResourceSchema = WORK_ITEM_SCHEMA,
) -> PageResult[Resource]:
    """One page of work items matching a Lucene query (e.g. "type:requirement")."""
    page_number = max(1, page_number)
    params = merge_params(
        {"query": query} if query else None,
        page_params(page_size or client.config.page_size, page_number),
        fields.to_params() if fields else None,
        {"revision": revision} if revision else None,
    )
    payload = await client.get(
        _collection_url(project_id), params=params, tool="work_items"
    )
    return decode_page(schema, payload, page_number)


async def query_all_work_items(
    client: PolarionClient,
    project_id: str,
    query: str = "",
    *,
    page_size: Optional[int] = None,
    fields: Optional[FieldSelector] = FIELDS_ALL,
    revision: Optional[str] = None,
    schema: ResourceSchema = WORK_ITEM_SCHEMA,
) -> List[Resource]:
    items: List[Resource] = []
    page_number = 1
    while True:
        page = await query_work_items(
            client,
            project_id,
            query,
            page_size=page_size,
            page_number=page_number,
            fields=fields,
            revision=revision,
            schema=schema,
        )
        items.extend(page.items)
        if not page.has_next:
            break
        page_number += 1
    return items


async def create_work_items(
    client: PolarionClient,
    project_id: str,
    items: Sequence[Resource],
    *,
    skip_oversized: bool = False,
) -> List[Resource]:
    """
    Create work items in as few requests as the configured limits allow.

    Items are validated up front, then split by ``config.batch_size`` and
    ``config.max_content_size``. Created ids and revisions are written back
    onto the given resources. Items too large for any request raise
    OversizedItemError before anything is sent, unless ``skip_oversized`` is
    set, in which case they are logged and left without an id.
    """
    if not items:
        return []

    for index, item in enumerate(items):
        _validate(item, index)

    config = client.config
    plan = plan_batches(items, config.batch_size, config.max_content_size)
    if plan.oversized:
        indexes = [o.index for o in plan.oversized]
        if not skip_oversized:
            raise OversizedItemError(indexes, config.max_content_size)
        log_event(
            "work_items.oversized_skipped",
            log,
            level=logging.WARNING,
            project=project_id,
            items=len(indexes),
            error=f"indexes={indexes}",
        )

    url = _collection_url(project_id)
    for number, batch in enumerate(plan.batches):
        try:
            payload = await client.post(
                url, body=encode_document(batch.items), tool="work_items"
            )
        except PolarionClientError as exc:
            raise PolarionClientError(
                f"failed to create batch {number} of {len(plan.batches)} "
                f"in project {project_id}: {exc}"
            ) from exc

        adopt_created(batch.items, payload)
        log_event(
            "work_items.batch_created",
            log,
            project=project_id,
            batch=number,
            items=len(batch),
            bytes=batch.size,
        )

    return [item for batch in plan.batches for item in batch.items]


async def _patch(
    client: PolarionClient, project_id: str, item: Resource, body: Dict[str, Any]
) -> None:
    url = _item_url(project_id, item.id or "")
    try:
        payload = await client.patch(url, body=body, tool="work_items")
    except PolarionHTTPError as exc:
        if exc.status_code == 409:
            raise PolarionHTTPError(
                status_code=409,
                method="PATCH",
                url=exc.url,
                message="Update conflict: work item changed on the server. "
                "Re-fetch and retry.",
                details=exc.details,
                response_json=exc.response_json,
                response_text=exc.response_text,
            ) from exc
        raise

    # 204 No Content, or 200 echoing the updated resource
    if payload.get("data"):
        updated = decode_one(item.schema, payload)
        item.revision = updated.revision or item.revision


async def update_work_item(
    client: PolarionClient, project_id: str, item: Resource
) -> None:
    """
    Send every writable field of ``item``.
    Read-only fields (type, created, updated, resolvedOn) are left out.
    """
    require(item.id, "id", "work item ID is required for update")
    update = Resource(
        type=WORK_ITEM_TYPE,
        id=full_id(project_id, item.id or ""),
        attributes=item.attributes,
    )
    await _patch(
        client,
        project_id,
        item,
        {"data": encode_resource(update, exclude_read_only=True)},
    )


async def update_work_item_changes(
    client: PolarionClient,
    project_id: str,
    original: Resource,
    updated: Resource,
) -> bool:
    """
    Send only what changed between ``original`` (as fetched) and ``updated``.
    Returns False without a request when nothing changed.
    """
    require(updated.id, "id", "work item ID is required for update")
    changes = diff_resources(original, updated)
    if changes is None:
        return False
    changes.type = WORK_ITEM_TYPE
    changes.id = full_id(project_id, updated.id or "")
    await _patch(
        client,
        project_id,
        updated,
        {"data": encode_resource(changes, exclude_read_only=True)},
    )
    return True


def work_items_equal(a: Optional[Resource], b: Optional[Resource]) -> bool:
    """True when ``b`` carries no attribute change relative to ``a``."""
    if a is None or b is None:
        return a is b
    return equals(a.attributes, b.attributes)


async def delete_work_items(
    client: PolarionClient, project_id: str, work_item_ids: Sequence[str]
) -> None:
    for work_item_id in work_item_ids:
        try:
            await client.delete(_item_url(project_id, work_item_id), tool="work_items")
        except PolarionClientError as exc:
            raise PolarionClientError(
                f"failed to delete work item {work_item_id}: {exc}"
            ) from exc


# --- relationships ---


async def get_relationships(
    client: PolarionClient, project_id: str, work_item_id: str, relationship: str
) -> Dict[str, Any]:
    """Raw relationship document, e.g. for "linkedWorkItems"."""
    return await client.get(
        _relationship_url(project_id, work_item_id, relationship), tool="work_items"
    )


def _refs_body(refs: Sequence[Reference]) -> Dict[str, Any]:
    return {"data": [{"type": r.type, "id": r.id} for r in refs]}


async def create_relationships(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    relationship: str,
    refs: Sequence[Reference],
) -> None:
    if not refs:
        return
    await client.post(
        _relationship_url(project_id, work_item_id, relationship),
        body=_refs_body(refs),
        tool="work_items",
    )


async def update_relationships(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    relationship: str,
    refs: Sequence[Reference],
) -> None:
    if not refs:
        return
    await client.patch(
        _relationship_url(project_id, work_item_id, relationship),
        body=_refs_body(refs),
        tool="work_items",
    )


async def delete_relationships(
    client: PolarionClient, project_id: str, work_item_id: str, relationship: str
) -> None:
    await client.delete(
        _relationship_url(project_id, work_item_id, relationship), tool="work_items"
    )


__all__ = [
    "WORK_ITEM_SCHEMA",
    "WORK_ITEM_TYPE",
    "new_work_item",
    "get_work_item",
    "query_work_items",
    "query_all_work_items",
    "create_work_items",
    "update_work_item",
    "update_work_item_changes",
    "work_items_equal",
    "delete_work_items",
    "get_relationships",
    "create_relationships",
    "update_relationships",
    "delete_relationships",
]
