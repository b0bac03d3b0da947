from __future__ import annotations

from typing import List, Optional

from polarion_client.client import PolarionClient
from polarion_client.core.codec import encode_resource
from polarion_client.core.fields import FieldKind
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema, attr, rel
from polarion_client.services._common import (
    decode_one,
    fetch_all,
    require,
    seg,
)

PROJECT_TYPE = "projects"

PROJECT_SCHEMA = ResourceSchema(
    resource_type=PROJECT_TYPE,
    attributes=(
        attr("id", read_only=True),
        attr("name"),
        attr("description", FieldKind.TEXT),
        attr("active", FieldKind.BOOLEAN),
        attr("location", read_only=True),
        attr("lockWorkRecordsDate", FieldKind.DATE),
        attr("trackerPrefix"),
        attr("startDate", FieldKind.DATE),
        attr("finishDate", FieldKind.DATE),
        attr("color"),
        attr("icon"),
    ),
    relationships=(rel("lead"),),
)


def _project_url(project_id: str) -> str:
    return f"/projects/{seg(project_id)}"


async def get_project(
    client: PolarionClient, project_id: str, *, fields: Optional[str] = None
) -> Resource:
    """``fields`` is a sparse fieldset for projects, e.g. "@basic"."""
    params = {"fields[projects]": fields} if fields else None
    payload = await client.get(_project_url(project_id), params=params, tool="projects")
    return decode_one(PROJECT_SCHEMA, payload)


async def list_projects(
    client: PolarionClient,
    *,
    query: str = "",
    page_size: Optional[int] = None,
) -> List[Resource]:
    params = {"query": query} if query else None
    return await fetch_all(
        client,
        "/projects",
        PROJECT_SCHEMA,
        params=params,
        page_size=page_size,
        tool="projects",
    )


async def update_project(client: PolarionClient, project: Resource) -> Resource:
    """PATCH writable project fields; returns the server copy when one is echoed."""
    project_id = require(project.id, "id", "project ID is required for update")
    payload = await client.patch(
        _project_url(project_id),
        body={"data": encode_resource(project, exclude_read_only=True)},
        tool="projects",
    )
    if payload.get("data"):
        return decode_one(PROJECT_SCHEMA, payload)
    return project


async def delete_project(client: PolarionClient, project_id: str) -> None:
    require(project_id, "id", "project ID is required")
    await client.delete(_project_url(project_id), tool="projects")


__all__ = [
    "PROJECT_SCHEMA",
    "PROJECT_TYPE",
    "get_project",
    "list_projects",
    "update_project",
    "delete_project",
]
