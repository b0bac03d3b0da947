from __future__ import annotations

from enum import Enum
from typing import List, Optional

from polarion_client.client import PolarionClient
from polarion_client.core.fields import FieldKind
from polarion_client.core.resource import Resource
from polarion_client.core.schema import ResourceSchema, attr, rel
from polarion_client.services._common import (
    decode_many,
    fetch_all,
    require,
    seg,
    short_id,
)

APPROVAL_TYPE = "workitem_approvals"

APPROVAL_SCHEMA = ResourceSchema(
    resource_type=APPROVAL_TYPE,
    attributes=(
        attr("status", FieldKind.ENUMERATION),
        attr("comment"),
        attr("date", FieldKind.DATE_TIME, read_only=True),
    ),
    relationships=(rel("user"),),
)


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    DISAPPROVED = "disapproved"
    WAITING = "waiting"


def approval_id(project_id: str, work_item_id: str, user_id: str) -> str:
    """Approvals are identified as project/workitem/user."""
    return f"{project_id}/{short_id(work_item_id)}/{user_id}"


def _approvals_url(project_id: str, work_item_id: str) -> str:
    return (
        f"/projects/{seg(project_id)}/workitems/{seg(short_id(work_item_id))}"
        "/approvals"
    )


def _approval_url(project_id: str, work_item_id: str, user_id: str) -> str:
    return f"{_approvals_url(project_id, work_item_id)}/{seg(user_id)}"


def _attributes(status: ApprovalStatus, comment: Optional[str]) -> dict:
    attrs = {"status": ApprovalStatus(status).value}
    if comment:
        attrs["comment"] = comment
    return attrs


async def list_approvals(
    client: PolarionClient, project_id: str, work_item_id: str
) -> List[Resource]:
    return await fetch_all(
        client,
        _approvals_url(project_id, work_item_id),
        APPROVAL_SCHEMA,
        tool="approvals",
    )


async def add_approval(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    user_id: str,
    *,
    status: ApprovalStatus = ApprovalStatus.WAITING,
    comment: Optional[str] = None,
) -> List[Resource]:
    """Request an approval from ``user_id``; returns the created approval(s)."""
    require(user_id, "user_id", "user ID is required")
    body = {
        "data": [
            {
                "type": APPROVAL_TYPE,
                "attributes": _attributes(status, comment),
                "relationships": {"user": {"data": {"type": "users", "id": user_id}}},
            }
        ]
    }
    payload = await client.post(
        _approvals_url(project_id, work_item_id), body=body, tool="approvals"
    )
    return decode_many(APPROVAL_SCHEMA, payload)


async def update_approval(
    client: PolarionClient,
    project_id: str,
    work_item_id: str,
    user_id: str,
    status: ApprovalStatus,
    *,
    comment: Optional[str] = None,
) -> None:
    require(user_id, "user_id", "user ID is required")
    body = {
        "data": {
            "type": APPROVAL_TYPE,
            "id": approval_id(project_id, work_item_id, user_id),
            "attributes": _attributes(status, comment),
        }
    }
    await client.patch(
        _approval_url(project_id, work_item_id, user_id), body=body, tool="approvals"
    )


async def remove_approval(
    client: PolarionClient, project_id: str, work_item_id: str, user_id: str
) -> None:
    require(user_id, "user_id", "user ID is required")
    await client.delete(
        _approval_url(project_id, work_item_id, user_id), tool="approvals"
    )


__all__ = [
    "APPROVAL_SCHEMA",
    "APPROVAL_TYPE",
    "ApprovalStatus",
    "approval_id",
    "list_approvals",
    "add_approval",
    "update_approval",
    "remove_approval",
]
