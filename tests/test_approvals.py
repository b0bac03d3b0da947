import json

import pytest
import respx
from httpx import Response
from polarion_client.client import PolarionClient
from polarion_client.core.errors import PolarionValidationError
from polarion_client.services.approvals import (
    ApprovalStatus,
    add_approval,
    approval_id,
    list_approvals,
    remove_approval,
    update_approval,
)

BASE = "https://polarion.example.com/polarion/rest/v1"
APPROVALS = f"{BASE}/projects/Proj/workitems/WI-1/approvals"

APPROVAL = {
    "type": "workitem_approvals",
    "id": "Proj/WI-1/alice",
    "attributes": {"status": "waiting"},
    "relationships": {"user": {"data": {"type": "users", "id": "alice"}}},
}


def _client():
    return PolarionClient(base_url=BASE, token="tok")


def test_approval_id():
    assert approval_id("Proj", "Proj/WI-1", "alice") == "Proj/WI-1/alice"


@pytest.mark.asyncio
@respx.mock
async def test_list_approvals():
    respx.get(APPROVALS).mock(return_value=Response(200, json={"data": [APPROVAL]}))

    async with _client() as client:
        approvals = await list_approvals(client, "Proj", "Proj/WI-1")

    assert approvals[0].attributes["status"] == "waiting"
    assert approvals[0].relationships.get("user").ref.id == "alice"


@pytest.mark.asyncio
@respx.mock
async def test_add_approval():
    route = respx.post(APPROVALS).mock(return_value=Response(201, json={"data": [APPROVAL]}))

    async with _client() as client:
        created = await add_approval(client, "Proj", "WI-1", "alice", comment="please review")

    assert created[0].id == "Proj/WI-1/alice"
    assert json.loads(route.calls[0].request.content) == {
        "data": [
            {
                "type": "workitem_approvals",
                "attributes": {"status": "waiting", "comment": "please review"},
                "relationships": {"user": {"data": {"type": "users", "id": "alice"}}},
            }
        ]
    }


@pytest.mark.asyncio
@respx.mock
async def test_update_approval():
    route = respx.patch(f"{APPROVALS}/alice").mock(return_value=Response(204))

    async with _client() as client:
        await update_approval(client, "Proj", "WI-1", "alice", ApprovalStatus.APPROVED)

    assert json.loads(route.calls[0].request.content) == {
        "data": {
            "type": "workitem_approvals",
            "id": "Proj/WI-1/alice",
            "attributes": {"status": "approved"},
        }
    }


@pytest.mark.asyncio
async def test_unknown_status_is_rejected():
    async with _client() as client:
        with pytest.raises(ValueError):
            await update_approval(client, "Proj", "WI-1", "alice", "maybe")


@pytest.mark.asyncio
@respx.mock
async def test_remove_approval():
    route = respx.delete(f"{APPROVALS}/alice").mock(return_value=Response(204))

    async with _client() as client:
        await remove_approval(client, "Proj", "WI-1", "alice")
        with pytest.raises(PolarionValidationError):
            await remove_approval(client, "Proj", "WI-1", "")

    assert route.call_count == 1
