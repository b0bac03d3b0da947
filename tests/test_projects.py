import json
from datetime import date

import pytest
import respx
from httpx import Response
from polarion_client.client import PolarionClient
from polarion_client.core.errors import PolarionHTTPError, PolarionValidationError
from polarion_client.core.fields import TextContent
from polarion_client.services.projects import (
    delete_project,
    get_project,
    list_projects,
    update_project,
)

BASE = "https://polarion.example.com/polarion/rest/v1"

PROJECT = {
    "type": "projects",
    "id": "Proj",
    "revision": "3",
    "attributes": {
        "id": "Proj",
        "name": "Demo Project",
        "active": True,
        "description": {"type": "text/plain", "value": "demo"},
        "startDate": "2024-01-01",
        "location": "default:/Repo/Proj",
        "customerName": "ACME",
    },
    "relationships": {"lead": {"data": {"type": "users", "id": "alice"}}},
}


def _client():
    return PolarionClient(base_url=BASE, token="tok")


@pytest.mark.asyncio
@respx.mock
async def test_get_project():
    route = respx.get(f"{BASE}/projects/Proj").mock(
        return_value=Response(200, json={"data": PROJECT})
    )

    async with _client() as client:
        project = await get_project(client, "Proj", fields="@all")

    assert route.calls[0].request.url.params["fields[projects]"] == "@all"
    assert project.attributes["name"] == "Demo Project"
    assert project.attributes["active"] is True
    assert project.attributes["startDate"] == date(2024, 1, 1)
    assert project.attributes["description"] == TextContent.plain("demo")
    assert project.attributes.custom.get_string("customerName") == "ACME"
    assert project.relationships.get("lead").ref.id == "alice"


@pytest.mark.asyncio
@respx.mock
async def test_get_project_not_found():
    respx.get(f"{BASE}/projects/Nope").mock(
        return_value=Response(404, json={"errors": [{"status": "404", "detail": "not found"}]})
    )

    async with _client() as client:
        with pytest.raises(PolarionHTTPError) as exc:
            await get_project(client, "Nope")

    assert exc.value.status_code == 404


@pytest.mark.asyncio
@respx.mock
async def test_list_projects_reads_all_pages():
    route = respx.get(f"{BASE}/projects").mock(
        side_effect=[
            Response(200, json={"data": [PROJECT], "links": {"next": "p2"}}),
            Response(200, json={"data": [dict(PROJECT, id="Other")]}),
        ]
    )

    async with _client() as client:
        projects = await list_projects(client, query="active:true", page_size=1)

    assert [p.id for p in projects] == ["Proj", "Other"]
    assert route.calls[1].request.url.params["page[number]"] == "2"
    assert route.calls[0].request.url.params["query"] == "active:true"


@pytest.mark.asyncio
@respx.mock
async def test_update_project_excludes_read_only_fields():
    route = respx.patch(f"{BASE}/projects/Proj").mock(return_value=Response(204))

    async with _client() as client:
        project = await _fetched(client)
        project.attributes.set("name", "Renamed")
        result = await update_project(client, project)

    body = json.loads(route.calls[0].request.content)["data"]
    assert result is project
    assert "revision" not in body
    assert "id" not in body["attributes"]
    assert "location" not in body["attributes"]
    assert body["attributes"]["name"] == "Renamed"
    assert body["relationships"] == {"lead": {"data": {"type": "users", "id": "alice"}}}


@pytest.mark.asyncio
@respx.mock
async def test_update_project_returns_echoed_resource():
    respx.patch(f"{BASE}/projects/Proj").mock(
        return_value=Response(200, json={"data": dict(PROJECT, revision="4")})
    )

    async with _client() as client:
        project = await _fetched(client)
        result = await update_project(client, project)

    assert result is not project
    assert result.revision == "4"


@pytest.mark.asyncio
@respx.mock
async def test_delete_project():
    route = respx.delete(f"{BASE}/projects/Proj").mock(return_value=Response(204))

    async with _client() as client:
        await delete_project(client, "Proj")
        with pytest.raises(PolarionValidationError):
            await delete_project(client, "")

    assert route.call_count == 1


async def _fetched(client):
    respx.get(f"{BASE}/projects/Proj").mock(return_value=Response(200, json={"data": PROJECT}))
    return await get_project(client, "Proj")
