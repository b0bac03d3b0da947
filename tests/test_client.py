import json
import logging

import httpx
import pytest
import respx
from httpx import Response
from polarion_client.client import PolarionClient
from polarion_client.core.codec import encode_document, encoded_size
from polarion_client.core.config import ClientConfig
from polarion_client.core.errors import (
    PolarionClientError,
    PolarionHTTPError,
    PolarionParseError,
    PolarionTransportError,
    RetryExhaustedError,
    detailed_message,
    is_not_found,
)
from polarion_client.core.retry import RetryPolicy
from polarion_client.services.work_items import new_work_item

BASE = "https://polarion.example.com/polarion/rest/v1"

FAST_RETRY = ClientConfig(retry=RetryPolicy(max_retries=2, min_wait=0, max_wait=0))


def _client(config=None):
    return PolarionClient(base_url=BASE, token="secret-token", config=config)


@pytest.mark.asyncio
async def test_get_request_success():
    async with respx.mock:
        route = respx.get(f"{BASE}/projects/Proj").mock(
            return_value=Response(200, json={"data": {"type": "projects", "id": "Proj"}})
        )

        async with _client() as client:
            data = await client.get("/projects/Proj")

        assert data["data"]["id"] == "Proj"
        assert route.called


@pytest.mark.asyncio
async def test_auth_and_json_headers():
    async with respx.mock:
        route = respx.get(f"{BASE}/projects").mock(
            return_value=Response(200, json={"data": []})
        )

        async with _client() as client:
            await client.get("/projects", params={"page[size]": "5"})

        sent = route.calls[0].request
        assert sent.headers["Authorization"] == "Bearer secret-token"
        assert sent.headers["Accept"] == "application/json"
        assert sent.url.params["page[size]"] == "5"


@pytest.mark.asyncio
async def test_body_is_sent_as_compact_utf8_json():
    async with respx.mock:
        route = respx.post(f"{BASE}/projects/Proj/workitems").mock(
            return_value=Response(201, json={"data": []})
        )
        body = {"data": [{"type": "workitems", "attributes": {"title": "Größe"}}]}

        async with _client() as client:
            await client.post("/projects/Proj/workitems", body=body)

        sent = route.calls[0].request
        assert sent.content == (
            '{"data":[{"type":"workitems","attributes":{"title":"Größe"}}]}'.encode()
        )
        assert sent.headers["Content-Type"] == "application/json"


def test_constructor_requires_url_and_token():
    with pytest.raises(ValueError):
        PolarionClient(base_url="", token="t")
    with pytest.raises(ValueError):
        PolarionClient(base_url=BASE, token="")


@pytest.mark.asyncio
async def test_jsonapi_errors_become_details():
    async with respx.mock:
        respx.post(f"{BASE}/projects/Proj/workitems").mock(
            return_value=Response(
                400,
                json={
                    "errors": [
                        {
                            "status": "400",
                            "title": "Bad Request",
                            "detail": "Unexpected token",
                            "source": {"pointer": "$.data[0].attributes.title"},
                        }
                    ]
                },
            )
        )

        async with _client() as client:
            with pytest.raises(PolarionHTTPError) as exc:
                await client.post("/projects/Proj/workitems", body={"data": []})

    err = exc.value
    assert err.status_code == 400
    assert err.method == "POST"
    assert err.details[0].pointer == "$.data[0].attributes.title"
    assert "field '$.data[0].attributes.title': Unexpected token" in str(err)


@pytest.mark.asyncio
async def test_404_is_not_found():
    async with respx.mock:
        respx.get(f"{BASE}/projects/Nope").mock(
            return_value=Response(404, json={"message": "Not found"})
        )

        async with _client() as client:
            with pytest.raises(PolarionHTTPError) as exc:
                await client.get("/projects/Nope")

    assert exc.value.status_code == 404
    assert "Not found" in str(exc.value)
    assert is_not_found(exc.value)


@pytest.mark.asyncio
async def test_non_json_error_keeps_raw_text():
    async with respx.mock:
        respx.get(f"{BASE}/projects").mock(
            return_value=Response(400, text="<html>bad gateway config</html>")
        )

        async with _client() as client:
            with pytest.raises(PolarionHTTPError) as exc:
                await client.get("/projects")

    assert exc.value.response_text == "<html>bad gateway config</html>"
    assert "Raw response: <html>" in detailed_message(exc.value)


@pytest.mark.asyncio
async def test_empty_response_returns_empty_dict():
    async with respx.mock:
        respx.delete(f"{BASE}/projects/Proj").mock(return_value=Response(204))

        async with _client() as client:
            assert await client.delete("/projects/Proj") == {}


@pytest.mark.asyncio
async def test_non_json_response_raises_parse_error():
    async with respx.mock:
        respx.get(f"{BASE}/projects").mock(
            return_value=Response(200, text="<html>Not JSON</html>")
        )

        async with _client() as client:
            with pytest.raises(PolarionParseError) as exc:
                await client.get("/projects")

    assert "Expected JSON" in str(exc.value)


@pytest.mark.asyncio
async def test_top_level_array_raises_parse_error():
    async with respx.mock:
        respx.get(f"{BASE}/projects").mock(return_value=Response(200, json=[1, 2]))

        async with _client() as client:
            with pytest.raises(PolarionParseError):
                await client.get("/projects")


@pytest.mark.asyncio
async def test_retries_on_503():
    async with respx.mock:
        route = respx.get(f"{BASE}/projects").mock(
            side_effect=[
                Response(503, json={"message": "Service Unavailable"}),
                Response(503, json={"message": "Service Unavailable"}),
                Response(200, json={"data": []}),
            ]
        )

        async with _client(FAST_RETRY) as client:
            data = await client.get("/projects")

        assert data == {"data": []}
        # initial attempt + 2 retries
        assert route.call_count == 3


@pytest.mark.asyncio
async def test_retries_exhausted_on_persistent_503():
    async with respx.mock:
        route = respx.get(f"{BASE}/projects").mock(
            return_value=Response(503, json={"message": "down"})
        )

        async with _client(FAST_RETRY) as client:
            with pytest.raises(RetryExhaustedError) as exc:
                await client.get("/projects")

        assert route.call_count == 3
        assert exc.value.attempts == 3
        assert isinstance(exc.value.last_error, PolarionHTTPError)
        assert exc.value.last_error.status_code == 503


@pytest.mark.asyncio
async def test_4xx_is_not_retried():
    async with respx.mock:
        route = respx.patch(f"{BASE}/projects/Proj").mock(
            return_value=Response(409, json={"errors": [{"detail": "conflict"}]})
        )

        async with _client(FAST_RETRY) as client:
            with pytest.raises(PolarionHTTPError):
                await client.patch("/projects/Proj", body={"data": {}})

        assert route.call_count == 1


@pytest.mark.asyncio
async def test_retry_false_makes_single_attempt():
    async with respx.mock:
        route = respx.get(f"{BASE}/projects").mock(return_value=Response(503))

        async with _client(FAST_RETRY) as client:
            with pytest.raises(PolarionHTTPError):
                await client.request("GET", "/projects", retry=False)

        assert route.call_count == 1


@pytest.mark.asyncio
async def test_connect_timeout_becomes_transport_error():
    async with respx.mock:
        route = respx.get(f"{BASE}/projects").mock(
            side_effect=httpx.ConnectTimeout("boom")
        )

        async with _client(FAST_RETRY) as client:
            with pytest.raises(RetryExhaustedError) as exc:
                await client.get("/projects")

        assert route.call_count == 3
        assert isinstance(exc.value.last_error, PolarionTransportError)
        assert isinstance(exc.value, PolarionClientError)


@pytest.mark.asyncio
async def test_op_call_event_logged_once_per_call(caplog):
    async with respx.mock:
        respx.get(f"{BASE}/projects").mock(
            side_effect=[Response(502), Response(200, json={"data": []})]
        )

        with caplog.at_level(logging.DEBUG, logger="polarion_client"):
            async with _client(FAST_RETRY) as client:
                await client.get("/projects", tool="projects")

    calls = [r for r in caplog.records if r.getMessage() == "op_call"]
    assert len(calls) == 1
    record = calls[0]
    assert record.tool == "projects"
    assert record.method == "GET"
    assert record.endpoint == "/projects"
    assert record.status == 200
    assert record.attempt == 2
    assert record.duration_ms >= 0
    assert not hasattr(record, "error_type")

    retries = [r for r in caplog.records if r.getMessage() == "op.retry"]
    assert len(retries) == 1
    assert retries[0].levelno == logging.WARNING
    assert retries[0].error == "PolarionHTTPError"

    requests = [r for r in caplog.records if r.getMessage() == "op.request"]
    assert [r.status for r in requests] == [502, 200]


@pytest.mark.asyncio
async def test_op_call_records_root_error_type(caplog):
    async with respx.mock:
        respx.get(f"{BASE}/projects").mock(side_effect=httpx.ReadTimeout("slow"))

        with caplog.at_level(logging.INFO, logger="polarion_client.observability"):
            async with _client(FAST_RETRY) as client:
                with pytest.raises(RetryExhaustedError):
                    await client.get("/projects", tool="projects")

    record = next(r for r in caplog.records if r.getMessage() == "op_call")
    assert record.status == "exception"
    assert record.error_type == "ReadTimeout"
    assert record.attempt == 3


@pytest.mark.asyncio
async def test_injected_http_client_is_not_closed():
    http = httpx.AsyncClient(base_url=BASE)
    async with respx.mock:
        respx.get(f"{BASE}/projects").mock(return_value=Response(200, json={"data": []}))

        async with PolarionClient(base_url=BASE, token="t", http=http) as client:
            await client.get("/projects")

    assert not http.is_closed
    await http.aclose()


@pytest.mark.asyncio
async def test_request_body_matches_batch_accounting():
    items = [new_work_item("One"), new_work_item("Twö", businessValue="high")]
    async with respx.mock:
        route = respx.post(f"{BASE}/projects/Proj/workitems").mock(
            return_value=Response(201, json={"data": []})
        )

        async with _client() as client:
            await client.post("/projects/Proj/workitems", body=encode_document(items))

    sent = route.calls[0].request.content
    assert len(sent) == 11 + sum(encoded_size(i) for i in items) + 1
    assert json.loads(sent)["data"][1]["attributes"]["businessValue"] == "high"


@pytest.mark.asyncio
async def test_op_call_error_type_stops_at_first_foreign_cause(caplog):
    def handler(request):
        try:
            raise OSError("connection reset")
        except OSError as exc:
            raise httpx.ReadError("reset by peer") from exc

    http = httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(handler))

    with caplog.at_level(logging.INFO, logger="polarion_client.observability"):
        async with PolarionClient(base_url=BASE, token="t", http=http) as client:
            with pytest.raises(PolarionTransportError):
                await client.request("GET", "/projects", retry=False)
    await http.aclose()

    record = next(r for r in caplog.records if r.getMessage() == "op_call")
    assert record.error_type == "ReadError"
