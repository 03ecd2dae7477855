import json
import httpx
import pytest
from flowbot.services.api_client import APIHTTPError, APINetworkError, FileAPIClient, FlowAPIClient, TemplateAPIClient


def make_transport(handler):
    requests = []

    def recorder(request):
        requests.append(request)
        return handler(request)

    return httpx.MockTransport(recorder), requests


async def test_list_flows():
    transport, requests = make_transport(lambda r: httpx.Response(200, json=[{"id": "f1", "slug": "sales"}]))
    client = FlowAPIClient(base_url="http://flows.test/flows", transport=transport)

    flows = await client.list_flows()

    assert flows == [{"id": "f1", "slug": "sales"}]
    assert requests[0].method == "GET"
    assert requests[0].url.path == "/flows/"


async def test_missing_flow_returns_none():
    transport, requests = make_transport(lambda r: httpx.Response(404, json={"detail": "Not found"}))
    client = FlowAPIClient(base_url="http://flows.test/flows", transport=transport)

    assert await client.get_flow_by_slug("nope") is None
    assert requests[0].url.path == "/flows/by-slug/nope"


async def test_server_error_is_raised_without_retry():
    transport, requests = make_transport(lambda r: httpx.Response(500, text="boom"))
    client = FlowAPIClient(base_url="http://flows.test/flows", transport=transport)

    with pytest.raises(APIHTTPError) as exc_info:
        await client.update_flow("f1", {"id": "f1", "slug": "sales"})
    assert exc_info.value.status_code == 500
    assert len(requests) == 1
    assert requests[0].method == "PUT"
    assert json.loads(requests[0].content) == {"id": "f1", "slug": "sales"}


async def test_duplicate_template_component_conflict():
    transport, _ = make_transport(lambda r: httpx.Response(409, json={"detail": "exists"}))
    client = TemplateAPIClient(base_url="http://templates.test/templates", transport=transport)

    with pytest.raises(APIHTTPError) as exc_info:
        await client.create_template({"name": "Screening", "component": "ScreeningStep"})
    assert exc_info.value.status_code == 409
    assert "ScreeningStep" in str(exc_info.value)


async def test_create_template_returns_stored_record():
    def handler(request):
        return httpx.Response(201, json={**json.loads(request.content), "id": "t1"})

    transport, _ = make_transport(handler)
    client = TemplateAPIClient(base_url="http://templates.test/templates", transport=transport)

    created = await client.create_template({"name": "Intro", "component": "Intro"})
    assert created == {"name": "Intro", "component": "Intro", "id": "t1"}


async def test_upload_returns_url():
    transport, requests = make_transport(lambda r: httpx.Response(200, json={"url": "https://cdn.test/logo.png"}))
    client = FileAPIClient(base_url="http://files.test/files", transport=transport)

    url = await client.upload("logo.png", b"\x89PNG", "image/png")

    assert url == "https://cdn.test/logo.png"
    assert requests[0].url.path == "/files/upload"
    assert requests[0].headers["content-type"].startswith("multipart/form-data")


async def test_upload_without_url_is_an_error():
    transport, _ = make_transport(lambda r: httpx.Response(200, json={}))
    client = FileAPIClient(base_url="http://files.test/files", transport=transport)

    with pytest.raises(APIHTTPError):
        await client.upload("logo.png", b"\x89PNG", "image/png")


async def test_network_error_on_create_is_not_resent():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport, requests = make_transport(handler)
    client = FlowAPIClient(base_url="http://flows.test/flows", transport=transport)

    with pytest.raises(APINetworkError):
        await client.create_flow({"slug": "sales", "name": "Sales"})
    assert [r.method for r in requests] == ["POST"]


async def test_network_error_on_upload_is_not_resent():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    transport, requests = make_transport(handler)
    client = FileAPIClient(base_url="http://files.test/files", transport=transport)

    with pytest.raises(APINetworkError):
        await client.upload("logo.png", b"\x89PNG", "image/png")
    assert len(requests) == 1


async def test_list_flows_retries_after_network_error():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=[])

    client = FlowAPIClient(base_url="http://flows.test/flows", transport=httpx.MockTransport(handler))

    assert await client.list_flows() == []
    assert len(attempts) == 2
