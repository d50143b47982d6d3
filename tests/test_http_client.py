import json

import httpx
import pytest

from carrier_integration.core.exceptions import TransportError, TransportTimeoutError
from carrier_integration.core.http_client import HttpRequest, HttpxClient


def make_client(handler) -> HttpxClient:
    client = HttpxClient(timeout=5.0)
    client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        timeout=client.timeout,
        headers=client.default_headers,
    )
    return client


@pytest.mark.asyncio
async def test_dict_body_sent_as_json_and_json_response_decoded():
    """
    Non-string bodies are JSON-encoded; JSON responses come back parsed.
    """
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    client = make_client(handler)
    resp = await client.request(HttpRequest(url="https://example.com/rate", method="POST", body={"a": 1}))
    await client.close()

    assert resp.status == 200
    assert resp.body == {"ok": True}
    assert seen == {"method": "POST", "content_type": "application/json", "body": {"a": 1}}


@pytest.mark.asyncio
async def test_string_body_sent_verbatim():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.content.decode()
        seen["content_type"] = request.headers.get("content-type")
        return httpx.Response(200, text="done")

    client = make_client(handler)
    resp = await client.request(HttpRequest(
        url="https://example.com/token",
        method="POST",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        body="grant_type=client_credentials",
    ))
    await client.close()

    assert seen == {
        "body": "grant_type=client_credentials",
        "content_type": "application/x-www-form-urlencoded",
    }
    assert resp.body == "done"


@pytest.mark.asyncio
async def test_error_status_returned_not_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"response": {"errors": [{"code": "503", "message": "down"}]}})

    client = make_client(handler)
    resp = await client.request(HttpRequest(url="https://example.com/rate", method="POST", body={}))
    await client.close()

    assert resp.status == 503
    assert resp.body["response"]["errors"][0]["message"] == "down"


@pytest.mark.asyncio
async def test_invalid_json_falls_back_to_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "application/json"}, content=b"invalid json{")

    client = make_client(handler)
    resp = await client.request(HttpRequest(url="https://example.com/rate"))
    await client.close()

    assert resp.body == "invalid json{"


@pytest.mark.asyncio
async def test_timeout_raises_transport_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(handler)
    with pytest.raises(TransportTimeoutError):
        await client.request(HttpRequest(url="https://example.com/rate"))
    await client.close()


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(TransportError) as exc_info:
        await client.request(HttpRequest(url="https://example.com/rate"))
    await client.close()

    assert not isinstance(exc_info.value, TransportTimeoutError)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_context_manager_closes_client():
    async with HttpxClient() as client:
        assert client._client is not None
    assert client._client is None
