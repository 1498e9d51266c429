from __future__ import annotations

import json

import httpx
import pytest

from saved_items.config import AppConfig
from saved_items.errors import RemoteUnavailable
from saved_items.remote import RemoteSavedSetClient


def _client(handler, token="tok-123", retry_max=0) -> RemoteSavedSetClient:
    config = AppConfig()
    config.remote.base_url = "https://api.test/v1"
    config.remote.retry_max = retry_max
    config.remote.retry_backoff_seconds = 0.0
    return RemoteSavedSetClient(config, lambda: token, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_list_keys_sends_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"keys": ["us:a", 7, "jp:b"]})

    keys = await _client(handler).list_keys()

    assert keys == ["us:a", "jp:b"]
    assert seen["url"] == "https://api.test/v1/me/saved-items"
    assert seen["auth"] == "Bearer tok-123"


@pytest.mark.asyncio
async def test_import_keys_posts_batch():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/v1/me/saved-items/import"
        body = json.loads(request.content)
        return httpx.Response(200, json={"keys": ["us:a", *body["keys"]]})

    assert await _client(handler).import_keys(["us:x"]) == ["us:a", "us:x"]


@pytest.mark.asyncio
async def test_add_and_remove_quote_key_in_path():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.raw_path.decode()))
        return httpx.Response(200, json={"status": "ok"})

    client = _client(handler)
    await client.add_key("us:abc")
    await client.remove_key("us:abc")

    assert calls == [
        ("POST", "/v1/me/saved-items/us%3Aabc"),
        ("DELETE", "/v1/me/saved-items/us%3Aabc"),
    ]


@pytest.mark.asyncio
async def test_http_error_raises_remote_unavailable():
    client = _client(lambda request: httpx.Response(401, json={"error": "unauthorized"}))
    with pytest.raises(RemoteUnavailable) as excinfo:
        await client.list_keys()
    assert excinfo.value.status == 401


@pytest.mark.asyncio
async def test_transient_status_is_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"keys": ["us:a"]})

    assert await _client(handler, retry_max=1).list_keys() == ["us:a"]
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_timeout_raises_remote_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RemoteUnavailable):
        await _client(handler, retry_max=1).list_keys()


@pytest.mark.asyncio
async def test_bad_shape_raises_remote_unavailable():
    with pytest.raises(RemoteUnavailable):
        await _client(lambda request: httpx.Response(200, json={"items": []})).list_keys()
    with pytest.raises(RemoteUnavailable):
        await _client(lambda request: httpx.Response(200, text="<html>")).list_keys()


@pytest.mark.asyncio
async def test_missing_token_skips_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(RemoteUnavailable):
        await _client(handler, token=None).list_keys()


@pytest.mark.asyncio
async def test_invalid_base_url_raises_remote_unavailable():
    config = AppConfig()
    config.remote.base_url = "http://api.test:notaport/v1"
    client = RemoteSavedSetClient(config, lambda: "tok")
    with pytest.raises(RemoteUnavailable):
        await client.list_keys()
