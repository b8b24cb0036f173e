"""Tests for content store backends."""

import httpx
import pytest

from notebot.errors import StorageError, StorageTimeoutError
from notebot.storage.content import AutoDriveContentStore, LocalContentStore

API = "https://drive.test/api"


@pytest.mark.asyncio
async def test_local_store_is_content_addressed(tmp_path):
    store = LocalContentStore(tmp_path / "blobs")
    cid = await store.upload(b"hello", "u1/1.json")

    assert cid == LocalContentStore.compute_cid(b"hello")
    assert cid.startswith("sha256-")
    assert await store.upload(b"hello", "u1/2.json") == cid
    assert await store.download(cid) == b"hello"


@pytest.mark.asyncio
async def test_local_store_unknown_or_invalid_cid(tmp_path):
    store = LocalContentStore(tmp_path)
    assert await store.download("sha256-missing") is None
    assert await store.download("../etc/passwd") is None


def _autodrive(handler) -> AutoDriveContentStore:
    client = httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(handler))
    return AutoDriveContentStore(api_key="key-1", api_base=API, chunk_size=4, client=client)


@pytest.mark.asyncio
async def test_autodrive_upload_flow():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path == "/api/uploads/file":
            return httpx.Response(200, json={"id": "up-1"})
        if path == "/api/uploads/file/up-1/chunk":
            return httpx.Response(200, json={})
        if path == "/api/uploads/up-1/complete":
            return httpx.Response(200, json={"cid": "bafy-123"})
        return httpx.Response(404)

    store = _autodrive(handler)
    cid = await store.upload(b"0123456789", "u1/17.json")
    await store.close()

    assert cid == "bafy-123"
    paths = [r.url.path for r in requests]
    assert paths == [
        "/api/uploads/file",
        "/api/uploads/file/up-1/chunk",
        "/api/uploads/file/up-1/chunk",
        "/api/uploads/file/up-1/chunk",
        "/api/uploads/up-1/complete",
    ]
    assert all(r.headers["Authorization"] == "Bearer key-1" for r in requests)
    assert all(r.headers["X-Auth-Provider"] == "apikey" for r in requests)
    assert b'name="index"' in requests[2].content
    assert b"4567" in requests[2].content


@pytest.mark.asyncio
async def test_autodrive_download_and_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/objects/bafy-1/download":
            return httpx.Response(200, content=b'{"title": "t"}')
        return httpx.Response(404)

    store = _autodrive(handler)
    assert await store.download("bafy-1") == b'{"title": "t"}'
    assert await store.download("bafy-missing") is None


@pytest.mark.asyncio
async def test_autodrive_server_error_raises_storage_error():
    store = _autodrive(lambda request: httpx.Response(500))
    with pytest.raises(StorageError):
        await store.upload(b"x", "u1/1.json")
    with pytest.raises(StorageError):
        await store.download("bafy-1")


@pytest.mark.asyncio
async def test_autodrive_timeout_raises_storage_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    store = _autodrive(handler)
    with pytest.raises(StorageTimeoutError):
        await store.download("bafy-1")


def test_autodrive_requires_api_key():
    with pytest.raises(ValueError):
        AutoDriveContentStore(api_key="")
