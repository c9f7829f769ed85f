import asyncio
import json

import httpx
import pytest
from fastapi import HTTPException

from church_admin.services.storage import (
    StorageClient,
    StorageError,
    store_profile_image,
    validate_image,
)

BASE = "https://store.test"


def _client(handler):
    return StorageClient(BASE, "anon", "service", bucket="member-photos", transport=httpx.MockTransport(handler))


def test_upload_creates_missing_bucket_then_uploads():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        assert request.headers["authorization"] == "Bearer service"
        if request.url.path == "/storage/v1/bucket" and request.method == "GET":
            return httpx.Response(200, json=[{"id": "other", "name": "other"}])
        if request.url.path == "/storage/v1/bucket" and request.method == "POST":
            assert json.loads(request.content)["public"] is True
            return httpx.Response(200, json={"name": "member-photos"})
        assert request.headers["content-type"] == "image/png"
        return httpx.Response(200, json={"Key": request.url.path})

    url = asyncio.run(store_profile_image(_client(handler), b"\x89PNG", "face.PNG", "image/png"))

    assert url.startswith(f"{BASE}/storage/v1/object/public/member-photos/profiles/")
    assert url.endswith(".png")
    assert [m for m, _ in seen] == ["GET", "POST", "POST"]
    assert seen[2][1].startswith("/storage/v1/object/member-photos/profiles/")


def test_existing_bucket_is_not_recreated():
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.url.path == "/storage/v1/bucket":
            return httpx.Response(200, json=[{"id": "member-photos", "name": "member-photos"}])
        return httpx.Response(200, json={})

    asyncio.run(store_profile_image(_client(handler), b"jpg", "a.jpg", "image/jpeg"))
    assert methods == ["GET", "POST"]


def test_refused_upload_raises_storage_error():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/storage/v1/bucket":
            return httpx.Response(200, json=[{"name": "member-photos"}])
        return httpx.Response(413, text="Payload too large")

    with pytest.raises(StorageError):
        asyncio.run(store_profile_image(_client(handler), b"jpg", "a.jpg", "image/jpeg"))


def test_bucket_listing_refused_raises_storage_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized"})

    with pytest.raises(StorageError):
        asyncio.run(store_profile_image(_client(handler), b"jpg", "a.jpg", "image/jpeg"))


def test_unreachable_storage_falls_back_to_sentinel():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    value = asyncio.run(store_profile_image(_client(handler), b"jpg", "a.jpg", "image/jpeg"))
    assert value == "local:a.jpg"


def test_unconfigured_storage_returns_sentinel():
    assert asyncio.run(store_profile_image(None, b"x", "me.webp", "image/webp")) == "local:me.webp"


def test_validate_image():
    validate_image("image/jpeg; charset=binary", 10)

    with pytest.raises(HTTPException) as bad_type:
        validate_image("application/pdf", 10)
    assert bad_type.value.status_code == 400

    with pytest.raises(HTTPException) as too_big:
        validate_image("image/png", 50 * 1024 * 1024)
    assert "too large" in too_big.value.detail


def test_public_url_and_delete():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert json.loads(request.content) == {"prefixes": ["profiles/a.png"]}
        return httpx.Response(200, json=[])

    client = _client(handler)
    assert client.public_url("/profiles/a.png") == f"{BASE}/storage/v1/object/public/member-photos/profiles/a.png"
    assert asyncio.run(client.delete_image("profiles/a.png")) is True
