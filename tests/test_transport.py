"""HttpTransport tests using httpx.MockTransport."""

import json

import httpx
import pytest

from illustrate.services.exceptions import InvalidURL, TransformResponseError, TransportError
from illustrate.services.transport import (
    Attachment,
    BinaryImage,
    HttpTransport,
    JsonArray,
    JsonObject,
)


def _transport(handler) -> HttpTransport:
    return HttpTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_json_body_and_object_reply():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"id": "abc"})

    async with _transport(handler) as transport:
        envelope = await transport.perform(
            "https://api.example.com/generate",
            body={"prompt": "hi"},
            headers={"Authorization": "Bearer k"},
        )

    assert envelope == JsonObject(200, {"id": "abc"})
    assert seen == {"body": {"prompt": "hi"}, "auth": "Bearer k"}


@pytest.mark.asyncio
async def test_array_and_image_replies_are_tagged():
    replies = iter(
        [
            httpx.Response(200, json=[{"id": 1}]),
            httpx.Response(200, content=b"\x89PNG", headers={"Content-Type": "image/png"}),
        ]
    )

    async with _transport(lambda request: next(replies)) as transport:
        array = await transport.perform("https://api.example.com/a")
        image = await transport.perform("https://api.example.com/b")

    assert array == JsonArray(200, [{"id": 1}])
    assert image == BinaryImage(200, b"\x89PNG", "image/png")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 404, 429, 500, 503, 504])
async def test_failure_statuses_raise(status):
    async with _transport(lambda request: httpx.Response(status, text="nope")) as transport:
        with pytest.raises(TransportError) as exc_info:
            await transport.perform("https://api.example.com/generate", body={})

    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_other_client_errors_are_returned_to_the_adapter():
    handler = lambda request: httpx.Response(400, json={"message": "bad prompt"})  # noqa: E731

    async with _transport(handler) as transport:
        envelope = await transport.perform("https://api.example.com/generate", body={})

    assert envelope == JsonObject(400, {"message": "bad prompt"})


@pytest.mark.asyncio
async def test_non_json_body_is_transform_error():
    handler = lambda request: httpx.Response(200, text="<html>")  # noqa: E731

    async with _transport(handler) as transport:
        with pytest.raises(TransformResponseError):
            await transport.perform("https://api.example.com/generate")


@pytest.mark.asyncio
async def test_network_error_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _transport(handler) as transport:
        with pytest.raises(TransportError, match="Network error"):
            await transport.perform("https://api.example.com/generate")


@pytest.mark.asyncio
async def test_relative_url_is_rejected_without_a_request():
    calls = []

    async with _transport(lambda request: calls.append(request)) as transport:
        with pytest.raises(InvalidURL):
            await transport.perform("/v1/generate")
        with pytest.raises(InvalidURL):
            await transport.download("ftp://example.com/x.png")

    assert calls == []


@pytest.mark.asyncio
async def test_multipart_sends_form_fields_and_file_parts():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"image": "aGk="})

    async with _transport(handler) as transport:
        await transport.perform(
            "https://api.example.com/edit",
            body={"prompt": "cat", "negative_prompt": None, "camera_fixed": False},
            headers={"Content-Type": "multipart/form-data"},
            attachments=[Attachment("image", b"PNGDATA")],
        )

    assert seen["content_type"].startswith("multipart/form-data; boundary=")
    assert b'name="prompt"' in seen["body"]
    assert b"cat" in seen["body"]
    assert b'name="camera_fixed"' in seen["body"]
    assert b"false" in seen["body"]
    assert b'name="negative_prompt"' not in seen["body"]
    assert b'filename="image.png"' in seen["body"]
    assert b"PNGDATA" in seen["body"]


@pytest.mark.asyncio
async def test_multipart_without_attachments_is_still_multipart():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"image": "aGk="})

    async with _transport(handler) as transport:
        await transport.perform(
            "https://api.example.com/generate/ultra",
            body={"prompt": "cat", "aspect_ratio": "1:1"},
            headers={"Content-Type": "multipart/form-data"},
        )

    assert seen["content_type"].startswith("multipart/form-data")
    assert b'name="aspect_ratio"' in seen["body"]


@pytest.mark.asyncio
async def test_download_returns_bytes_and_raises_on_error():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ok.mp4":
            assert request.url.params["key"] == "k"
            return httpx.Response(200, content=b"video")
        return httpx.Response(410)

    async with _transport(handler) as transport:
        content = await transport.download("https://cdn.example.com/ok.mp4", params={"key": "k"})
        with pytest.raises(TransportError) as exc_info:
            await transport.download("https://cdn.example.com/gone.mp4")

    assert content == b"video"
    assert exc_info.value.status_code == 410
