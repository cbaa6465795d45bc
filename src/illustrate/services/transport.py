"""HTTP transport used by every provider adapter.

Wraps a shared httpx.AsyncClient and returns a tagged response envelope
(JSON object, JSON array, or raw image bytes) so adapters never touch the
HTTP stack directly.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

import httpx
import structlog

from illustrate.services.exceptions import InvalidURL, TransformResponseError, TransportError

logger = structlog.get_logger(__name__)

# Statuses treated as transport failures; other non-2xx bodies go back to the adapter
FAILURE_STATUSES = frozenset({403, 404, 429, 500, 503, 504})


@dataclass(frozen=True)
class Attachment:
    """File part of a multipart request."""

    field: str
    content: bytes
    filename: str = "image.png"
    content_type: str = "image/png"


@dataclass(frozen=True)
class JsonObject:
    status_code: int
    data: dict[str, Any]


@dataclass(frozen=True)
class JsonArray:
    status_code: int
    data: list[Any]


@dataclass(frozen=True)
class BinaryImage:
    status_code: int
    content: bytes
    content_type: str


ResponseEnvelope = Union[JsonObject, JsonArray, BinaryImage]


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


class HttpTransport:
    """Async HTTP transport with status classification.

    One instance is shared by all adapters of an engine so connections are pooled.
    """

    def __init__(self, timeout: float = 120.0, client: httpx.AsyncClient | None = None):
        """Initialize transport.

        Args:
            timeout: Per-request timeout in seconds (default: 120)
            client: Pre-built client, mainly for tests using httpx.MockTransport
        """
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def perform(
        self,
        url: str,
        method: str = "POST",
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        attachments: list[Attachment] | None = None,
        params: dict[str, str] | None = None,
    ) -> ResponseEnvelope:
        """Send a request and decode the response into an envelope.

        A multipart request is built when attachments are given or the
        Content-Type header asks for ``multipart/form-data``: scalar body
        fields become form fields and attachments become file parts.

        Args:
            url: Absolute URL
            method: HTTP method
            body: JSON body, or form fields for multipart requests
            headers: Request headers
            attachments: File parts for multipart requests
            params: Query string parameters

        Returns:
            JsonObject, JsonArray or BinaryImage

        Raises:
            InvalidURL: URL is not absolute http(s)
            TransportError: Network failure, timeout, or a failure status (403/404/429/5xx)
            TransformResponseError: Body is neither an image nor JSON
        """
        if not url.startswith(("http://", "https://")):
            raise InvalidURL(f"Invalid URL: {url}")

        request_headers = dict(headers or {})
        content_type = request_headers.get("Content-Type", "")
        multipart = bool(attachments) or content_type.startswith("multipart/form-data")

        kwargs: dict[str, Any] = {"headers": request_headers, "params": params}
        if multipart:
            # httpx sets the boundary itself
            request_headers.pop("Content-Type", None)
            form = {k: _form_value(v) for k, v in (body or {}).items() if v is not None}
            files: list[tuple[str, tuple]] = [
                (a.field, (a.filename, a.content, a.content_type)) for a in attachments or []
            ]
            if not files:
                # httpx only emits multipart/form-data when a file part is present
                files = [(k, (None, v.encode("utf-8"))) for k, v in form.items()]
                form = {}
            kwargs["data"] = form
            kwargs["files"] = files
        elif body is not None:
            kwargs["json"] = body

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout after {self.timeout}s: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e

        if response.status_code in FAILURE_STATUSES:
            logger.warning(
                "transport.request.rejected",
                url=str(response.request.url).split("?")[0],
                status_code=response.status_code,
            )
            raise TransportError(
                f"Request failed with status {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        return self._decode(response)

    def _decode(self, response: httpx.Response) -> ResponseEnvelope:
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if content_type.startswith("image/"):
            return BinaryImage(response.status_code, response.content, content_type)

        try:
            data = response.json()
        except ValueError as e:
            raise TransformResponseError(
                f"Response is not JSON (status {response.status_code}, type {content_type!r})"
            ) from e

        if isinstance(data, dict):
            return JsonObject(response.status_code, data)
        if isinstance(data, list):
            return JsonArray(response.status_code, data)
        raise TransformResponseError(f"Unexpected JSON payload type: {type(data).__name__}")

    async def download(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> bytes:
        """Fetch raw bytes from a media URL.

        Raises:
            InvalidURL: URL is not absolute http(s)
            TransportError: Network failure or any non-2xx status
        """
        if not url.startswith(("http://", "https://")):
            raise InvalidURL(f"Invalid download URL: {url}")

        try:
            response = await self._client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(f"Download timeout after {self.timeout}s: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Download failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(
                f"Download failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response.content
