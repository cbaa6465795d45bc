"""Provider adapter contract shared by every backend.

An adapter translates the canonical request into one backend's protocol,
runs it (single call or submit-then-poll), and maps the reply back into a
canonical result. ``make_request`` is the boundary: whatever goes wrong
inside an adapter comes back as a failed result, never as an exception.
"""

import asyncio
import base64
import binascii
from decimal import Decimal
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from illustrate.models.generation import ArtVariant
from illustrate.services.exceptions import (
    DecodeError,
    ErrorCode,
    GeneratorError,
    IllustrateError,
    ModelError,
    PollTimeout,
    TransformResponseError,
)
from illustrate.services.generation.contracts import (
    GenerationRequest,
    GenerationResult,
    strip_data_uri,
)
from illustrate.services.registry.costs import estimate_cost
from illustrate.services.registry.models import ModelDescriptor
from illustrate.services.transport import (
    BinaryImage,
    HttpTransport,
    JsonArray,
    JsonObject,
    ResponseEnvelope,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

INVALID_RESPONSE = "Invalid response"

_STYLE_PRESETS = {
    ArtVariant.PIXEL_ART: "pixel-art",
    ArtVariant.ANIME: "anime",
    ArtVariant.COMIC_BOOK: "comic-book",
    ArtVariant.FANTASY_ART: "fantasy-art",
    ArtVariant.LINE_ART: "line-art",
    ArtVariant.ABSTRACT: "line-art",
    ArtVariant.INK: "line-art",
    ArtVariant.DIGITAL_ART: "digital-art",
    ArtVariant.ANALOG_FILM: "analog-film",
    ArtVariant.NEON_PUNK: "neon-punk",
    ArtVariant.ISOMETRIC: "isometric",
    ArtVariant.ORIGAMI: "origami",
    ArtVariant.MODEL_3D: "3d-model",
    ArtVariant.CINEMATIC: "cinematic",
    ArtVariant.TILE_TEXTURE: "tile-texture",
}


def style_preset(variant: ArtVariant) -> str:
    """Backend style preset token for an art variant ("photographic" by default)."""
    return _STYLE_PRESETS.get(variant, "photographic")


def aspect_ratio(dimensions: str, choices: dict[str, float], default: str) -> str:
    """Closest aspect-ratio token for "WIDTHxHEIGHT" among ``choices``."""
    try:
        width, height = (int(part) for part in dimensions.lower().split("x"))
    except ValueError:
        return default
    if height == 0:
        return default
    ratio = width / height
    return min(choices, key=lambda token: abs(choices[token] - ratio))


def encode_media(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def decode_media(payload: str) -> bytes:
    """Decode base64 media, accepting an optional data-URI prefix.

    Raises:
        DecodeError: If the payload is not valid base64
    """
    try:
        return base64.b64decode(strip_data_uri(payload), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Could not decode base64") from e


def extract_error_message(data: Any) -> str | None:
    """Pull a human-readable message out of the error shapes backends use.

    Handles ``errors: [..]``, ``message``, ``error`` (string, list or
    ``{"message": ..}``) and ``detail`` (string or list of ``{"msg": ..}``).
    """
    if isinstance(data, list):
        return extract_error_message(data[0]) if data else None
    if not isinstance(data, dict):
        return None

    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        return str(errors[0])

    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, list) and error:
        return str(error[0])
    if isinstance(error, str) and error:
        return error

    detail = data.get("detail")
    if isinstance(detail, list) and detail:
        first = detail[0]
        return str(first.get("msg", first)) if isinstance(first, dict) else str(first)
    if isinstance(detail, str) and detail:
        return detail

    message = data.get("message")
    if isinstance(message, str) and message:
        return message
    return None


class ProviderAdapter:
    """Base class for backend adapters.

    Subclasses implement ``transform_request``, ``transform_response`` and
    ``execute``. Polling adapters set ``poll_interval`` / ``max_poll_attempts``
    and use ``poll_until``.
    """

    poll_interval: float = 4.0
    max_poll_attempts: int = 10

    def __init__(
        self,
        model: ModelDescriptor,
        transport: HttpTransport,
        poll_interval_scale: float = 1.0,
    ):
        self.model = model
        self.transport = transport
        self.poll_interval = self.poll_interval * poll_interval_scale

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        """Map the canonical request onto the backend's payload."""
        raise NotImplementedError

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        """Map the backend's reply onto a canonical result."""
        raise NotImplementedError

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        """Run the backend protocol. May raise; ``make_request`` converts errors."""
        raise NotImplementedError

    def credits_used(self, request: GenerationRequest) -> Decimal:
        """Total cost of the request across all ``count`` outputs."""
        return estimate_cost(
            self.model.code,
            request.art_quality,
            request.art_dimensions,
            request.count,
            request.duration_seconds,
        )

    def unit_cost(self, request: GenerationRequest) -> Decimal:
        """Cost of a single output, recorded on each result."""
        return estimate_cost(
            self.model.code,
            request.art_quality,
            request.art_dimensions,
            1,
            request.duration_seconds,
        )

    async def make_request(self, request: GenerationRequest) -> GenerationResult:
        """Run one generation and always return a canonical result.

        Cancellation propagates; every other failure becomes a failed result
        carrying the error's canonical code.
        """
        log = logger.bind(model_id=self.model.model_id, provider=self.model.provider.value)
        try:
            result = await self.execute(request)
        except asyncio.CancelledError:
            raise
        except IllustrateError as e:
            log.warning("adapter.request.failed", error_code=e.code.value, error_message=str(e))
            return GenerationResult.failed(e.code, f"Failed with error: {e}")
        except Exception as e:
            log.error(
                "adapter.request.error",
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            return GenerationResult.failed(ErrorCode.GENERATOR_ERROR, f"Failed with error: {e}")

        if not result.ok:
            log.warning(
                "adapter.request.rejected",
                error_code=result.error_code.value if result.error_code else None,
                error_message=result.error_message,
            )
        return result

    def map_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        """Call ``transform_response`` and classify parsing crashes."""
        try:
            return self.transform_response(request, envelope)
        except IllustrateError:
            raise
        except Exception as e:
            raise TransformResponseError(f"Could not read response: {e}") from e

    def invalid_response(self, envelope: ResponseEnvelope) -> GenerationResult:
        """Failed result for an unrecognized reply, using its error text when present."""
        data = envelope.data if isinstance(envelope, (JsonObject, JsonArray)) else None
        message = extract_error_message(data) if data is not None else None
        return GenerationResult.failed(ErrorCode.MODEL_ERROR, message or INVALID_RESPONSE)

    def generated(
        self, request: GenerationRequest, media: str, model_prompt: str | None = None
    ) -> GenerationResult:
        if not media:
            raise GeneratorError("Generated result carried no media")
        return GenerationResult.generated(
            base64=media,
            cost=self.unit_cost(request),
            model_prompt=model_prompt if model_prompt is not None else request.prompt,
        )

    def linked(self, request: GenerationRequest, url: str) -> GenerationResult:
        """Successful result whose media still has to be downloaded from ``url``."""
        return GenerationResult.linked(
            url, cost=self.unit_cost(request), model_prompt=request.prompt
        )

    async def fetch_linked_media(
        self,
        request: GenerationRequest,
        result: GenerationResult,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> GenerationResult:
        """Download the media a linked result points at; other results pass through."""
        if not result.ok or not result.media_url:
            return result
        media = await self.download_media(result.media_url, headers=headers, params=params)
        return self.generated(request, media, result.model_prompt)

    async def poll_until(
        self,
        fetch: Callable[[], Awaitable[T]],
        is_done: Callable[[T], bool],
        max_attempts: int | None = None,
        interval: float | None = None,
    ) -> T:
        """Poll ``fetch`` until ``is_done`` accepts its value.

        Sleeps before each attempt and gives up after exactly ``max_attempts``.

        Raises:
            PollTimeout: If no attempt produced a terminal value
        """
        attempts = max_attempts if max_attempts is not None else self.max_poll_attempts
        delay = interval if interval is not None else self.poll_interval

        for attempt in range(1, attempts + 1):
            await asyncio.sleep(delay)
            value = await fetch()
            logger.debug(
                "adapter.poll.attempt",
                model_id=self.model.model_id,
                attempt=attempt,
                max_attempts=attempts,
            )
            if is_done(value):
                return value

        raise PollTimeout(attempts)

    async def download_media(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> str:
        """Download remote media and return it as base64."""
        content = await self.transport.download(url, headers=headers, params=params)
        if not content:
            raise ModelError("Downloaded media was empty")
        return encode_media(content)

    @staticmethod
    def binary_to_base64(envelope: ResponseEnvelope) -> str | None:
        if isinstance(envelope, BinaryImage) and envelope.content:
            return encode_media(envelope.content)
        return None
