"""Replicate adapters: FLUX, Seedream, Dreamina images and Seedance video.

Every Replicate model is submit-then-poll: POST ``{"input": {...}}`` to the
model's predictions endpoint, then GET ``/predictions/{id}`` until the
prediction reaches a terminal status and download the output URL.
"""

from math import gcd
from typing import Any

import structlog

from illustrate.services.exceptions import ErrorCode, ModelError
from illustrate.services.generation.contracts import GenerationRequest, GenerationResult
from illustrate.services.providers.base import (
    ProviderAdapter,
    aspect_ratio,
    decode_media,
    extract_error_message,
)
from illustrate.services.registry.models import ModelCode
from illustrate.services.transport import Attachment, HttpTransport, JsonObject, ResponseEnvelope

logger = structlog.get_logger(__name__)

FILES_URL = "https://api.replicate.com/v1/files"
TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})

_SEEDREAM_RATIOS = {
    "1:1": 1.0,
    "3:4": 3 / 4,
    "4:3": 4 / 3,
    "16:9": 16 / 9,
    "9:16": 9 / 16,
    "2:3": 2 / 3,
    "3:2": 3 / 2,
    "21:9": 21 / 9,
}
_DREAMINA_RATIOS = {**_SEEDREAM_RATIOS, "9:21": 9 / 21}
_SEEDANCE_RATIOS = {
    "16:9": 16 / 9,
    "4:3": 4 / 3,
    "1:1": 1.0,
    "3:4": 3 / 4,
    "9:16": 9 / 16,
    "21:9": 21 / 9,
    "9:21": 9 / 21,
}


def reduced_ratio(dimensions: str) -> str:
    """Exact "W:H" ratio of "WIDTHxHEIGHT", reduced by the common divisor."""
    width, height = (int(part) for part in dimensions.split("x"))
    divisor = gcd(width, height) or 1
    return f"{width // divisor}:{height // divisor}"


def _closest_ratio(dimensions: str, choices: dict[str, float], default: str) -> str:
    exact = reduced_ratio(dimensions)
    if exact in choices:
        return exact
    return aspect_ratio(dimensions, choices, default)


def prediction_output(data: dict[str, Any]) -> str | None:
    """First output URL of a prediction (list or single string)."""
    output = data.get("output")
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    if isinstance(output, str) and output:
        return output
    return None


class ReplicateFileUploader:
    """Stages client images on Replicate's file API so models can fetch them by URL."""

    def __init__(self, transport: HttpTransport, url: str = FILES_URL):
        self.transport = transport
        self.url = url

    async def upload(self, media: str, secret: str) -> str:
        """Upload base64 PNG media and return its ``urls.get`` URL.

        Raises:
            ModelError: If the upload reply carries no URL
        """
        envelope = await self.transport.perform(
            self.url,
            method="POST",
            body={"metadata": {"agent": "illustrate"}},
            headers={"Authorization": f"Token {secret}"},
            attachments=[Attachment("content", decode_media(media))],
        )
        urls = envelope.data.get("urls") if isinstance(envelope, JsonObject) else None
        if not isinstance(urls, dict) or not urls.get("get"):
            raise ModelError("Image upload returned no URL")
        logger.debug("replicate.file.uploaded", file_id=envelope.data.get("id"))
        return urls["get"]


class ReplicateAdapter(ProviderAdapter):
    """Text-to-image models hosted on Replicate."""

    poll_interval = 4.0
    max_poll_attempts = 10

    def headers(self, request: GenerationRequest) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {request.secret_value}",
            "Content-Type": "application/json",
        }

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        code = self.model.code
        if code == ModelCode.REPLICATE_SEEDREAM_3:
            return {
                "prompt": request.variant_prompt(),
                "aspect_ratio": _closest_ratio(request.art_dimensions, _SEEDREAM_RATIOS, "16:9"),
                "size": "regular",
                "guidance_scale": 2.5,
            }
        if code == ModelCode.REPLICATE_DREAMINA_3_1:
            return {
                "prompt": request.variant_prompt(),
                "aspect_ratio": _closest_ratio(request.art_dimensions, _DREAMINA_RATIOS, "16:9"),
                "resolution": "2K",
                "use_pre_llm": True,
            }
        return {
            "prompt": request.variant_prompt(),
            "num_outputs": 1,
            "aspect_ratio": reduced_ratio(request.art_dimensions),
            "output_quality": 100,
            "output_format": "png",
        }

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        """Map a terminal prediction; a successful one links to its output."""
        if not isinstance(envelope, JsonObject):
            return self.invalid_response(envelope)
        prediction = envelope.data
        status = prediction.get("status")
        if status in ("failed", "canceled"):
            message = extract_error_message(prediction)
            return GenerationResult.failed(ErrorCode.MODEL_ERROR, message or f"Prediction {status}")

        url = prediction_output(prediction)
        if status == "succeeded" and url:
            return self.linked(request, url)
        return self.invalid_response(envelope)

    async def submit(self, request: GenerationRequest, payload: dict[str, Any]) -> str:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body={"input": payload},
            headers=self.headers(request),
        )
        if not isinstance(envelope, JsonObject):
            raise ModelError("Unexpected response")
        prediction_id = envelope.data.get("id")
        if not prediction_id:
            message = extract_error_message(envelope.data)
            raise ModelError(message or "Failed to initiate request")
        return prediction_id

    async def wait(self, request: GenerationRequest, prediction_id: str) -> ResponseEnvelope:
        headers = self.headers(request)
        status_url = f"{self.model.status_url}/{prediction_id}"

        async def fetch_status() -> ResponseEnvelope:
            return await self.transport.perform(status_url, method="GET", headers=headers)

        return await self.poll_until(
            fetch_status,
            lambda envelope: isinstance(envelope, JsonObject)
            and envelope.data.get("status") in TERMINAL_STATUSES,
        )

    async def fetch_output(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        result = self.map_response(request, envelope)
        return await self.fetch_linked_media(request, result)

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        prediction_id = await self.submit(request, self.transform_request(request))
        envelope = await self.wait(request, prediction_id)
        return await self.fetch_output(request, envelope)


class ReplicateSeedanceAdapter(ReplicateAdapter):
    """Seedance text/image-to-video.

    Client frames are staged through the file API first because the model
    only accepts image URLs.
    """

    poll_interval = 5.0
    max_poll_attempts = 60

    def __init__(self, *args, uploader: ReplicateFileUploader | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.uploader = uploader or ReplicateFileUploader(self.transport)

    @staticmethod
    def resolution(request: GenerationRequest) -> str:
        if request.resolution:
            return request.resolution
        shortest = min(request.width, request.height)
        if shortest >= 1080:
            return "1080p"
        if shortest >= 720:
            return "720p"
        return "480p"

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        return {
            "prompt": request.prompt,
            "duration": request.duration_seconds or 5,
            "resolution": self.resolution(request),
            "aspect_ratio": aspect_ratio(request.art_dimensions, _SEEDANCE_RATIOS, "16:9"),
            "fps": request.fps or 24,
            "camera_fixed": False,
        }

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        payload = self.transform_request(request)
        if request.client_image:
            payload["image"] = await self.uploader.upload(
                request.client_image, request.secret_value
            )
        if request.client_last_frame:
            payload["last_frame_image"] = await self.uploader.upload(
                request.client_last_frame, request.secret_value
            )

        prediction_id = await self.submit(request, payload)
        envelope = await self.wait(request, prediction_id)
        return await self.fetch_output(request, envelope)
