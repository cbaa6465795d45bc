"""Google Generative Language adapters: Imagen (sync) and Veo (long-running)."""

from typing import Any

from illustrate.models.generation import ArtQuality
from illustrate.services.exceptions import ErrorCode
from illustrate.services.generation.contracts import (
    GenerationRequest,
    GenerationResult,
    strip_data_uri,
)
from illustrate.services.providers.base import ProviderAdapter, aspect_ratio
from illustrate.services.transport import JsonObject, ResponseEnvelope

_IMAGEN_RATIOS = {
    "1:1": 1.0,
    "3:4": 3 / 4,
    "4:3": 4 / 3,
    "9:16": 9 / 16,
    "16:9": 16 / 9,
}


def _headers() -> dict[str, str]:
    return {"Content-Type": "application/json"}


class GoogleImagenAdapter(ProviderAdapter):
    """Imagen ``:predict``; the API key travels as the ``key`` query parameter."""

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        parameters: dict[str, Any] = {
            "aspectRatio": aspect_ratio(request.art_dimensions, _IMAGEN_RATIOS, "1:1"),
            "sampleCount": 1,
        }
        if self.model.supports_quality:
            parameters["imageSize"] = "2048" if request.art_quality == ArtQuality.HD else "1024"
        return {"instances": [{"prompt": request.prompt}], "parameters": parameters}

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        if isinstance(envelope, JsonObject):
            predictions = envelope.data.get("predictions")
            if isinstance(predictions, list) and predictions:
                media = predictions[0].get("bytesBase64Encoded")
                if media:
                    return self.generated(request, media)
        return self.invalid_response(envelope)

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers=_headers(),
            params={"key": request.secret_value},
        )
        return self.map_response(request, envelope)


class GoogleVeoAdapter(ProviderAdapter):
    """Veo ``:predictLongRunning``: submit, poll the operation, download the sample."""

    poll_interval = 10.0
    max_poll_attempts = 60

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        instance: dict[str, Any] = {"prompt": request.prompt}
        if request.client_image:
            instance["image"] = {
                "bytesBase64Encoded": strip_data_uri(request.client_image),
                "mimeType": "image/png",
            }
        if request.client_last_frame:
            instance["lastFrame"] = {
                "bytesBase64Encoded": strip_data_uri(request.client_last_frame),
                "mimeType": "image/png",
            }

        default_duration = self.model.durations[-1] if self.model.durations else 8
        parameters: dict[str, Any] = {
            "aspectRatio": "16:9" if request.width > request.height else "9:16",
            "durationSeconds": request.duration_seconds or default_duration,
            "resolution": request.resolution
            or ("1080p" if max(request.width, request.height) >= 1080 else "720p"),
        }
        if request.negative_prompt:
            parameters["negativePrompt"] = request.negative_prompt
        return {"instances": [instance], "parameters": parameters}

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        """Map a finished operation; a successful one links to its first sample."""
        if not isinstance(envelope, JsonObject):
            return self.invalid_response(envelope)
        operation = envelope.data
        error = operation.get("error")
        if isinstance(error, dict):
            return GenerationResult.failed(
                ErrorCode.MODEL_ERROR, error.get("message") or "Video generation failed"
            )

        uri = self.video_uri(operation)
        if not uri:
            return GenerationResult.failed(ErrorCode.MODEL_ERROR, "No video in operation response")
        return self.linked(request, uri)

    @staticmethod
    def video_uri(operation: dict[str, Any]) -> str | None:
        try:
            samples = operation["response"]["generateVideoResponse"]["generatedSamples"]
            return samples[0]["video"]["uri"]
        except (KeyError, IndexError, TypeError):
            return None

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        params = {"key": request.secret_value}
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers=_headers(),
            params=params,
        )
        operation_name = envelope.data.get("name") if isinstance(envelope, JsonObject) else None
        if not operation_name:
            return self.invalid_response(envelope)

        async def fetch_operation() -> ResponseEnvelope:
            return await self.transport.perform(
                f"{self.model.status_url}/{operation_name}",
                method="GET",
                headers=_headers(),
                params=params,
            )

        operation = await self.poll_until(
            fetch_operation,
            lambda status: isinstance(status, JsonObject) and bool(status.data.get("done")),
        )
        result = self.map_response(request, operation)
        return await self.fetch_linked_media(request, result, params=params)
