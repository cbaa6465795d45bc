"""OpenAI adapters: DALL·E 3, GPT Image 1 (generate and edit), Sora 2."""

from typing import Any

from illustrate.models.generation import ArtQuality
from illustrate.services.exceptions import ErrorCode, ModelError
from illustrate.services.generation.contracts import GenerationRequest, GenerationResult
from illustrate.services.providers.base import ProviderAdapter, decode_media, style_preset
from illustrate.services.registry.models import ModelCode
from illustrate.services.transport import Attachment, JsonArray, JsonObject, ResponseEnvelope

OPENAI_USER = "illustrate_user"


class OpenAIImageAdapter(ProviderAdapter):
    """Synchronous JSON image generation returning inline ``b64_json``."""

    def headers(self, request: GenerationRequest) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {request.secret_value}",
            "Content-Type": "application/json",
        }

    def size(self, request: GenerationRequest) -> str:
        if request.art_dimensions in self.model.dimensions:
            return request.art_dimensions
        return "1024x1024"

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        if self.model.code == ModelCode.OPENAI_DALLE3:
            return {
                "model": "dall-e-3",
                "prompt": f"{style_preset(request.art_variant)} - {request.prompt}",
                "n": 1,
                "size": self.size(request),
                "quality": request.art_quality.value.lower(),
                "style": request.art_style.value.lower(),
                "response_format": "b64_json",
                "user": OPENAI_USER,
            }
        return {
            "model": "gpt-image-1",
            "prompt": request.prompt,
            "n": 1,
            "size": self.size(request),
            "quality": "high" if request.art_quality == ArtQuality.HD else "medium",
            "user": OPENAI_USER,
        }

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        if isinstance(envelope, JsonArray):
            return self.invalid_response(envelope)
        if not isinstance(envelope, JsonObject):
            return GenerationResult.failed(ErrorCode.MODEL_ERROR, "Unexpected response format")

        items = envelope.data.get("data")
        if isinstance(items, list) and items and items[0].get("b64_json"):
            first = items[0]
            return self.generated(
                request, first["b64_json"], first.get("revised_prompt") or request.prompt
            )
        return self.invalid_response(envelope)

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers=self.headers(request),
        )
        return self.map_response(request, envelope)


class OpenAIImageEditAdapter(OpenAIImageAdapter):
    """GPT Image 1 edit: multipart upload of the source image and optional mask."""

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        body = super().transform_request(request)
        body.pop("n")
        return body

    def attachments(self, request: GenerationRequest) -> list[Attachment]:
        if not request.client_image:
            raise ModelError("Select an image")
        parts = [Attachment("image", decode_media(request.client_image))]
        if request.client_mask:
            parts.append(Attachment("mask", decode_media(request.client_mask), "mask.png"))
        return parts

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers={
                "Authorization": f"Bearer {request.secret_value}",
                "Content-Type": "multipart/form-data",
            },
            attachments=self.attachments(request),
        )
        return self.map_response(request, envelope)


class OpenAISoraAdapter(ProviderAdapter):
    """Sora video: multipart submit, poll ``/videos/{id}``, authenticated download."""

    poll_interval = 5.0
    max_poll_attempts = 120

    @property
    def backend_model(self) -> str:
        return "sora-2-pro" if self.model.code == ModelCode.OPENAI_SORA_2_PRO else "sora-2"

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        default_duration = self.model.durations[0] if self.model.durations else 4
        return {
            "model": self.backend_model,
            "prompt": request.prompt,
            "seconds": request.duration_seconds or default_duration,
            "size": request.art_dimensions,
        }

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        """Map a finished video job; a completed one links to its output."""
        if not isinstance(envelope, JsonObject):
            return GenerationResult.failed(ErrorCode.MODEL_ERROR, "Unexpected response format")
        video = envelope.data
        if video.get("status") == "completed" and video.get("output_video"):
            return self.linked(request, video["output_video"])

        error = video.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return GenerationResult.failed(
            ErrorCode.MODEL_ERROR, message or "Failed to extract video from response"
        )

    @staticmethod
    def finished(envelope: ResponseEnvelope) -> bool:
        if not isinstance(envelope, JsonObject):
            return False
        video = envelope.data
        return isinstance(video.get("error"), dict) or video.get("status") in (
            "completed",
            "failed",
        )

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        auth = {"Authorization": f"Bearer {request.secret_value}"}
        attachments = None
        if request.client_image:
            attachments = [Attachment("input_reference", decode_media(request.client_image))]

        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers={**auth, "Content-Type": "multipart/form-data", "Accept": "application/json"},
            attachments=attachments,
        )

        if isinstance(envelope, JsonObject) and not self.finished(envelope):
            video_id = envelope.data.get("id")
            if not video_id:
                return GenerationResult.failed(ErrorCode.MODEL_ERROR, "No video ID in response")

            async def fetch_status() -> ResponseEnvelope:
                return await self.transport.perform(
                    f"{self.model.status_url}/{video_id}",
                    method="GET",
                    headers={**auth, "Content-Type": "application/json"},
                )

            envelope = await self.poll_until(fetch_status, self.finished)

        result = self.map_response(request, envelope)
        return await self.fetch_linked_media(request, result, headers=auth)
