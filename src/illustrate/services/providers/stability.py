"""Stability AI adapters.

Four protocol shapes share this module:
- v2beta generate endpoints (Ultra, Core, SD3 family): multipart form, JSON ``image``
- SDXL v1: JSON body, ``artifacts[0].base64``
- v2beta edit endpoints: multipart with image (and mask) attachments
- async endpoints (creative upscale, image to video): submit, then poll ``/result/{id}``
"""

from typing import Any

from illustrate.services.exceptions import ModelError
from illustrate.services.generation.contracts import GenerationRequest, GenerationResult
from illustrate.services.providers.base import ProviderAdapter, decode_media, style_preset
from illustrate.services.registry.models import ModelCode
from illustrate.services.transport import Attachment, JsonArray, JsonObject, ResponseEnvelope

_ASPECT_RATIOS = {
    "576x1024": "9:16",
    "1024x576": "16:9",
    "768x1024": "3:4",
    "1024x768": "4:3",
}

_STYLE_PRESET_MODELS = frozenset({ModelCode.STABILITY_ULTRA, ModelCode.STABILITY_CORE})


def stability_auth(secret: str) -> str:
    return secret if secret.startswith("Bearer ") else f"Bearer {secret}"


class StabilityAdapter(ProviderAdapter):
    """v2beta text-to-image (Ultra, Core, SD3, SD3.5)."""

    media_key = "image"

    def headers(self, request: GenerationRequest) -> dict[str, str]:
        return {
            "Authorization": stability_auth(request.secret_value),
            "Content-Type": "multipart/form-data",
            "Accept": "application/json",
        }

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "prompt": request.prompt,
            "aspect_ratio": _ASPECT_RATIOS.get(request.art_dimensions, "1:1"),
            "negative_prompt": request.negative_prompt or None,
            "output_format": "png",
        }
        if self.model.code in _STYLE_PRESET_MODELS:
            body["style_preset"] = style_preset(request.art_variant)
        else:
            body["prompt"] = request.variant_prompt()
        if self.model.backend_model:
            body["model"] = self.model.backend_model
        return body

    def attachments(self, request: GenerationRequest) -> list[Attachment] | None:
        return None

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        if isinstance(envelope, JsonObject) and envelope.data.get(self.media_key):
            return self.generated(request, envelope.data[self.media_key])
        return self.invalid_response(envelope)

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers=self.headers(request),
            attachments=self.attachments(request),
        )
        return self.map_response(request, envelope)


class StabilitySDXLAdapter(StabilityAdapter):
    """SDXL 1.0 on the v1 JSON API."""

    def headers(self, request: GenerationRequest) -> dict[str, str]:
        return {
            "Authorization": stability_auth(request.secret_value),
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        dimensions = request.art_dimensions
        if dimensions not in self.model.dimensions:
            dimensions = "1024x1024"
        width, height = (int(part) for part in dimensions.split("x"))

        text_prompts = [{"text": request.variant_prompt(), "weight": 1}]
        if request.negative_prompt:
            text_prompts.append({"text": request.negative_prompt, "weight": -1})
        return {
            "text_prompts": text_prompts,
            "cfg_scale": 7,
            "width": width,
            "height": height,
            "steps": 30,
            "samples": 1,
        }

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        if isinstance(envelope, JsonObject):
            artifacts = envelope.data.get("artifacts")
            if isinstance(artifacts, list) and artifacts and artifacts[0].get("base64"):
                return self.generated(request, artifacts[0]["base64"])
        return self.invalid_response(envelope)


class StabilityEditAdapter(StabilityAdapter):
    """v2beta edit and upscale endpoints working on a client image."""

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        code = self.model.code
        body: dict[str, Any] = {"output_format": "png"}

        if code != ModelCode.STABILITY_REMOVE_BACKGROUND and code != ModelCode.STABILITY_ERASE:
            body["prompt"] = request.prompt or None
            body["negative_prompt"] = request.negative_prompt or None
        if code == ModelCode.STABILITY_SEARCH_AND_REPLACE:
            body["search_prompt"] = request.search_prompt
        if code == ModelCode.STABILITY_OUTPAINT:
            direction = request.edit_direction
            body.update(
                left=direction.left if direction else 0,
                right=direction.right if direction else 0,
                up=direction.up if direction else 0,
                down=direction.down if direction else 0,
            )
        return body

    def attachments(self, request: GenerationRequest) -> list[Attachment]:
        if not request.client_image:
            raise ModelError("Select an image")
        parts = [Attachment("image", decode_media(request.client_image))]
        if self.model.code in (ModelCode.STABILITY_ERASE, ModelCode.STABILITY_INPAINT):
            if request.client_mask:
                parts.append(Attachment("mask", decode_media(request.client_mask), "mask.png"))
        return parts


class StabilityAsyncAdapter(StabilityEditAdapter):
    """Creative upscale and image-to-video: submit, then poll for the result."""

    poll_interval = 8.0
    max_poll_attempts = 10

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.model.code == ModelCode.STABILITY_IMAGE_TO_VIDEO:
            self.media_key = "video"

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        if self.model.code != ModelCode.STABILITY_IMAGE_TO_VIDEO:
            return super().transform_request(request)
        return {
            "cfg_scale": request.stickiness,
            "motion_bucket_id": request.motion,
        }

    def attachments(self, request: GenerationRequest) -> list[Attachment]:
        if not request.client_image:
            raise ModelError("Select an image")
        return [Attachment("image", decode_media(request.client_image))]

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        headers = self.headers(request)
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers=headers,
            attachments=self.attachments(request),
        )

        request_id = None
        if isinstance(envelope, JsonObject):
            request_id = envelope.data.get("id")
        elif isinstance(envelope, JsonArray) and envelope.data:
            first = envelope.data[0]
            request_id = first.get("id") if isinstance(first, dict) else None
        if not request_id:
            return self.invalid_response(envelope)

        result_url = f"{self.model.generate_url}/result/{request_id}"

        async def fetch_result() -> ResponseEnvelope:
            return await self.transport.perform(
                result_url,
                method="GET",
                headers={"Authorization": headers["Authorization"], "Accept": "application/json"},
            )

        # 202 means still running; any other status is the final answer
        final = await self.poll_until(fetch_result, lambda e: e.status_code != 202)
        return self.map_response(request, final)
