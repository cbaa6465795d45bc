"""fal.ai FLUX adapters (synchronous mode)."""

from typing import Any

from illustrate.services.generation.contracts import (
    GenerationRequest,
    GenerationResult,
    strip_data_uri,
)
from illustrate.services.providers.base import ProviderAdapter
from illustrate.services.transport import JsonObject, ResponseEnvelope

IMAGE_SIZES = {
    "1024x1024": "square_hd",
    "1920x1080": "landscape_16_9",
    "1440x1080": "landscape_4_3",
    "1080x1920": "portrait_16_9",
    "1080x1440": "portrait_4_3",
}


class FalAdapter(ProviderAdapter):
    """``sync_mode`` returns the image inline as a data URI, or as a URL to fetch."""

    def headers(self, request: GenerationRequest) -> dict[str, str]:
        return {
            "Authorization": f"Key {request.secret_value}",
            "Content-Type": "application/json",
        }

    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        return {
            "prompt": request.variant_prompt(),
            "num_images": 1,
            "image_size": IMAGE_SIZES.get(request.art_dimensions, "square_hd"),
            "sync_mode": True,
            "enable_safety_checker": False,
            "safety_tolerance": "5",
        }

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        if isinstance(envelope, JsonObject):
            images = envelope.data.get("images")
            if isinstance(images, list) and images and images[0].get("url", "").startswith("data:"):
                return self.generated(request, strip_data_uri(images[0]["url"]))
        return self.invalid_response(envelope)

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers=self.headers(request),
        )
        if isinstance(envelope, JsonObject):
            images = envelope.data.get("images")
            url = images[0].get("url", "") if isinstance(images, list) and images else ""
            if url.startswith(("http://", "https://")):
                return self.generated(request, await self.download_media(url))
        return self.map_response(request, envelope)
