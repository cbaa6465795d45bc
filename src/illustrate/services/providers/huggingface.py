"""Hugging Face Inference API adapter.

The endpoint answers with raw image bytes on success and a JSON error
object otherwise.
"""

from typing import Any

from illustrate.services.generation.contracts import GenerationRequest, GenerationResult
from illustrate.services.providers.base import ProviderAdapter
from illustrate.services.transport import ResponseEnvelope


class HuggingFaceAdapter(ProviderAdapter):
    def transform_request(self, request: GenerationRequest) -> dict[str, Any]:
        return {"inputs": request.variant_prompt()}

    def transform_response(
        self, request: GenerationRequest, envelope: ResponseEnvelope
    ) -> GenerationResult:
        media = self.binary_to_base64(envelope)
        if media:
            return self.generated(request, media)
        return self.invalid_response(envelope)

    async def execute(self, request: GenerationRequest) -> GenerationResult:
        envelope = await self.transport.perform(
            self.model.generate_url,
            method="POST",
            body=self.transform_request(request),
            headers={
                "Authorization": f"Bearer {request.secret_value}",
                "Content-Type": "application/json",
            },
        )
        return self.map_response(request, envelope)
