"""Model id to adapter dispatch."""

import structlog

from illustrate.services.exceptions import UnknownModel
from illustrate.services.providers.base import ProviderAdapter
from illustrate.services.providers.fal import FalAdapter
from illustrate.services.providers.google import GoogleImagenAdapter, GoogleVeoAdapter
from illustrate.services.providers.huggingface import HuggingFaceAdapter
from illustrate.services.providers.openai import (
    OpenAIImageAdapter,
    OpenAIImageEditAdapter,
    OpenAISoraAdapter,
)
from illustrate.services.providers.replicate import ReplicateAdapter, ReplicateSeedanceAdapter
from illustrate.services.providers.stability import (
    StabilityAdapter,
    StabilityAsyncAdapter,
    StabilityEditAdapter,
    StabilitySDXLAdapter,
)
from illustrate.services.registry.models import ModelCode, ModelRegistry
from illustrate.services.transport import HttpTransport

logger = structlog.get_logger(__name__)

ADAPTERS: dict[ModelCode, type[ProviderAdapter]] = {
    ModelCode.OPENAI_DALLE3: OpenAIImageAdapter,
    ModelCode.OPENAI_GPT_IMAGE_1: OpenAIImageAdapter,
    ModelCode.OPENAI_GPT_IMAGE_1_EDIT: OpenAIImageEditAdapter,
    ModelCode.OPENAI_SORA_2: OpenAISoraAdapter,
    ModelCode.OPENAI_SORA_2_PRO: OpenAISoraAdapter,
    ModelCode.STABILITY_ULTRA: StabilityAdapter,
    ModelCode.STABILITY_CORE: StabilityAdapter,
    ModelCode.STABILITY_SDXL: StabilitySDXLAdapter,
    ModelCode.STABILITY_SD3: StabilityAdapter,
    ModelCode.STABILITY_SD3_TURBO: StabilityAdapter,
    ModelCode.STABILITY_SD35_LARGE: StabilityAdapter,
    ModelCode.STABILITY_SD35_LARGE_TURBO: StabilityAdapter,
    ModelCode.STABILITY_SD35_MEDIUM: StabilityAdapter,
    ModelCode.STABILITY_SD35_FLASH: StabilityAdapter,
    ModelCode.STABILITY_CREATIVE_UPSCALE: StabilityAsyncAdapter,
    ModelCode.STABILITY_CONSERVATIVE_UPSCALE: StabilityEditAdapter,
    ModelCode.STABILITY_ERASE: StabilityEditAdapter,
    ModelCode.STABILITY_INPAINT: StabilityEditAdapter,
    ModelCode.STABILITY_OUTPAINT: StabilityEditAdapter,
    ModelCode.STABILITY_SEARCH_AND_REPLACE: StabilityEditAdapter,
    ModelCode.STABILITY_REMOVE_BACKGROUND: StabilityEditAdapter,
    ModelCode.STABILITY_IMAGE_TO_VIDEO: StabilityAsyncAdapter,
    ModelCode.REPLICATE_FLUX_SCHNELL: ReplicateAdapter,
    ModelCode.REPLICATE_FLUX_DEV: ReplicateAdapter,
    ModelCode.REPLICATE_FLUX_PRO: ReplicateAdapter,
    ModelCode.REPLICATE_SEEDREAM_3: ReplicateAdapter,
    ModelCode.REPLICATE_DREAMINA_3_1: ReplicateAdapter,
    ModelCode.REPLICATE_SEEDANCE_1_PRO: ReplicateSeedanceAdapter,
    ModelCode.REPLICATE_SEEDANCE_1_PRO_FAST: ReplicateSeedanceAdapter,
    ModelCode.REPLICATE_SEEDANCE_1_LITE: ReplicateSeedanceAdapter,
    ModelCode.FAL_FLUX_SCHNELL: FalAdapter,
    ModelCode.FAL_FLUX_DEV: FalAdapter,
    ModelCode.FAL_FLUX_PRO: FalAdapter,
    ModelCode.HUGGING_FACE_FLUX_SCHNELL: HuggingFaceAdapter,
    ModelCode.HUGGING_FACE_FLUX_DEV: HuggingFaceAdapter,
    ModelCode.GOOGLE_IMAGEN_3: GoogleImagenAdapter,
    ModelCode.GOOGLE_IMAGEN_4_FAST: GoogleImagenAdapter,
    ModelCode.GOOGLE_IMAGEN_4_STANDARD: GoogleImagenAdapter,
    ModelCode.GOOGLE_IMAGEN_4_ULTRA: GoogleImagenAdapter,
    ModelCode.GOOGLE_VEO_2: GoogleVeoAdapter,
    ModelCode.GOOGLE_VEO_3: GoogleVeoAdapter,
    ModelCode.GOOGLE_VEO_3_FAST: GoogleVeoAdapter,
    ModelCode.GOOGLE_VEO_31: GoogleVeoAdapter,
    ModelCode.GOOGLE_VEO_31_FAST: GoogleVeoAdapter,
}


class AdapterResolver:
    """Builds the adapter for a model id.

    Resolution never touches the network, so an unknown id is reported
    before any request is made.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        transport: HttpTransport,
        poll_interval_scale: float = 1.0,
        adapters: dict[ModelCode, type[ProviderAdapter]] | None = None,
    ):
        self.registry = registry
        self.transport = transport
        self.poll_interval_scale = poll_interval_scale
        self.adapters = adapters if adapters is not None else ADAPTERS

    def resolve(self, model_id: str) -> ProviderAdapter:
        """Return a fresh adapter bound to ``model_id``'s descriptor.

        Raises:
            UnknownModel: Id not registered, model inactive, or no adapter for its code
        """
        descriptor = self.registry.lookup(model_id)
        if descriptor is None or not descriptor.active:
            raise UnknownModel(model_id)

        adapter_cls = self.adapters.get(descriptor.code)
        if adapter_cls is None:
            logger.error("resolver.adapter.missing", model_id=model_id, code=descriptor.code.value)
            raise UnknownModel(model_id)

        return adapter_cls(descriptor, self.transport, self.poll_interval_scale)
