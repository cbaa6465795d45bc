"""Static catalog of provider models and lookup helpers."""

from dataclasses import dataclass, field
from enum import Enum

from illustrate.models.generation import SetType
from illustrate.services.exceptions import UnknownModel


class Provider(str, Enum):
    OPENAI = "openai"
    STABILITY_AI = "stability_ai"
    REPLICATE = "replicate"
    FAL_AI = "fal_ai"
    HUGGING_FACE = "hugging_face"
    GOOGLE = "google"


class ModelCode(str, Enum):
    """Closed set of backend variants; adapters are dispatched on this value."""

    OPENAI_DALLE3 = "OPENAI_DALLE3"
    OPENAI_GPT_IMAGE_1 = "OPENAI_GPT_IMAGE_1"
    OPENAI_GPT_IMAGE_1_EDIT = "OPENAI_GPT_IMAGE_1_EDIT"
    OPENAI_SORA_2 = "OPENAI_SORA_2"
    OPENAI_SORA_2_PRO = "OPENAI_SORA_2_PRO"
    STABILITY_ULTRA = "STABILITY_ULTRA"
    STABILITY_CORE = "STABILITY_CORE"
    STABILITY_SDXL = "STABILITY_SDXL"
    STABILITY_SD3 = "STABILITY_SD3"
    STABILITY_SD3_TURBO = "STABILITY_SD3_TURBO"
    STABILITY_SD35_LARGE = "STABILITY_SD35_LARGE"
    STABILITY_SD35_LARGE_TURBO = "STABILITY_SD35_LARGE_TURBO"
    STABILITY_SD35_MEDIUM = "STABILITY_SD35_MEDIUM"
    STABILITY_SD35_FLASH = "STABILITY_SD35_FLASH"
    STABILITY_CREATIVE_UPSCALE = "STABILITY_CREATIVE_UPSCALE"
    STABILITY_CONSERVATIVE_UPSCALE = "STABILITY_CONSERVATIVE_UPSCALE"
    STABILITY_ERASE = "STABILITY_ERASE"
    STABILITY_INPAINT = "STABILITY_INPAINT"
    STABILITY_OUTPAINT = "STABILITY_OUTPAINT"
    STABILITY_SEARCH_AND_REPLACE = "STABILITY_SEARCH_AND_REPLACE"
    STABILITY_REMOVE_BACKGROUND = "STABILITY_REMOVE_BACKGROUND"
    STABILITY_IMAGE_TO_VIDEO = "STABILITY_IMAGE_TO_VIDEO"
    REPLICATE_FLUX_SCHNELL = "REPLICATE_FLUX_SCHNELL"
    REPLICATE_FLUX_DEV = "REPLICATE_FLUX_DEV"
    REPLICATE_FLUX_PRO = "REPLICATE_FLUX_PRO"
    REPLICATE_SEEDREAM_3 = "REPLICATE_SEEDREAM_3"
    REPLICATE_DREAMINA_3_1 = "REPLICATE_DREAMINA_3_1"
    REPLICATE_SEEDANCE_1_PRO = "REPLICATE_SEEDANCE_1_PRO"
    REPLICATE_SEEDANCE_1_PRO_FAST = "REPLICATE_SEEDANCE_1_PRO_FAST"
    REPLICATE_SEEDANCE_1_LITE = "REPLICATE_SEEDANCE_1_LITE"
    FAL_FLUX_SCHNELL = "FAL_FLUX_SCHNELL"
    FAL_FLUX_DEV = "FAL_FLUX_DEV"
    FAL_FLUX_PRO = "FAL_FLUX_PRO"
    HUGGING_FACE_FLUX_SCHNELL = "HUGGING_FACE_FLUX_SCHNELL"
    HUGGING_FACE_FLUX_DEV = "HUGGING_FACE_FLUX_DEV"
    GOOGLE_IMAGEN_3 = "GOOGLE_IMAGEN_3"
    GOOGLE_IMAGEN_4_FAST = "GOOGLE_IMAGEN_4_FAST"
    GOOGLE_IMAGEN_4_STANDARD = "GOOGLE_IMAGEN_4_STANDARD"
    GOOGLE_IMAGEN_4_ULTRA = "GOOGLE_IMAGEN_4_ULTRA"
    GOOGLE_VEO_2 = "GOOGLE_VEO_2"
    GOOGLE_VEO_3 = "GOOGLE_VEO_3"
    GOOGLE_VEO_3_FAST = "GOOGLE_VEO_3_FAST"
    GOOGLE_VEO_31 = "GOOGLE_VEO_31"
    GOOGLE_VEO_31_FAST = "GOOGLE_VEO_31_FAST"


@dataclass(frozen=True)
class ModelDescriptor:
    """Immutable description of one generation model."""

    provider: Provider
    model_id: str
    code: ModelCode
    set_type: SetType
    name: str
    generate_url: str
    status_url: str | None = None
    description: str = ""
    dimensions: tuple[str, ...] = ("1024x1024",)
    durations: tuple[int, ...] = ()
    max_prompt_length: int = 4000
    supports_negative_prompt: bool = False
    supports_quality: bool = False
    supports_variant: bool = True
    supports_style: bool = False
    max_count: int = 4
    docs_url: str | None = None
    active: bool = True
    # Backend model name for shared endpoints (SD3 family, Veo, Imagen)
    backend_model: str | None = field(default=None)

    @property
    def is_video(self) -> bool:
        return self.set_type.is_video


_OPENAI = "https://api.openai.com/v1"
_STABILITY = "https://api.stability.ai"
_REPLICATE = "https://api.replicate.com/v1"
_GOOGLE = "https://generativelanguage.googleapis.com/v1beta"
_FLUX_DIMENSIONS = ("1024x1024", "1920x1080", "1440x1080", "1080x1920", "1080x1440")
_REPLICATE_FLUX_DIMENSIONS = (
    "1024x1024",
    "1920x1080",
    "2560x1080",
    "1024x1536",
    "1620x1080",
    "1280x1024",
    "1080x1920",
    "1080x2520",
)
_SD3_DIMENSIONS = ("1024x1024", "1024x576", "576x1024", "1024x768", "768x1024")
_SDXL_DIMENSIONS = (
    "1024x1024",
    "1152x896",
    "1216x832",
    "1344x768",
    "1536x640",
    "640x1536",
    "768x1344",
    "832x1216",
    "896x1152",
)
_SEEDANCE_DIMENSIONS = ("1920x1080", "1080x1920", "1280x720", "720x1280", "1024x1024", "864x480")
_VEO_DIMENSIONS = ("1280x720", "720x1280", "1920x1080", "1080x1920")


def _stability_sd3(model_id: str, code: ModelCode, name: str, backend_model: str):
    return ModelDescriptor(
        provider=Provider.STABILITY_AI,
        model_id=model_id,
        code=code,
        set_type=SetType.GENERATE,
        name=name,
        generate_url=f"{_STABILITY}/v2beta/stable-image/generate/sd3",
        dimensions=_SD3_DIMENSIONS,
        max_prompt_length=10000,
        supports_negative_prompt=True,
        backend_model=backend_model,
    )


def _stability_edit(model_id: str, code: ModelCode, set_type: SetType, name: str, path: str):
    return ModelDescriptor(
        provider=Provider.STABILITY_AI,
        model_id=model_id,
        code=code,
        set_type=set_type,
        name=name,
        generate_url=f"{_STABILITY}/v2beta/stable-image/{path}",
        dimensions=(),
        max_prompt_length=10000,
        supports_negative_prompt=True,
        supports_variant=False,
        max_count=1,
    )


def _replicate_image(model_id: str, code: ModelCode, name: str, slug: str, dimensions):
    return ModelDescriptor(
        provider=Provider.REPLICATE,
        model_id=model_id,
        code=code,
        set_type=SetType.GENERATE,
        name=name,
        generate_url=f"{_REPLICATE}/models/{slug}/predictions",
        status_url=f"{_REPLICATE}/predictions",
        dimensions=dimensions,
        max_prompt_length=256,
        docs_url=f"https://replicate.com/{slug}?input=http",
    )


def _seedance(model_id: str, code: ModelCode, name: str, slug: str):
    return ModelDescriptor(
        provider=Provider.REPLICATE,
        model_id=model_id,
        code=code,
        set_type=SetType.VIDEO_TEXT,
        name=name,
        generate_url=f"{_REPLICATE}/models/{slug}/predictions",
        status_url=f"{_REPLICATE}/predictions",
        dimensions=_SEEDANCE_DIMENSIONS,
        durations=(5, 10),
        max_prompt_length=2000,
        supports_variant=False,
        max_count=2,
    )


def _fal(model_id: str, code: ModelCode, name: str, path: str):
    return ModelDescriptor(
        provider=Provider.FAL_AI,
        model_id=model_id,
        code=code,
        set_type=SetType.GENERATE,
        name=name,
        generate_url=f"https://fal.run/fal-ai/{path}",
        dimensions=_FLUX_DIMENSIONS,
        max_prompt_length=256,
        docs_url=f"https://fal.ai/models/fal-ai/{path}",
    )


def _hugging_face(model_id: str, code: ModelCode, name: str, repo: str, dimensions):
    url = f"https://api-inference.huggingface.co/models/black-forest-labs/{repo}"
    return ModelDescriptor(
        provider=Provider.HUGGING_FACE,
        model_id=model_id,
        code=code,
        set_type=SetType.GENERATE,
        name=name,
        generate_url=url,
        status_url=url,
        dimensions=dimensions,
        max_prompt_length=256,
    )


def _imagen(model_id: str, code: ModelCode, name: str, backend_model: str, quality: bool):
    return ModelDescriptor(
        provider=Provider.GOOGLE,
        model_id=model_id,
        code=code,
        set_type=SetType.GENERATE,
        name=name,
        generate_url=f"{_GOOGLE}/models/{backend_model}:predict",
        dimensions=("1024x1024", "768x1024", "1024x768", "576x1024", "1024x576"),
        max_prompt_length=480,
        supports_quality=quality,
        backend_model=backend_model,
    )


def _veo(model_id: str, code: ModelCode, name: str, backend_model: str, durations):
    return ModelDescriptor(
        provider=Provider.GOOGLE,
        model_id=model_id,
        code=code,
        set_type=SetType.VIDEO_TEXT,
        name=name,
        generate_url=f"{_GOOGLE}/models/{backend_model}:predictLongRunning",
        status_url=_GOOGLE,
        dimensions=_VEO_DIMENSIONS,
        durations=durations,
        max_prompt_length=1024,
        supports_negative_prompt=True,
        supports_variant=False,
        max_count=2,
        backend_model=backend_model,
    )


CATALOG: tuple[ModelDescriptor, ...] = (
    # OpenAI
    ModelDescriptor(
        provider=Provider.OPENAI,
        model_id="dall-e-3",
        code=ModelCode.OPENAI_DALLE3,
        set_type=SetType.GENERATE,
        name="DALL·E 3",
        generate_url=f"{_OPENAI}/images/generations",
        dimensions=("1024x1024", "1792x1024", "1024x1792"),
        supports_quality=True,
        supports_style=True,
        docs_url="https://platform.openai.com/docs/api-reference/images/create",
    ),
    ModelDescriptor(
        provider=Provider.OPENAI,
        model_id="gpt-image-1",
        code=ModelCode.OPENAI_GPT_IMAGE_1,
        set_type=SetType.GENERATE,
        name="GPT Image 1",
        generate_url=f"{_OPENAI}/images/generations",
        dimensions=("1024x1024", "1536x1024", "1024x1536"),
        supports_quality=True,
    ),
    ModelDescriptor(
        provider=Provider.OPENAI,
        model_id="gpt-image-1-edit",
        code=ModelCode.OPENAI_GPT_IMAGE_1_EDIT,
        set_type=SetType.EDIT_PROMPT,
        name="GPT Image 1 Edit",
        generate_url=f"{_OPENAI}/images/edits",
        dimensions=("1024x1024", "1536x1024", "1024x1536"),
        supports_quality=True,
    ),
    ModelDescriptor(
        provider=Provider.OPENAI,
        model_id="sora-2",
        code=ModelCode.OPENAI_SORA_2,
        set_type=SetType.VIDEO_TEXT,
        name="Sora 2",
        generate_url=f"{_OPENAI}/videos",
        status_url=f"{_OPENAI}/videos",
        dimensions=("1280x720", "720x1280"),
        durations=(4, 8, 12),
        supports_variant=False,
        max_count=2,
    ),
    ModelDescriptor(
        provider=Provider.OPENAI,
        model_id="sora-2-pro",
        code=ModelCode.OPENAI_SORA_2_PRO,
        set_type=SetType.VIDEO_TEXT,
        name="Sora 2 Pro",
        generate_url=f"{_OPENAI}/videos",
        status_url=f"{_OPENAI}/videos",
        dimensions=("1280x720", "720x1280", "1792x1024", "1024x1792"),
        durations=(4, 8, 12),
        supports_variant=False,
        max_count=2,
    ),
    # Stability AI
    ModelDescriptor(
        provider=Provider.STABILITY_AI,
        model_id="stable-image-ultra",
        code=ModelCode.STABILITY_ULTRA,
        set_type=SetType.GENERATE,
        name="Stable Image Ultra",
        generate_url=f"{_STABILITY}/v2beta/stable-image/generate/ultra",
        dimensions=_SD3_DIMENSIONS,
        max_prompt_length=10000,
        supports_negative_prompt=True,
    ),
    ModelDescriptor(
        provider=Provider.STABILITY_AI,
        model_id="stable-image-core",
        code=ModelCode.STABILITY_CORE,
        set_type=SetType.GENERATE,
        name="Stable Image Core",
        generate_url=f"{_STABILITY}/v2beta/stable-image/generate/core",
        dimensions=_SD3_DIMENSIONS,
        max_prompt_length=10000,
        supports_negative_prompt=True,
    ),
    ModelDescriptor(
        provider=Provider.STABILITY_AI,
        model_id="sdxl-1.0",
        code=ModelCode.STABILITY_SDXL,
        set_type=SetType.GENERATE,
        name="Stable Diffusion XL 1.0",
        generate_url=f"{_STABILITY}/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image",
        dimensions=_SDXL_DIMENSIONS,
        max_prompt_length=2000,
        supports_negative_prompt=True,
    ),
    _stability_sd3("sd3", ModelCode.STABILITY_SD3, "Stable Diffusion 3", "sd3"),
    _stability_sd3("sd3-turbo", ModelCode.STABILITY_SD3_TURBO, "SD3 Turbo", "sd3-turbo"),
    _stability_sd3(
        "sd3.5-large", ModelCode.STABILITY_SD35_LARGE, "SD 3.5 Large", "sd3.5-large"
    ),
    _stability_sd3(
        "sd3.5-large-turbo",
        ModelCode.STABILITY_SD35_LARGE_TURBO,
        "SD 3.5 Large Turbo",
        "sd3.5-large-turbo",
    ),
    _stability_sd3(
        "sd3.5-medium", ModelCode.STABILITY_SD35_MEDIUM, "SD 3.5 Medium", "sd3.5-medium"
    ),
    _stability_sd3("sd3.5-flash", ModelCode.STABILITY_SD35_FLASH, "SD 3.5 Flash", "sd3.5-flash"),
    _stability_edit(
        "creative-upscale",
        ModelCode.STABILITY_CREATIVE_UPSCALE,
        SetType.EDIT_UPSCALE,
        "Creative Upscale",
        "upscale/creative",
    ),
    _stability_edit(
        "conservative-upscale",
        ModelCode.STABILITY_CONSERVATIVE_UPSCALE,
        SetType.EDIT_UPSCALE,
        "Conservative Upscale",
        "upscale/conservative",
    ),
    _stability_edit(
        "erase", ModelCode.STABILITY_ERASE, SetType.EDIT_MASK_ERASE, "Erase", "edit/erase"
    ),
    _stability_edit(
        "inpaint", ModelCode.STABILITY_INPAINT, SetType.EDIT_MASK, "Inpaint", "edit/inpaint"
    ),
    _stability_edit(
        "outpaint", ModelCode.STABILITY_OUTPAINT, SetType.EDIT_EXPAND, "Outpaint", "edit/outpaint"
    ),
    _stability_edit(
        "search-and-replace",
        ModelCode.STABILITY_SEARCH_AND_REPLACE,
        SetType.EDIT_REPLACE,
        "Search and Replace",
        "edit/search-and-replace",
    ),
    _stability_edit(
        "remove-background",
        ModelCode.STABILITY_REMOVE_BACKGROUND,
        SetType.REMOVE_BACKGROUND,
        "Remove Background",
        "edit/remove-background",
    ),
    ModelDescriptor(
        provider=Provider.STABILITY_AI,
        model_id="stable-video-diffusion",
        code=ModelCode.STABILITY_IMAGE_TO_VIDEO,
        set_type=SetType.VIDEO_IMAGE,
        name="Stable Video Diffusion",
        generate_url=f"{_STABILITY}/v2beta/image-to-video",
        dimensions=("1024x576", "576x1024", "768x768"),
        durations=(4,),
        supports_variant=False,
        max_count=1,
    ),
    # Replicate
    _replicate_image(
        "flux-schnell",
        ModelCode.REPLICATE_FLUX_SCHNELL,
        "FLUX.1 [schnell]",
        "black-forest-labs/flux-schnell",
        _REPLICATE_FLUX_DIMENSIONS,
    ),
    _replicate_image(
        "flux-dev",
        ModelCode.REPLICATE_FLUX_DEV,
        "FLUX.1 [dev]",
        "black-forest-labs/flux-dev",
        _REPLICATE_FLUX_DIMENSIONS,
    ),
    _replicate_image(
        "flux-pro",
        ModelCode.REPLICATE_FLUX_PRO,
        "FLUX.1 [pro]",
        "black-forest-labs/flux-pro",
        ("1024x1024", "1920x1080", "1024x1536", "1620x1080", "1280x1024", "1080x1920"),
    ),
    _replicate_image(
        "seedream-3",
        ModelCode.REPLICATE_SEEDREAM_3,
        "Seedream 3",
        "bytedance/seedream-3",
        ("1024x1024", "1920x1080", "1080x1920", "1440x1080", "1080x1440"),
    ),
    _replicate_image(
        "dreamina-3.1",
        ModelCode.REPLICATE_DREAMINA_3_1,
        "Dreamina 3.1",
        "bytedance/dreamina-3.1",
        ("1024x1024", "1920x1080", "1080x1920", "1440x1080", "1080x1440"),
    ),
    _seedance(
        "seedance-1-pro",
        ModelCode.REPLICATE_SEEDANCE_1_PRO,
        "Seedance 1 Pro",
        "bytedance/seedance-1-pro",
    ),
    _seedance(
        "seedance-1-pro-fast",
        ModelCode.REPLICATE_SEEDANCE_1_PRO_FAST,
        "Seedance 1 Pro Fast",
        "bytedance/seedance-1-pro-fast",
    ),
    _seedance(
        "seedance-1-lite",
        ModelCode.REPLICATE_SEEDANCE_1_LITE,
        "Seedance 1 Lite",
        "bytedance/seedance-1-lite",
    ),
    # fal.ai
    _fal("fal-flux-schnell", ModelCode.FAL_FLUX_SCHNELL, "FLUX.1 [schnell]", "flux/schnell"),
    _fal("fal-flux-dev", ModelCode.FAL_FLUX_DEV, "FLUX.1 [dev]", "flux/dev"),
    _fal("fal-flux-pro", ModelCode.FAL_FLUX_PRO, "FLUX.1 [pro]", "flux-pro"),
    # Hugging Face
    _hugging_face(
        "hf-flux-schnell",
        ModelCode.HUGGING_FACE_FLUX_SCHNELL,
        "FLUX.1 [schnell]",
        "FLUX.1-schnell",
        ("1024x1024",),
    ),
    _hugging_face(
        "hf-flux-dev",
        ModelCode.HUGGING_FACE_FLUX_DEV,
        "FLUX.1 [dev]",
        "FLUX.1-dev",
        _FLUX_DIMENSIONS,
    ),
    # Google
    _imagen("imagen-3", ModelCode.GOOGLE_IMAGEN_3, "Imagen 3", "imagen-3.0-generate-002", False),
    _imagen(
        "imagen-4-fast",
        ModelCode.GOOGLE_IMAGEN_4_FAST,
        "Imagen 4 Fast",
        "imagen-4.0-fast-generate-001",
        False,
    ),
    _imagen(
        "imagen-4", ModelCode.GOOGLE_IMAGEN_4_STANDARD, "Imagen 4", "imagen-4.0-generate-001", True
    ),
    _imagen(
        "imagen-4-ultra",
        ModelCode.GOOGLE_IMAGEN_4_ULTRA,
        "Imagen 4 Ultra",
        "imagen-4.0-ultra-generate-001",
        True,
    ),
    _veo("veo-2", ModelCode.GOOGLE_VEO_2, "Veo 2", "veo-2.0-generate-001", (5, 6, 8)),
    _veo("veo-3", ModelCode.GOOGLE_VEO_3, "Veo 3", "veo-3.0-generate-001", (4, 6, 8)),
    _veo(
        "veo-3-fast",
        ModelCode.GOOGLE_VEO_3_FAST,
        "Veo 3 Fast",
        "veo-3.0-fast-generate-001",
        (4, 6, 8),
    ),
    _veo("veo-3.1", ModelCode.GOOGLE_VEO_31, "Veo 3.1", "veo-3.1-generate-preview", (4, 6, 8)),
    _veo(
        "veo-3.1-fast",
        ModelCode.GOOGLE_VEO_31_FAST,
        "Veo 3.1 Fast",
        "veo-3.1-fast-generate-preview",
        (4, 6, 8),
    ),
)


class ModelRegistry:
    """Read-only index over a model catalog.

    The registry is built once from a static table and never mutated; hosts
    construct one and pass it to the resolver and the queue.
    """

    def __init__(self, catalog: tuple[ModelDescriptor, ...] = CATALOG):
        by_id: dict[str, ModelDescriptor] = {}
        for descriptor in catalog:
            if descriptor.model_id in by_id:
                raise ValueError(f"Duplicate model id in catalog: {descriptor.model_id}")
            by_id[descriptor.model_id] = descriptor
        self._by_id = by_id
        self._by_code = {d.code: d for d in catalog}

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._by_id

    def lookup(self, model_id: str) -> ModelDescriptor | None:
        return self._by_id.get(model_id)

    def get(self, model_id: str) -> ModelDescriptor:
        """Return the descriptor for ``model_id``.

        Raises:
            UnknownModel: If the id is not registered
        """
        descriptor = self._by_id.get(model_id)
        if descriptor is None:
            raise UnknownModel(model_id)
        return descriptor

    def by_code(self, code: ModelCode) -> ModelDescriptor | None:
        return self._by_code.get(code)

    def models(
        self, set_type: SetType | None = None, active_only: bool = True
    ) -> list[ModelDescriptor]:
        return [
            d
            for d in self._by_id.values()
            if (set_type is None or d.set_type == set_type) and (d.active or not active_only)
        ]

    def models_for_provider(self, provider: Provider) -> list[ModelDescriptor]:
        return [d for d in self._by_id.values() if d.provider == provider and d.active]
