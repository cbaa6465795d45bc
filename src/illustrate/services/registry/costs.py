"""Price estimation for generation requests.

All functions are pure: prices come from static tables keyed by model code,
so previews can be shown before a job is submitted.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING

from illustrate.models.generation import ArtQuality
from illustrate.services.registry.models import ModelCode, ModelRegistry

if TYPE_CHECKING:
    from illustrate.services.generation.contracts import GenerationRequest

DEFAULT_VIDEO_DURATION_SECONDS = 8


class CostUnit(str, Enum):
    CREDITS = "credits"
    DOLLARS = "dollars"


_D = Decimal

# Flat per-image prices (Stability AI prices are in credits)
_IMAGE_PRICES: dict[ModelCode, Decimal] = {
    ModelCode.STABILITY_ULTRA: _D("8"),
    ModelCode.STABILITY_CORE: _D("3"),
    ModelCode.STABILITY_SDXL: _D("0.2"),
    ModelCode.STABILITY_SD3: _D("6.5"),
    ModelCode.STABILITY_SD3_TURBO: _D("4"),
    ModelCode.STABILITY_SD35_LARGE: _D("6.5"),
    ModelCode.STABILITY_SD35_LARGE_TURBO: _D("4"),
    ModelCode.STABILITY_SD35_MEDIUM: _D("3.5"),
    ModelCode.STABILITY_SD35_FLASH: _D("2.5"),
    ModelCode.STABILITY_CREATIVE_UPSCALE: _D("25"),
    ModelCode.STABILITY_CONSERVATIVE_UPSCALE: _D("25"),
    ModelCode.STABILITY_ERASE: _D("3"),
    ModelCode.STABILITY_INPAINT: _D("3"),
    ModelCode.STABILITY_OUTPAINT: _D("4"),
    ModelCode.STABILITY_SEARCH_AND_REPLACE: _D("4"),
    ModelCode.STABILITY_REMOVE_BACKGROUND: _D("2"),
    ModelCode.STABILITY_IMAGE_TO_VIDEO: _D("20"),
    ModelCode.GOOGLE_IMAGEN_3: _D("0.03"),
    ModelCode.GOOGLE_IMAGEN_4_FAST: _D("0.02"),
    ModelCode.REPLICATE_FLUX_SCHNELL: _D("0.003"),
    ModelCode.REPLICATE_FLUX_DEV: _D("0.03"),
    ModelCode.REPLICATE_FLUX_PRO: _D("0.055"),
    ModelCode.REPLICATE_SEEDREAM_3: _D("0.03"),
    ModelCode.REPLICATE_DREAMINA_3_1: _D("0.03"),
    ModelCode.FAL_FLUX_SCHNELL: _D("0.003"),
    ModelCode.FAL_FLUX_DEV: _D("0.025"),
    ModelCode.FAL_FLUX_PRO: _D("0.05"),
    ModelCode.HUGGING_FACE_FLUX_SCHNELL: _D("0"),
    ModelCode.HUGGING_FACE_FLUX_DEV: _D("0"),
}

# Per-image prices that depend on quality: (HD, STANDARD)
_QUALITY_PRICES: dict[ModelCode, tuple[Decimal, Decimal]] = {
    ModelCode.OPENAI_GPT_IMAGE_1: (_D("0.17"), _D("0.04")),
    ModelCode.OPENAI_GPT_IMAGE_1_EDIT: (_D("0.17"), _D("0.04")),
    ModelCode.GOOGLE_IMAGEN_4_STANDARD: (_D("0.08"), _D("0.04")),
    ModelCode.GOOGLE_IMAGEN_4_ULTRA: (_D("0.12"), _D("0.06")),
}

# Per-second video prices
_VIDEO_PRICES: dict[ModelCode, Decimal] = {
    ModelCode.OPENAI_SORA_2: _D("0.10"),
    ModelCode.GOOGLE_VEO_31: _D("0.40"),
    ModelCode.GOOGLE_VEO_3: _D("0.40"),
    ModelCode.GOOGLE_VEO_31_FAST: _D("0.15"),
    ModelCode.GOOGLE_VEO_3_FAST: _D("0.15"),
    ModelCode.GOOGLE_VEO_2: _D("0.35"),
}

# Seedance per-second prices by output resolution: (1080p, 720p, lower)
_SEEDANCE_PRICES: dict[ModelCode, tuple[Decimal, Decimal, Decimal]] = {
    ModelCode.REPLICATE_SEEDANCE_1_PRO: (_D("0.15"), _D("0.06"), _D("0.03")),
    ModelCode.REPLICATE_SEEDANCE_1_PRO_FAST: (_D("0.06"), _D("0.025"), _D("0.015")),
    ModelCode.REPLICATE_SEEDANCE_1_LITE: (_D("0.072"), _D("0.036"), _D("0.018")),
}

_VIDEO_CODES = frozenset(
    {
        ModelCode.OPENAI_SORA_2,
        ModelCode.OPENAI_SORA_2_PRO,
        ModelCode.STABILITY_IMAGE_TO_VIDEO,
        *_VIDEO_PRICES,
        *_SEEDANCE_PRICES,
    }
)

_SORA_PRO_HIGH_RES = ("1792x1024", "1024x1792")


def is_video_model(model_code: ModelCode) -> bool:
    return model_code in _VIDEO_CODES


def is_credit_model(model_code: ModelCode) -> bool:
    """Stability AI bills in credits, everything else in dollars."""
    return model_code.value.startswith("STABILITY_")


def cost_unit(model_code: ModelCode) -> CostUnit:
    return CostUnit.CREDITS if is_credit_model(model_code) else CostUnit.DOLLARS


def _dalle3_price(quality: ArtQuality, dimensions: str) -> Decimal:
    square = dimensions == "1024x1024"
    if quality == ArtQuality.STANDARD:
        return _D("0.04") if square else _D("0.08")
    return _D("0.08") if square else _D("0.12")


def estimate_image_cost(
    model_code: ModelCode,
    quality: ArtQuality = ArtQuality.STANDARD,
    dimensions: str = "1024x1024",
    count: int = 1,
) -> Decimal:
    """Per-image price multiplied by ``count``.

    Video codes fall back to their per-second rate as a per-item price.
    """
    if model_code == ModelCode.OPENAI_DALLE3:
        base = _dalle3_price(quality, dimensions)
    elif model_code in _QUALITY_PRICES:
        hd, standard = _QUALITY_PRICES[model_code]
        base = hd if quality == ArtQuality.HD else standard
    elif model_code in _IMAGE_PRICES:
        base = _IMAGE_PRICES[model_code]
    elif model_code == ModelCode.OPENAI_SORA_2_PRO:
        base = _D("0.50") if dimensions in _SORA_PRO_HIGH_RES else _D("0.30")
    else:
        base = _VIDEO_PRICES.get(model_code, _D("0"))
    return base * count


def estimate_video_cost(
    model_code: ModelCode,
    duration_seconds: int = DEFAULT_VIDEO_DURATION_SECONDS,
    count: int = 1,
    dimensions: str = "1280x720",
) -> Decimal:
    """Per-second price multiplied by duration and ``count``.

    Stability image-to-video is a flat per-video credit price.
    """
    if model_code == ModelCode.STABILITY_IMAGE_TO_VIDEO:
        return _IMAGE_PRICES[model_code] * count

    if model_code == ModelCode.OPENAI_SORA_2_PRO:
        per_second = _D("0.50") if dimensions in _SORA_PRO_HIGH_RES else _D("0.30")
    elif model_code in _SEEDANCE_PRICES:
        full_hd, hd, low = _SEEDANCE_PRICES[model_code]
        if "1080" in dimensions:
            per_second = full_hd
        elif "720" in dimensions:
            per_second = hd
        else:
            per_second = low
    else:
        per_second = _VIDEO_PRICES.get(model_code, _D("0"))

    return per_second * duration_seconds * count


def estimate_cost(
    model_code: ModelCode,
    quality: ArtQuality = ArtQuality.STANDARD,
    dimensions: str = "1024x1024",
    count: int = 1,
    duration_seconds: int | None = None,
) -> Decimal:
    """Estimate the total cost of a request.

    Args:
        model_code: Backend variant being priced
        quality: Requested quality (ignored by flat-priced models)
        dimensions: Requested output dimensions, "WIDTHxHEIGHT"
        count: Number of outputs
        duration_seconds: Video length, defaults to 8 seconds for video models

    Returns:
        Total cost in the model's unit (see ``cost_unit``)
    """
    if is_video_model(model_code):
        return estimate_video_cost(
            model_code,
            duration_seconds or DEFAULT_VIDEO_DURATION_SECONDS,
            count,
            dimensions,
        )
    return estimate_image_cost(model_code, quality, dimensions, count)


def credits_used(request: "GenerationRequest", registry: ModelRegistry) -> Decimal:
    """Cost of a canonical request, zero when the model is not registered."""
    descriptor = registry.lookup(request.model_id)
    if descriptor is None:
        return _D("0")
    return estimate_cost(
        descriptor.code,
        request.art_quality,
        request.art_dimensions,
        request.count,
        request.duration_seconds,
    )


def format_cost(cost: Decimal | float, unit: CostUnit = CostUnit.DOLLARS) -> str:
    """Format a cost for display.

    Examples:
        0 -> "Free"; 8 credits -> "8 credits"; 6.5 credits -> "6.5 credits";
        0.003 dollars -> "$0.0030"; 0.04 dollars -> "$0.04"
    """
    value = _D(str(cost))
    if value == 0:
        return "Free"
    if unit == CostUnit.CREDITS:
        if value == value.to_integral_value():
            return f"{value:.0f} credits"
        return f"{value.quantize(_D('0.1'), rounding=ROUND_HALF_UP)} credits"
    if value < _D("0.01"):
        return f"${value.quantize(_D('0.0001'), rounding=ROUND_HALF_UP)}"
    return f"${value.quantize(_D('0.01'), rounding=ROUND_HALF_UP)}"
