"""Cost estimator tests.

Prices are pure table lookups; the same inputs always give the same output.
"""

from decimal import Decimal

import pytest

from illustrate.models.generation import ArtQuality
from illustrate.services.generation.contracts import GenerationRequest
from illustrate.services.registry.costs import (
    CostUnit,
    cost_unit,
    credits_used,
    estimate_cost,
    format_cost,
    is_video_model,
)
from illustrate.services.registry.models import ModelCode, ModelRegistry


def test_estimate_cost_is_deterministic():
    """Repeated and interleaved calls return identical values."""
    args = (ModelCode.OPENAI_DALLE3, ArtQuality.HD, "1792x1024", 3)
    first = estimate_cost(*args)
    estimate_cost(ModelCode.REPLICATE_SEEDANCE_1_PRO, ArtQuality.HD, "1920x1080", 2, 10)
    second = estimate_cost(*args)

    assert first == second == Decimal("0.36")


@pytest.mark.parametrize(
    "code,quality,dimensions,count,expected",
    [
        (ModelCode.OPENAI_DALLE3, ArtQuality.STANDARD, "1024x1024", 1, Decimal("0.04")),
        (ModelCode.OPENAI_GPT_IMAGE_1, ArtQuality.HD, "1024x1024", 2, Decimal("0.34")),
        (ModelCode.STABILITY_SD3, ArtQuality.HD, "1024x1024", 2, Decimal("13")),
        (ModelCode.REPLICATE_FLUX_SCHNELL, ArtQuality.HD, "1024x1024", 4, Decimal("0.012")),
        (ModelCode.HUGGING_FACE_FLUX_DEV, ArtQuality.HD, "1024x1024", 1, Decimal("0")),
    ],
)
def test_image_prices(code, quality, dimensions, count, expected):
    assert estimate_cost(code, quality, dimensions, count) == expected


def test_video_prices_scale_with_duration_and_resolution():
    veo = estimate_cost(ModelCode.GOOGLE_VEO_3, count=1, duration_seconds=8)
    assert veo == Decimal("3.20")

    seedance_1080 = estimate_cost(
        ModelCode.REPLICATE_SEEDANCE_1_LITE, dimensions="1920x1080", duration_seconds=5
    )
    seedance_480 = estimate_cost(
        ModelCode.REPLICATE_SEEDANCE_1_LITE, dimensions="864x480", duration_seconds=5
    )
    assert seedance_1080 == Decimal("0.360")
    assert seedance_480 == Decimal("0.090")


def test_stability_video_is_flat_credit_price():
    assert is_video_model(ModelCode.STABILITY_IMAGE_TO_VIDEO)
    assert estimate_cost(ModelCode.STABILITY_IMAGE_TO_VIDEO, duration_seconds=4, count=2) == 40
    assert cost_unit(ModelCode.STABILITY_IMAGE_TO_VIDEO) == CostUnit.CREDITS


def test_credits_used_uses_request_fields():
    registry = ModelRegistry()
    request = GenerationRequest(
        model_id="imagen-4", prompt="a lighthouse", art_quality=ArtQuality.STANDARD, count=3
    )

    assert credits_used(request, registry) == Decimal("0.12")
    assert credits_used(request.model_copy(update={"model_id": "nope"}), registry) == 0


@pytest.mark.parametrize(
    "cost,unit,expected",
    [
        (Decimal("0"), CostUnit.DOLLARS, "Free"),
        (Decimal("8"), CostUnit.CREDITS, "8 credits"),
        (Decimal("6.5"), CostUnit.CREDITS, "6.5 credits"),
        (Decimal("0.003"), CostUnit.DOLLARS, "$0.0030"),
        (Decimal("0.04"), CostUnit.DOLLARS, "$0.04"),
        (1.255, CostUnit.DOLLARS, "$1.26"),
    ],
)
def test_format_cost(cost, unit, expected):
    assert format_cost(cost, unit) == expected
