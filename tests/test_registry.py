"""Model registry and adapter resolver tests."""

from dataclasses import replace

import pytest

from illustrate.models.generation import SetType
from illustrate.services.exceptions import UnknownModel
from illustrate.services.providers.replicate import ReplicateAdapter, ReplicateSeedanceAdapter
from illustrate.services.providers.resolver import ADAPTERS, AdapterResolver
from illustrate.services.registry.models import CATALOG, ModelCode, ModelRegistry, Provider


def test_every_model_code_has_an_adapter():
    assert set(ADAPTERS) == set(ModelCode)


def test_catalog_ids_are_unique():
    registry = ModelRegistry()
    assert len(registry) == len(CATALOG)


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError, match="Duplicate model id"):
        ModelRegistry((CATALOG[0], CATALOG[0]))


def test_get_unknown_model_raises():
    registry = ModelRegistry()

    assert registry.lookup("not-a-model") is None
    assert registry.by_code(ModelCode.OPENAI_DALLE3).model_id == "dall-e-3"
    with pytest.raises(UnknownModel) as exc_info:
        registry.get("not-a-model")
    assert exc_info.value.model_id == "not-a-model"


def test_models_filters_by_set_type():
    registry = ModelRegistry()

    videos = registry.models(SetType.VIDEO_TEXT)
    assert videos
    assert all(m.set_type == SetType.VIDEO_TEXT for m in videos)
    assert "seedance-1-pro" in {m.model_id for m in videos}

    google = registry.models_for_provider(Provider.GOOGLE)
    assert {m.provider for m in google} == {Provider.GOOGLE}


def test_resolver_returns_adapter_bound_to_descriptor(fake_transport):
    """Every active descriptor resolves to an adapter carrying that descriptor."""
    registry = ModelRegistry()
    resolver = AdapterResolver(registry, fake_transport)

    for descriptor in registry.models(active_only=True):
        adapter = resolver.resolve(descriptor.model_id)
        assert adapter.model == descriptor
        assert isinstance(adapter, ADAPTERS[descriptor.code])

    assert fake_transport.calls == []


def test_resolver_dispatches_replicate_variants(fake_transport):
    resolver = AdapterResolver(ModelRegistry(), fake_transport)

    assert type(resolver.resolve("flux-schnell")) is ReplicateAdapter
    assert type(resolver.resolve("seedance-1-lite")) is ReplicateSeedanceAdapter


def test_resolver_rejects_unknown_inactive_and_unmapped(fake_transport):
    flux = ModelRegistry().get("flux-schnell")
    inactive = replace(flux, model_id="flux-retired", active=False)
    registry = ModelRegistry((flux, inactive))

    with pytest.raises(UnknownModel):
        AdapterResolver(registry, fake_transport).resolve("missing")
    with pytest.raises(UnknownModel):
        AdapterResolver(registry, fake_transport).resolve("flux-retired")
    with pytest.raises(UnknownModel):
        AdapterResolver(registry, fake_transport, adapters={}).resolve("flux-schnell")


def test_resolver_scales_poll_interval(fake_transport):
    resolver = AdapterResolver(ModelRegistry(), fake_transport, poll_interval_scale=0.5)

    adapter = resolver.resolve("veo-3")
    assert adapter.poll_interval == 5.0
    assert adapter.max_poll_attempts == 60
