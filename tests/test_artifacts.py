"""Artifact pipeline and media store tests."""

import io

import pytest
from PIL import Image

from illustrate.models.generation import ContentType
from illustrate.services.artifacts import imaging
from illustrate.services.artifacts.pipeline import ArtifactPipeline
from illustrate.services.artifacts.storage import MediaStore
from illustrate.services.exceptions import DecodeError
from illustrate.services.generation.contracts import GenerationRequest


@pytest.fixture
def pipeline(store: MediaStore) -> ArtifactPipeline:
    return ArtifactPipeline(store)


@pytest.fixture
def request_():
    return GenerationRequest(model_id="flux-schnell", prompt="two colors")


def _size(content: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(content)) as img:
        return img.size


def test_image_stores_original_and_three_tiers(pipeline, store, request_, png_b64, png_bytes):
    record = pipeline.process(png_b64, request_)
    name = str(record.id)

    assert record.size == len(png_bytes)
    assert store.load(name) == png_bytes
    assert record.tiers == [f"{name}_o50", f"{name}_o20", f"{name}_o04"]
    assert _size(store.load(f"{name}_o50")) == (50, 25)
    assert _size(store.load(f"{name}_o20")) == (20, 10)
    assert _size(store.load(f"{name}_o04")) == (4, 2)


def test_palette_lists_dominant_colors(pipeline, request_, png_b64):
    record = pipeline.process(png_b64, request_)

    assert len(record.color_palette) == 2
    assert all(color.startswith("#") and len(color) == 7 for color in record.color_palette)


def test_data_uri_prefix_is_accepted(pipeline, store, request_, png_b64, png_bytes):
    record = pipeline.process(f"data:image/png;base64,{png_b64}", request_)

    assert store.load(str(record.id)) == png_bytes


def test_invalid_base64_raises_decode_error(pipeline, store, request_):
    with pytest.raises(DecodeError):
        pipeline.process("not base64!!", request_)

    assert list(store.root.iterdir()) == []


def test_failed_tier_does_not_block_the_others(pipeline, store, request_, png_b64, monkeypatch):
    """A resize failure at one scale is skipped; the remaining tiers are still written."""
    original = imaging.resize_png

    def flaky_resize(content: bytes, scale: float) -> bytes:
        if scale == 0.2:
            raise OSError("disk hiccup")
        return original(content, scale)

    monkeypatch.setattr(imaging, "resize_png", flaky_resize)

    record = pipeline.process(png_b64, request_)
    name = str(record.id)

    assert store.exists(name)
    assert store.exists(f"{name}_o50")
    assert not store.exists(f"{name}_o20")
    assert store.exists(f"{name}_o04")
    assert record.tiers == [f"{name}_o50", f"{name}_o04"]


def test_client_inputs_are_kept_beside_the_artifact(pipeline, store, png_b64, png_bytes):
    request = GenerationRequest(
        model_id="inpaint", prompt="a hat", client_image=png_b64, client_mask=png_b64
    )

    record = pipeline.process(png_b64, request)

    assert store.load(f"{record.id}_client") == png_bytes
    assert store.load(f"{record.id}_mask") == png_bytes


def test_video_tiers_come_from_the_first_frame(pipeline, store, request_, png_bytes, monkeypatch):
    monkeypatch.setattr(imaging, "first_frame_png", lambda video: png_bytes)

    record = pipeline.process("dmlkZW8=", request_, ContentType.VIDEO)
    name = str(record.id)

    assert store.load(name, "mp4") == b"video"
    assert store.load(f"{name}_frame") == png_bytes
    assert record.tiers == [f"{name}_o50", f"{name}_o20", f"{name}_o04"]
    assert record.color_palette == []


def test_undecodable_video_is_still_stored(pipeline, store, request_):
    record = pipeline.process("dmlkZW8=", request_, ContentType.VIDEO)

    assert store.exists(str(record.id), "mp4")
    assert record.tiers == []
    assert not store.exists(f"{record.id}_frame")


def test_store_purge_removes_every_file_of_an_artifact(store):
    store.save(b"a", "abc")
    store.save(b"b", "abc_o50")
    store.save(b"c", "abc", extension="mp4")
    store.save(b"d", "xyz")

    assert store.purge("abc") == 3
    assert store.exists("xyz")
    assert store.load("abc") is None


def test_store_delete_reports_missing(store):
    store.save(b"a", "one")

    assert store.delete("one") is True
    assert store.delete("one") is False


def test_resize_never_collapses_to_zero(png_bytes):
    assert _size(imaging.resize_png(png_bytes, 0.001)) == (1, 1)
