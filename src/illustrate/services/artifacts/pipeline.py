"""Artifact pipeline: persist generated media plus its downscaled tiers."""

from dataclasses import dataclass, field
from uuid import UUID, uuid4

import structlog

from illustrate.models.generation import ContentType
from illustrate.services.artifacts import imaging
from illustrate.services.artifacts.storage import MediaStore
from illustrate.services.generation.contracts import GenerationRequest
from illustrate.services.providers.base import decode_media

logger = structlog.get_logger(__name__)

TIERS: tuple[tuple[str, float], ...] = (("o50", 0.5), ("o20", 0.2), ("o04", 0.04))


@dataclass
class ArtifactRecord:
    id: UUID
    size: int
    color_palette: list[str] = field(default_factory=list)
    tiers: list[str] = field(default_factory=list)


class ArtifactPipeline:
    """Decodes media, stores the original and derives tiers and palette.

    Only decoding and the original's write are fatal. Tiers, the video
    frame, the palette and client input copies are best-effort.
    """

    def __init__(self, store: MediaStore):
        self.store = store

    def process(
        self,
        media: str,
        request: GenerationRequest,
        content_type: ContentType = ContentType.IMAGE_2D,
    ) -> ArtifactRecord:
        """Persist one generated artifact.

        Args:
            media: Base64 payload, optionally with a data-URI prefix
            request: Request that produced the media (for client inputs)
            content_type: IMAGE_2D or VIDEO

        Returns:
            ArtifactRecord with the new id, byte size, palette and stored tier names

        Raises:
            DecodeError: Payload is not valid base64
            StorageError: Original could not be written
        """
        content = decode_media(media)
        artifact_id = uuid4()
        name = str(artifact_id)
        log = logger.bind(artifact_id=name, content_type=content_type.value)

        if content_type == ContentType.VIDEO:
            self.store.save(content, name, extension="mp4")
            frame = self._extract_frame(content, name, log)
            tiers = self._save_tiers(frame, name, log) if frame else []
            palette: list[str] = []
        else:
            self.store.save(content, name)
            tiers = self._save_tiers(content, name, log)
            palette = self._palette(content, log)

        self._save_client_inputs(request, name, log)

        log.debug("artifact.stored", size=len(content), tiers=tiers)
        return ArtifactRecord(id=artifact_id, size=len(content), color_palette=palette, tiers=tiers)

    def _extract_frame(self, video: bytes, name: str, log) -> bytes | None:
        try:
            frame = imaging.first_frame_png(video)
        except Exception as e:
            log.warning("artifact.frame.failed", error=str(e), exc_info=True)
            return None
        if frame is None:
            log.warning("artifact.frame.missing")
            return None
        try:
            self.store.save(frame, f"{name}_frame")
        except Exception as e:
            log.warning("artifact.frame.unsaved", error=str(e))
        return frame

    def _save_tiers(self, source: bytes, name: str, log) -> list[str]:
        saved = []
        for suffix, scale in TIERS:
            tier_name = f"{name}_{suffix}"
            try:
                self.store.save(imaging.resize_png(source, scale), tier_name)
            except Exception as e:
                log.warning("artifact.tier.skipped", tier=suffix, error=str(e))
                continue
            saved.append(tier_name)
        return saved

    def _palette(self, content: bytes, log) -> list[str]:
        try:
            return imaging.color_palette(content)
        except Exception as e:
            log.warning("artifact.palette.failed", error=str(e))
            return []

    def _save_client_inputs(self, request: GenerationRequest, name: str, log) -> None:
        for suffix, payload in (("client", request.client_image), ("mask", request.client_mask)):
            if not payload:
                continue
            try:
                self.store.save(decode_media(payload), f"{name}_{suffix}")
            except Exception as e:
                log.warning("artifact.client_input.unsaved", kind=suffix, error=str(e))
