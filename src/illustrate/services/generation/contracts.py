"""Canonical request/result contract shared by adapters, orchestrator and queue."""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from illustrate.models.generation import (
    ArtQuality,
    ArtStyle,
    ArtVariant,
    Generation,
    GenerationSet,
    GenerationStatus,
)
from illustrate.services.exceptions import ErrorCode

_DIMENSIONS_RE = re.compile(r"^\d+x\d+$")
_DATA_URI_RE = re.compile(r"^data:.*?;base64,")


def strip_data_uri(payload: str) -> str:
    """Remove a ``data:<mime>;base64,`` prefix if present."""
    return _DATA_URI_RE.sub("", payload, count=1)


class EditDirection(BaseModel):
    """Outpaint expansion in pixels per side."""

    model_config = ConfigDict(frozen=True)

    left: int = Field(default=0, ge=0)
    right: int = Field(default=0, ge=0)
    up: int = Field(default=0, ge=0)
    down: int = Field(default=0, ge=0)


class GenerationRequest(BaseModel):
    """Backend-agnostic generation request.

    Immutable once built. ``secret`` is never persisted with a job; use
    ``to_storage`` to get the serializable form.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str = Field(min_length=1)
    prompt: str = ""
    negative_prompt: str | None = None
    search_prompt: str | None = None
    art_style: ArtStyle = ArtStyle.NATURAL
    art_quality: ArtQuality = ArtQuality.HD
    art_variant: ArtVariant = ArtVariant.NORMAL
    art_dimensions: str = "1024x1024"
    client_image: str | None = None
    client_mask: str | None = None
    client_last_frame: str | None = None
    secret: SecretStr | None = Field(default=None, exclude=True)
    count: int = Field(default=1, ge=1, le=10)
    edit_direction: EditDirection | None = None
    motion: int | None = Field(default=None, ge=1, le=255)
    stickiness: int | None = Field(default=None, ge=0, le=10)
    duration_seconds: int | None = Field(default=None, ge=1)
    resolution: str | None = None
    fps: int | None = Field(default=None, ge=1)
    generate_audio: bool | None = None

    @field_validator("art_dimensions")
    @classmethod
    def validate_dimensions(cls, value: str) -> str:
        value = value.lower().strip()
        if not _DIMENSIONS_RE.match(value):
            raise ValueError(f"Dimensions must look like 1024x1024, got {value!r}")
        return value

    @model_validator(mode="after")
    def validate_prompt_or_image(self) -> "GenerationRequest":
        if not self.prompt and not self.client_image:
            raise ValueError("A prompt or a client image is required")
        return self

    @property
    def width(self) -> int:
        return int(self.art_dimensions.split("x")[0])

    @property
    def height(self) -> int:
        return int(self.art_dimensions.split("x")[1])

    @property
    def secret_value(self) -> str:
        return self.secret.get_secret_value() if self.secret else ""

    def with_secret(self, secret: str | None) -> "GenerationRequest":
        return self.model_copy(update={"secret": SecretStr(secret) if secret else None})

    def to_storage(self) -> dict:
        """JSON-safe form for persistence, secret excluded."""
        return self.model_dump(mode="json")

    def variant_prompt(self) -> str:
        """Prompt prefixed with the art variant unless it is NORMAL."""
        if self.art_variant == ArtVariant.NORMAL:
            return self.prompt
        return f"{self.art_variant.value} - {self.prompt}"


class GenerationResult(BaseModel):
    """Per-sub-request outcome: base64 media XOR an error."""

    model_config = ConfigDict(protected_namespaces=())

    status: GenerationStatus
    generation_id: UUID | None = None
    base64: str | None = None
    error_code: ErrorCode | None = None
    error_message: str | None = None
    cost: Decimal = Decimal("0")
    model_prompt: str | None = None
    color_palette: list[str] = Field(default_factory=list)
    size: int = 0
    # Set instead of base64 when the backend answers with a link; adapters download it
    media_url: str | None = None

    @model_validator(mode="after")
    def validate_payload(self) -> "GenerationResult":
        if self.status == GenerationStatus.FAILED and self.error_code is None:
            raise ValueError("Failed results require an error code")
        return self

    @property
    def ok(self) -> bool:
        return self.status == GenerationStatus.GENERATED

    @classmethod
    def generated(
        cls, base64: str, cost: Decimal = Decimal("0"), model_prompt: str | None = None
    ) -> "GenerationResult":
        return cls(
            status=GenerationStatus.GENERATED, base64=base64, cost=cost, model_prompt=model_prompt
        )

    @classmethod
    def linked(
        cls, url: str, cost: Decimal = Decimal("0"), model_prompt: str | None = None
    ) -> "GenerationResult":
        return cls(
            status=GenerationStatus.GENERATED, media_url=url, cost=cost, model_prompt=model_prompt
        )

    @classmethod
    def failed(cls, code: ErrorCode, message: str) -> "GenerationResult":
        return cls(status=GenerationStatus.FAILED, error_code=code, error_message=message)


@dataclass
class JobOutcome:
    """Aggregated result of one job's fan-out."""

    status: GenerationStatus
    generation_set: GenerationSet | None = None
    generations: list[Generation] = field(default_factory=list)
    error_code: ErrorCode | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == GenerationStatus.GENERATED

    @classmethod
    def failed(cls, code: ErrorCode, message: str) -> "JobOutcome":
        return cls(status=GenerationStatus.FAILED, error_code=code, error_message=message)
