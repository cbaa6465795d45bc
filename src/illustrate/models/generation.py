"""GenerationSet and Generation entities - persisted artifacts of a job."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Numeric
from sqlmodel import Field, SQLModel

from illustrate.core.timezone import timestamp_column, utcnow


class SetType(str, Enum):
    """Kind of work a model performs, shared by descriptors, jobs and sets."""

    GENERATE = "generate"
    EDIT_UPSCALE = "edit_upscale"
    EDIT_EXPAND = "edit_expand"
    EDIT_PROMPT = "edit_prompt"
    EDIT_MASK = "edit_mask"
    EDIT_MASK_ERASE = "edit_mask_erase"
    EDIT_REPLACE = "edit_replace"
    REMOVE_BACKGROUND = "remove_background"
    VIDEO_TEXT = "video_text"
    VIDEO_IMAGE = "video_image"

    @property
    def is_video(self) -> bool:
        return self in (SetType.VIDEO_TEXT, SetType.VIDEO_IMAGE)


class ArtStyle(str, Enum):
    NATURAL = "Natural"
    VIVID = "Vivid"


class ArtQuality(str, Enum):
    HD = "HD"
    STANDARD = "Standard"


class ArtVariant(str, Enum):
    """Style modifier prepended to prompts by most adapters."""

    NORMAL = "Normal"
    WATERCOLOR = "Watercolor"
    OIL_PAINTING = "Oil Painting"
    SKETCH = "Sketch"
    CARTOON = "Cartoon"
    PIXEL_ART = "Pixel Art"
    CHARCOAL = "Charcoal"
    ACRYLIC = "Acrylic"
    PASTEL = "Pastel"
    INK = "Ink"
    GRAFFITI = "Graffiti"
    ABSTRACT = "Abstract"
    DIGITAL_ART = "Digital Art"
    IMPRESSIONISM = "Impressionism"
    SURREALISM = "Surrealism"
    MINIMALISM = "Minimalism"
    PHOTOREALISM = "Photorealism"
    LINE_ART = "Line Art"
    SCULPTURE = "Sculpture"
    ANIME = "Anime"
    COMIC_BOOK = "Comic Book"
    FANTASY_ART = "Fantasy Art"
    ANALOG_FILM = "Analog Film"
    NEON_PUNK = "Neon Punk"
    ISOMETRIC = "Isometric"
    ORIGAMI = "Origami"
    MODEL_3D = "3D Model"
    CINEMATIC = "Cinematic"
    TILE_TEXTURE = "Tile Texture"


class GenerationStatus(str, Enum):
    GENERATED = "generated"
    FAILED = "failed"


class ContentType(str, Enum):
    IMAGE_2D = "image_2d"
    VIDEO = "video"


class GenerationSet(SQLModel, table=True):
    """GenerationSet groups the Generations produced by one successful job."""

    __tablename__ = "generation_sets"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    set_type: SetType = Field(default=SetType.GENERATE, index=True)
    model_id: str = Field(max_length=100, index=True)
    prompt: str = Field(default="")
    negative_prompt: Optional[str] = Field(default=None)
    search_prompt: Optional[str] = Field(default=None)
    art_style: ArtStyle = Field(default=ArtStyle.NATURAL)
    art_variant: ArtVariant = Field(default=ArtVariant.NORMAL)
    art_quality: ArtQuality = Field(default=ArtQuality.HD)
    art_dimensions: str = Field(max_length=20)
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())


class Generation(SQLModel, table=True):
    """Generation is one persisted artifact.

    Media tiers are located by naming convention: ``{id}``, ``{id}_o50``,
    ``{id}_o20``, ``{id}_o04`` and optionally ``{id}_client`` / ``{id}_mask``.
    """

    __tablename__ = "generations"  # type: ignore[assignment]

    id: UUID = Field(primary_key=True)
    set_id: UUID = Field(foreign_key="generation_sets.id", index=True)
    model_id: str = Field(max_length=100)
    prompt: str = Field(default="")
    negative_prompt: Optional[str] = Field(default=None)
    search_prompt: Optional[str] = Field(default=None)
    model_revised_prompt: Optional[str] = Field(default=None)
    art_style: ArtStyle = Field(default=ArtStyle.NATURAL)
    art_variant: ArtVariant = Field(default=ArtVariant.NORMAL)
    art_quality: ArtQuality = Field(default=ArtQuality.HD)
    art_dimensions: str = Field(max_length=20)
    size: int = Field(default=0, ge=0)
    cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(12, 4), nullable=False))
    status: GenerationStatus = Field(default=GenerationStatus.GENERATED)
    content_type: ContentType = Field(default=ContentType.IMAGE_2D)
    color_palette: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    has_client_image: bool = Field(default=False)
    has_client_mask: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
