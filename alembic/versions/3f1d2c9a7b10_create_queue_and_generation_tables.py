"""create_queue_and_generation_tables

Revision ID: 3f1d2c9a7b10
Revises:
Create Date: 2026-10-18 09:12:40.118302

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1d2c9a7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SET_TYPES = (
    "GENERATE",
    "EDIT_UPSCALE",
    "EDIT_EXPAND",
    "EDIT_PROMPT",
    "EDIT_MASK",
    "EDIT_MASK_ERASE",
    "EDIT_REPLACE",
    "REMOVE_BACKGROUND",
    "VIDEO_TEXT",
    "VIDEO_IMAGE",
)
ART_VARIANTS = (
    "NORMAL",
    "WATERCOLOR",
    "OIL_PAINTING",
    "SKETCH",
    "CARTOON",
    "PIXEL_ART",
    "CHARCOAL",
    "ACRYLIC",
    "PASTEL",
    "INK",
    "GRAFFITI",
    "ABSTRACT",
    "DIGITAL_ART",
    "IMPRESSIONISM",
    "SURREALISM",
    "MINIMALISM",
    "PHOTOREALISM",
    "LINE_ART",
    "SCULPTURE",
    "ANIME",
    "COMIC_BOOK",
    "FANTASY_ART",
    "ANALOG_FILM",
    "NEON_PUNK",
    "ISOMETRIC",
    "ORIGAMI",
    "MODEL_3D",
    "CINEMATIC",
    "TILE_TEXTURE",
)


def _art_columns() -> list[sa.Column]:
    return [
        sa.Column("art_style", sa.Enum("NATURAL", "VIVID", name="artstyle"), nullable=False),
        sa.Column("art_variant", sa.Enum(*ART_VARIANTS, name="artvariant"), nullable=False),
        sa.Column("art_quality", sa.Enum("HD", "STANDARD", name="artquality"), nullable=False),
        sa.Column("art_dimensions", sa.String(length=20), nullable=False),
    ]


def upgrade() -> None:
    """Create queue_jobs, generation_sets and generations tables."""
    op.create_table(
        "queue_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("model_id", sa.String(length=100), nullable=False),
        sa.Column("set_type", sa.Enum(*SET_TYPES, name="settype"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("IN_PROGRESS", "SUCCESSFUL", "FAILED", name="jobstatus"),
            nullable=False,
        ),
        sa.Column("request_data", sa.JSON(), nullable=True),
        sa.Column("set_id", sa.Uuid(), nullable=True),
        sa.Column("error_code", sa.String(length=50), nullable=True),
        sa.Column("error_message", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_queue_jobs_status", "queue_jobs", ["status"])
    op.create_index("ix_queue_jobs_created_at", "queue_jobs", ["created_at"])
    op.create_index("ix_queue_jobs_updated_at", "queue_jobs", ["updated_at"])

    op.create_table(
        "generation_sets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("set_type", sa.Enum(*SET_TYPES, name="settype"), nullable=False),
        sa.Column("model_id", sa.String(length=100), nullable=False),
        sa.Column("prompt", sa.String(), nullable=False),
        sa.Column("negative_prompt", sa.String(), nullable=True),
        sa.Column("search_prompt", sa.String(), nullable=True),
        *_art_columns(),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_sets_set_type", "generation_sets", ["set_type"])
    op.create_index("ix_generation_sets_model_id", "generation_sets", ["model_id"])
    op.create_index("ix_generation_sets_created_at", "generation_sets", ["created_at"])

    op.create_table(
        "generations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("set_id", sa.Uuid(), nullable=False),
        sa.Column("model_id", sa.String(length=100), nullable=False),
        sa.Column("prompt", sa.String(), nullable=False),
        sa.Column("negative_prompt", sa.String(), nullable=True),
        sa.Column("search_prompt", sa.String(), nullable=True),
        sa.Column("model_revised_prompt", sa.String(), nullable=True),
        *_art_columns(),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("cost", sa.Numeric(12, 4), nullable=False),
        sa.Column(
            "status", sa.Enum("GENERATED", "FAILED", name="generationstatus"), nullable=False
        ),
        sa.Column(
            "content_type", sa.Enum("IMAGE_2D", "VIDEO", name="contenttype"), nullable=False
        ),
        sa.Column("color_palette", sa.JSON(), nullable=True),
        sa.Column("has_client_image", sa.Boolean(), nullable=False),
        sa.Column("has_client_mask", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["set_id"], ["generation_sets.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generations_set_id", "generations", ["set_id"])
    op.create_index("ix_generations_created_at", "generations", ["created_at"])


def downgrade() -> None:
    """Drop generation and queue tables."""
    op.drop_index("ix_generations_created_at", table_name="generations")
    op.drop_index("ix_generations_set_id", table_name="generations")
    op.drop_table("generations")
    op.drop_index("ix_generation_sets_created_at", table_name="generation_sets")
    op.drop_index("ix_generation_sets_model_id", table_name="generation_sets")
    op.drop_index("ix_generation_sets_set_type", table_name="generation_sets")
    op.drop_table("generation_sets")
    op.drop_index("ix_queue_jobs_updated_at", table_name="queue_jobs")
    op.drop_index("ix_queue_jobs_created_at", table_name="queue_jobs")
    op.drop_index("ix_queue_jobs_status", table_name="queue_jobs")
    op.drop_table("queue_jobs")
