"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from illustrate.models.generation import (
    ArtQuality,
    ArtStyle,
    ArtVariant,
    ContentType,
    Generation,
    GenerationSet,
    GenerationStatus,
    SetType,
)
from illustrate.models.job import InvalidStateTransition, Job, JobStatus

__all__ = [
    "ArtQuality",
    "ArtStyle",
    "ArtVariant",
    "ContentType",
    "Generation",
    "GenerationSet",
    "GenerationStatus",
    "InvalidStateTransition",
    "Job",
    "JobStatus",
    "SetType",
]
