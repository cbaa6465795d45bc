"""Repository layer for the generation engine.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from illustrate.repositories.generation import GenerationRepository, GenerationSetRepository
from illustrate.repositories.job import JobRepository

__all__ = [
    "GenerationRepository",
    "GenerationSetRepository",
    "JobRepository",
]
