"""Generation and GenerationSet repositories.

Sets own their generations: deleting a set deletes its generations in the
same transaction.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from illustrate.models.generation import Generation, GenerationSet, SetType


class GenerationSetRepository:
    """Repository for GenerationSet entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, generation_set: GenerationSet) -> GenerationSet:
        self.session.add(generation_set)
        await self.session.flush()
        return generation_set

    async def get_by_id(self, set_id: UUID) -> GenerationSet | None:
        result = await self.session.execute(
            select(GenerationSet).where(GenerationSet.id == set_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_all(self, set_type: SetType | None = None) -> list[GenerationSet]:
        """Retrieve sets newest first, optionally filtered by set type."""
        query = select(GenerationSet)
        if set_type is not None:
            query = query.where(GenerationSet.set_type == set_type)  # type: ignore[arg-type]
        result = await self.session.execute(
            query.order_by(GenerationSet.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(GenerationSet.id))
        return len(result.all())

    async def delete(self, set_id: UUID) -> list[UUID]:
        """Delete a set and every generation it owns.

        Args:
            set_id: Set's unique identifier

        Returns:
            Ids of the deleted generations, so callers can purge their media
        """
        result = await self.session.execute(
            select(Generation.id).where(Generation.set_id == set_id)  # type: ignore[arg-type]
        )
        generation_ids = list(result.scalars().all())

        await self.session.execute(
            delete(Generation).where(Generation.set_id == set_id)  # type: ignore[arg-type]
        )
        await self.session.execute(
            delete(GenerationSet).where(GenerationSet.id == set_id)  # type: ignore[arg-type]
        )
        return generation_ids


class GenerationRepository:
    """Repository for Generation entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, generation: Generation) -> Generation:
        self.session.add(generation)
        await self.session.flush()
        return generation

    async def add_all(self, generations: list[Generation]) -> list[Generation]:
        self.session.add_all(generations)
        await self.session.flush()
        return generations

    async def get_by_id(self, generation_id: UUID) -> Generation | None:
        result = await self.session.execute(
            select(Generation).where(Generation.id == generation_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_by_set(self, set_id: UUID) -> list[Generation]:
        """Retrieve a set's generations ordered by creation time (oldest first)."""
        result = await self.session.execute(
            select(Generation)
            .where(Generation.set_id == set_id)  # type: ignore[arg-type]
            .order_by(Generation.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(select(Generation.id))
        return len(result.all())
