"""Unit of Work pattern tests.

Tests focus on transaction management:
- Successful commits persist changes
- Exceptions trigger rollback
- Multiple repository operations are atomic
"""

from uuid import uuid4

import pytest

from illustrate.models.generation import Generation, GenerationSet
from illustrate.models.job import Job


@pytest.mark.asyncio
async def test_uow_commits_on_successful_exit(uow_factory):
    """Changes made within the context should persist after the context exits."""
    async with await uow_factory() as uow:
        job = await uow.jobs.add(Job(model_id="flux-schnell", request_data={"prompt": "x"}))

    async with await uow_factory() as uow:
        found = await uow.jobs.get_by_id(job.id)
        assert found is not None
        assert found.request_data == {"prompt": "x"}


@pytest.mark.asyncio
async def test_uow_rollback_on_exception(uow_factory):
    """If an exception is raised, changes roll back and the exception propagates."""
    job = Job(model_id="flux-schnell")

    with pytest.raises(ValueError, match="Simulated error"):
        async with await uow_factory() as uow:
            await uow.jobs.add(job)
            raise ValueError("Simulated error")

    async with await uow_factory() as uow:
        assert await uow.jobs.get_by_id(job.id) is None


def _set_with_generation() -> tuple[GenerationSet, Generation]:
    generation_set = GenerationSet(model_id="dall-e-3", art_dimensions="1024x1024")
    generation = Generation(
        id=uuid4(),
        set_id=generation_set.id,
        model_id="dall-e-3",
        art_dimensions="1024x1024",
    )
    return generation_set, generation


@pytest.mark.asyncio
async def test_uow_atomic_set_and_generations(uow_factory):
    """A set and its generations commit together or roll back together."""
    generation_set, generation = _set_with_generation()

    with pytest.raises(RuntimeError):
        async with await uow_factory() as uow:
            await uow.sets.add(generation_set)
            await uow.generations.add(generation)
            raise RuntimeError("crash after both writes")

    async with await uow_factory() as uow:
        assert await uow.sets.count() == 0
        assert await uow.generations.count() == 0

    generation_set, generation = _set_with_generation()
    async with await uow_factory() as uow:
        await uow.sets.add(generation_set)
        await uow.generations.add(generation)

    async with await uow_factory() as uow:
        assert await uow.sets.get_by_id(generation_set.id) is not None
        assert [g.id for g in await uow.generations.get_by_set(generation_set.id)] == [
            generation.id
        ]
