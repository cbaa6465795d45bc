"""Job repository for the generation queue.

Provides data access methods for queued Job entities.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from illustrate.models.job import Job, JobStatus


class JobRepository:
    """Repository for Job entities.

    Ordering follows creation time; the queue relies on oldest-first for FIFO.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, job: Job) -> Job:
        """Persist new job to database.

        Args:
            job: Job entity to persist

        Returns:
            Persisted job with generated ID
        """
        self.session.add(job)
        await self.session.flush()
        return job

    async def save(self, job: Job) -> Job:
        """Flush changes made to an attached or detached job."""
        merged = await self.session.merge(job)
        await self.session.flush()
        return merged

    async def get_by_id(self, job_id: UUID) -> Job | None:
        result = await self.session.execute(
            select(Job).where(Job.id == job_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Job]:
        """Retrieve all jobs, newest first."""
        result = await self.session.execute(
            select(Job).order_by(Job.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_in_progress(self) -> list[Job]:
        """Retrieve in-progress jobs, oldest first."""
        result = await self.session.execute(
            select(Job)
            .where(Job.status == JobStatus.IN_PROGRESS)  # type: ignore[arg-type]
            .order_by(Job.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def get_next_in_progress(self) -> Job | None:
        """Retrieve the oldest in-progress job.

        Returns:
            Job if one is waiting, None when the queue is drained
        """
        result = await self.session.execute(
            select(Job)
            .where(Job.status == JobStatus.IN_PROGRESS)  # type: ignore[arg-type]
            .order_by(Job.created_at.asc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete(self, job_id: UUID) -> bool:
        """Delete a job by id.

        Returns:
            True if a row was removed
        """
        result = await self.session.execute(
            delete(Job).where(Job.id == job_id)  # type: ignore[arg-type]
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def delete_by_status(self, status: JobStatus) -> int:
        result = await self.session.execute(
            delete(Job).where(Job.status == status)  # type: ignore[arg-type]
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def delete_failed_before(self, cutoff: datetime) -> int:
        """Delete failed jobs last updated before ``cutoff``.

        Args:
            cutoff: Timezone-aware UTC timestamp; jobs updated at or after it are kept

        Returns:
            Number of deleted jobs
        """
        result = await self.session.execute(
            delete(Job).where(
                Job.status == JobStatus.FAILED,  # type: ignore[arg-type]
                Job.updated_at < cutoff,  # type: ignore[arg-type]
            )
        )
        return result.rowcount  # type: ignore[attr-defined]
