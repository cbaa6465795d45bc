"""Job entity - one queued generation request with lifecycle status tracking."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from illustrate.core.timezone import timestamp_column, utcnow
from illustrate.models.generation import SetType


class JobStatus(str, Enum):
    """Job lifecycle status."""

    IN_PROGRESS = "in_progress"
    SUCCESSFUL = "successful"
    FAILED = "failed"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid job state transition."""

    pass


class Job(SQLModel, table=True):
    """Job wraps a generation request queued for processing.

    ``request_data`` holds the request without its secret; credentials are
    supplied again at execution time.
    """

    __tablename__ = "queue_jobs"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    model_id: str = Field(max_length=100)
    set_type: SetType = Field(default=SetType.GENERATE)
    status: JobStatus = Field(default=JobStatus.IN_PROGRESS, index=True)
    request_data: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    set_id: Optional[UUID] = Field(default=None)
    error_code: Optional[str] = Field(default=None, max_length=50)
    error_message: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.SUCCESSFUL, JobStatus.FAILED)

    def mark_successful(self, set_id: UUID) -> None:
        """Transition from in_progress to successful.

        Args:
            set_id: GenerationSet created for this job

        Raises:
            InvalidStateTransition: If current status is not in_progress
        """
        if self.status != JobStatus.IN_PROGRESS:
            raise InvalidStateTransition(
                f"Cannot mark successful from {self.status.value}. Job must be in_progress."
            )
        self.set_id = set_id
        self.error_code = None
        self.error_message = None
        self.status = JobStatus.SUCCESSFUL
        self.updated_at = utcnow()

    def mark_failed(self, message: str, code: str | None = None) -> None:
        """Transition from in_progress to failed.

        Args:
            message: Human-readable cause, truncated to the column length
            code: Canonical error code

        Raises:
            InvalidStateTransition: If current status is already terminal
        """
        if self.status != JobStatus.IN_PROGRESS:
            raise InvalidStateTransition(
                f"Cannot mark failed from terminal state {self.status.value}."
            )
        self.error_code = code
        self.error_message = message[:1000]
        self.status = JobStatus.FAILED
        self.updated_at = utcnow()
