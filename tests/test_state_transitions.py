"""State transition tests for Job model.

Tests focus on validating the job lifecycle state machine:
- in_progress -> successful and in_progress -> failed are the only transitions
- Terminal states reject further transitions with clear error messages
"""

from uuid import uuid4

import pytest

from illustrate.models.job import InvalidStateTransition, Job, JobStatus


@pytest.mark.asyncio
async def test_mark_successful_records_set(session):
    job = Job(model_id="flux-schnell")
    session.add(job)
    await session.flush()
    created_at = job.updated_at
    set_id = uuid4()

    job.mark_successful(set_id)

    assert job.status == JobStatus.SUCCESSFUL
    assert job.set_id == set_id
    assert job.is_terminal
    assert job.updated_at >= created_at


@pytest.mark.asyncio
async def test_mark_failed_records_code_and_message(session):
    job = Job(model_id="flux-schnell")
    session.add(job)
    await session.flush()

    job.mark_failed("Polling timed out after 10 attempts", "POLL_TIMEOUT")

    assert job.status == JobStatus.FAILED
    assert job.error_code == "POLL_TIMEOUT"
    assert job.error_message == "Polling timed out after 10 attempts"


def test_long_failure_message_is_truncated():
    job = Job(model_id="flux-schnell")

    job.mark_failed("x" * 5000)

    assert len(job.error_message) == 1000


def test_cannot_transition_from_terminal_states():
    """Once a job reaches a terminal state, it should stay there."""
    succeeded = Job(model_id="flux-schnell", status=JobStatus.SUCCESSFUL)
    with pytest.raises(InvalidStateTransition) as exc_info:
        succeeded.mark_failed("late failure")
    assert "successful" in str(exc_info.value)

    failed = Job(model_id="flux-schnell", status=JobStatus.FAILED)
    with pytest.raises(InvalidStateTransition) as exc_info:
        failed.mark_successful(uuid4())
    assert "in_progress" in str(exc_info.value)
