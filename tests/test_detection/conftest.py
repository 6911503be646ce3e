"""
Pytest fixtures for detector tests.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from fieldwatch.detection.models import EvidenceSnapshot, JobRecord, JobStatus

WINDOW_START = date(2024, 5, 1)
JOB_DAY = date(2024, 5, 6)


def at(hour, minute=0, day=JOB_DAY):
    """Aware timestamp on the given day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def timestamp():
    return at


@pytest.fixture
def make_job():
    """Factory for completed job records."""
    def _make(job_id="job-1", subject_id="staff-1", scheduled_date=JOB_DAY,
              status=JobStatus.COMPLETED, start=None, duration_minutes=None, **fields):
        if start is not None:
            fields.setdefault('start_time', start)
            if duration_minutes is not None:
                fields.setdefault('end_time', start + timedelta(minutes=duration_minutes))
        return JobRecord(
            id=job_id,
            subject_id=subject_id,
            scheduled_date=scheduled_date,
            status=status,
            location=fields.pop('location', f"Site {job_id}"),
            **fields
        )
    return _make


@pytest.fixture
def make_snapshot():
    """Factory for evidence snapshots."""
    def _make(jobs, **fields):
        return EvidenceSnapshot(window_start=WINDOW_START, jobs=tuple(jobs), **fields)
    return _make
