"""
Tests for evidence loading.
"""

import threading
from datetime import date
from unittest.mock import MagicMock

import pytest

from fieldwatch.detection.evidence import EvidenceLoader, load_evidence
from fieldwatch.detection.models import (
    ChecklistItemRecord, ChecklistStatus, JobRecord, JobStatus, PropertyProfile
)
from fieldwatch.exceptions import EvidenceLoadError, RunCancelledError

WINDOW = date(2024, 5, 1)


def job(job_id, status=JobStatus.COMPLETED, property_id=None):
    return JobRecord(id=job_id, subject_id="staff-1", scheduled_date=date(2024, 5, 2),
                     status=status, property_id=property_id)


@pytest.fixture
def loader():
    mock = MagicMock(spec=EvidenceLoader)
    mock.load_jobs.return_value = [
        job("done-1", property_id="p1"),
        job("done-2", property_id="p1"),
        job("later", status=JobStatus.PENDING, property_id="p2"),
    ]
    mock.load_property_profiles.return_value = [PropertyProfile(id="p1", estimated_hours=2)]
    mock.load_checklist_statuses.side_effect = lambda job_id: [
        ChecklistItemRecord(job_id=job_id, status=ChecklistStatus.DONE)
    ]
    mock.load_photo_count.return_value = 3
    mock.load_existing_flags.return_value = []
    return mock


def test_builds_snapshot(loader):
    snapshot = load_evidence(loader, WINDOW)

    assert snapshot.window_start == WINDOW
    assert [j.id for j in snapshot.jobs] == ["done-1", "done-2", "later"]
    assert set(snapshot.properties) == {"p1"}
    loader.load_jobs.assert_called_once_with(WINDOW)
    loader.load_property_profiles.assert_called_once_with(["p1", "p2"])
    loader.load_existing_flags.assert_called_once_with(WINDOW)


def test_work_evidence_only_for_completed_jobs(loader):
    snapshot = load_evidence(loader, WINDOW)

    assert set(snapshot.checklists) == {"done-1", "done-2"}
    assert snapshot.photo_counts == {"done-1": 3, "done-2": 3}
    assert loader.load_photo_count.call_count == 2


def test_no_property_lookup_without_property_ids(loader):
    loader.load_jobs.return_value = [job("solo")]

    load_evidence(loader, WINDOW)

    loader.load_property_profiles.assert_not_called()


def test_store_failure_is_fatal(loader):
    loader.load_photo_count.side_effect = ConnectionError("store unreachable")

    with pytest.raises(EvidenceLoadError, match="store unreachable"):
        load_evidence(loader, WINDOW)


def test_cancelled_before_loading(loader):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(RunCancelledError):
        load_evidence(loader, WINDOW, cancel_event=cancel)

    loader.load_jobs.assert_not_called()
