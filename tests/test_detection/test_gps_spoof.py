"""
Tests for the GPS spoof detector.
"""

import pytest

from fieldwatch.detection.base import DetectionConfig
from fieldwatch.detection.gps_spoof import GpsSpoofDetector
from fieldwatch.detection.models import FlagType, JobStatus, Severity
from fieldwatch.geo import Coordinate

CHECKIN = Coordinate(-33.8688, 151.2093)


@pytest.fixture
def detector():
    return GpsSpoofDetector()


def test_far_checkin_is_high_with_capped_confidence(detector, make_job, make_snapshot):
    job = make_job(checkin=CHECKIN, checkin_distance_meters=1200.0)

    flags = detector.detect(make_snapshot([job]))

    assert len(flags) == 1
    flag = flags[0]
    assert flag.flag_type == FlagType.GPS_SPOOF
    assert flag.severity == Severity.HIGH
    assert flag.confidence == pytest.approx(0.9)
    assert flag.subject_id == "staff-1"
    assert flag.job_id == "job-1"
    assert flag.evidence == {
        'checkinDistance': 1200.0,
        'checkinLat': CHECKIN.latitude,
        'checkinLng': CHECKIN.longitude,
        'location': "Site job-1",
        'threshold': 500.0,
    }


def test_moderate_distance_is_medium(detector, make_job, make_snapshot):
    job = make_job(checkin=CHECKIN, checkin_distance_meters=700.0)

    flags = detector.detect(make_snapshot([job]))

    assert len(flags) == 1
    assert flags[0].severity == Severity.MEDIUM
    assert flags[0].confidence == pytest.approx(0.85)


@pytest.mark.parametrize("distance", [0.0, 120.0, 500.0])
def test_within_threshold_not_flagged(detector, make_job, make_snapshot, distance):
    job = make_job(checkin=CHECKIN, checkin_distance_meters=distance)
    assert detector.detect(make_snapshot([job])) == []


def test_missing_checkin_coordinates_never_flagged(detector, make_job, make_snapshot):
    job = make_job(checkin=None, checkin_distance_meters=5000.0)
    assert detector.detect(make_snapshot([job])) == []


def test_missing_distance_not_flagged(detector, make_job, make_snapshot):
    job = make_job(checkin=CHECKIN, checkin_distance_meters=None)
    assert detector.detect(make_snapshot([job])) == []


def test_only_completed_jobs(detector, make_job, make_snapshot):
    job = make_job(status=JobStatus.PENDING, checkin=CHECKIN, checkin_distance_meters=3000.0)
    assert detector.detect(make_snapshot([job])) == []


def test_malformed_distance_skips_only_that_job(detector, make_job, make_snapshot):
    bad = make_job(job_id="bad", checkin=CHECKIN, checkin_distance_meters="far away")
    good = make_job(job_id="good", checkin=CHECKIN, checkin_distance_meters=900.0)

    flags = detector.detect(make_snapshot([bad, good]))

    assert [flag.job_id for flag in flags] == ["good"]


def test_threshold_comes_from_config(make_job, make_snapshot):
    detector = GpsSpoofDetector(DetectionConfig(gps_spoof_threshold_meters=100.0))
    job = make_job(checkin=CHECKIN, checkin_distance_meters=150.0)

    flags = detector.detect(make_snapshot([job]))

    assert len(flags) == 1
    assert flags[0].evidence['threshold'] == 100.0
