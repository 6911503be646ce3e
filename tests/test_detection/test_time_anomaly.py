"""
Tests for the time anomaly detector.
"""

import pytest

from fieldwatch.detection.models import FlagType, PropertyProfile, Severity
from fieldwatch.detection.time_anomaly import TimeAnomalyDetector


@pytest.fixture
def detector():
    return TimeAnomalyDetector()


class TestExpectedMinutes:
    """Tests for the expected-duration baseline."""

    def test_no_profile_uses_flat_default(self, detector):
        assert detector.expected_minutes(None) == 60.0

    def test_estimated_hours_wins(self, detector):
        profile = PropertyProfile(id="p1", estimated_hours=2.5, bedrooms=4, bathrooms=3)
        assert detector.expected_minutes(profile) == 150.0

    def test_rooms_estimate(self, detector):
        profile = PropertyProfile(id="p1", bedrooms=3, bathrooms=2)
        assert detector.expected_minutes(profile) == 85.0

    def test_unknown_rooms_default_to_two_and_one(self, detector):
        assert detector.expected_minutes(PropertyProfile(id="p1")) == 50.0


class TestDetect:
    """Tests for flagging fast completions."""

    def test_fast_job_without_profile_is_medium(self, detector, make_job, timestamp, make_snapshot):
        job = make_job(start=timestamp(9), duration_minutes=10)

        flags = detector.detect(make_snapshot([job]))

        assert len(flags) == 1
        flag = flags[0]
        assert flag.flag_type == FlagType.TIME_ANOMALY
        assert flag.severity == Severity.MEDIUM
        assert flag.confidence == pytest.approx(0.7)
        assert flag.evidence == {
            'actualMinutes': 10,
            'expectedMinutes': 60,
            'percentOfExpected': 17,
            'location': "Site job-1",
        }

    def test_very_fast_job_is_high(self, detector, make_job, timestamp, make_snapshot):
        job = make_job(start=timestamp(9), duration_minutes=8)

        flags = detector.detect(make_snapshot([job]))

        assert [flag.severity for flag in flags] == [Severity.HIGH]

    def test_twenty_five_of_forty_minutes_not_flagged(self, detector, make_job, timestamp, make_snapshot):
        profile = PropertyProfile(id="p1", estimated_hours=40 / 60)
        job = make_job(property_id="p1", start=timestamp(9), duration_minutes=25)

        flags = detector.detect(make_snapshot([job], properties={"p1": profile}))

        assert flags == []

    def test_both_conditions_required_for_long_properties(self, detector, make_job, timestamp, make_snapshot):
        # 30 minutes is under 30% of a 4 hour estimate but not under 20 minutes
        profile = PropertyProfile(id="p1", estimated_hours=4)
        job = make_job(property_id="p1", start=timestamp(9), duration_minutes=30)

        assert detector.detect(make_snapshot([job], properties={"p1": profile})) == []

    def test_long_property_short_job_flagged(self, detector, make_job, timestamp, make_snapshot):
        profile = PropertyProfile(id="p1", estimated_hours=4)
        job = make_job(property_id="p1", start=timestamp(9), duration_minutes=15)

        flags = detector.detect(make_snapshot([job], properties={"p1": profile}))

        assert len(flags) == 1
        assert flags[0].severity == Severity.HIGH
        assert flags[0].evidence['expectedMinutes'] == 240

    def test_unknown_property_id_uses_default(self, detector, make_job, timestamp, make_snapshot):
        job = make_job(property_id="missing", start=timestamp(9), duration_minutes=19)

        flags = detector.detect(make_snapshot([job]))

        # 19 < 18 is false
        assert flags == []

    def test_requires_both_timestamps(self, detector, make_job, timestamp, make_snapshot):
        job = make_job(start=timestamp(9))
        assert detector.detect(make_snapshot([job])) == []

    def test_end_before_start_skips_only_that_job(self, detector, make_job, timestamp, make_snapshot):
        backwards = make_job(job_id="backwards", start_time=timestamp(10), end_time=timestamp(9))
        fast = make_job(job_id="fast", start=timestamp(9), duration_minutes=5)

        flags = detector.detect(make_snapshot([backwards, fast]))

        assert [flag.job_id for flag in flags] == ["fast"]

    def test_string_timestamps_are_accepted(self, detector, make_job, make_snapshot):
        job = make_job(start_time="2024-05-06T09:00:00Z", end_time="2024-05-06T09:04:00Z")

        flags = detector.detect(make_snapshot([job]))

        assert flags[0].evidence['actualMinutes'] == 4
