"""
Time anomaly detector.

Flags completed jobs that finished in a small fraction of the time the site
should take. The expected duration comes from the property profile when one
exists and falls back to a flat default otherwise.
"""

import logging
from typing import List, Optional

from fieldwatch.detection.base import BaseDetector
from fieldwatch.detection.models import (
    AnomalyFlag, EvidenceSnapshot, FlagType, JobRecord, PropertyProfile, Severity
)
from fieldwatch.utils.common import minutes_between, round_half_up

logger = logging.getLogger(__name__)


class TimeAnomalyDetector(BaseDetector):
    """Detects implausibly fast job completion."""

    flag_type = FlagType.TIME_ANOMALY

    def detect(self, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        logger.info("Detecting time anomalies")

        candidates = [
            job for job in snapshot.completed_jobs()
            if job.subject_id and job.start_time is not None and job.end_time is not None
        ]

        flags = self._evaluate_each(
            candidates,
            lambda job: self._evaluate(job, snapshot.property_for(job)),
            lambda job: f"job {job.id}"
        )
        logger.info(f"Found {len(flags)} time anomalies")
        return flags

    def expected_minutes(self, profile: Optional[PropertyProfile]) -> float:
        """Baseline duration for a site.

        Zero or missing sizing values count as unknown.
        """
        cfg = self.config
        if profile is None:
            return cfg.default_expected_minutes
        if profile.estimated_hours:
            return float(profile.estimated_hours) * 60.0

        bedrooms = profile.bedrooms or cfg.default_bedrooms
        bathrooms = profile.bathrooms or cfg.default_bathrooms
        return bedrooms * cfg.minutes_per_bedroom + bathrooms * cfg.minutes_per_bathroom

    def _evaluate(self, job: JobRecord, profile: Optional[PropertyProfile]) -> Optional[AnomalyFlag]:
        actual = minutes_between(job.start_time, job.end_time)
        if actual < 0:
            raise ValueError(f"end time {job.end_time} precedes start time {job.start_time}")

        expected = self.expected_minutes(profile)
        cfg = self.config

        # Both conditions are required
        if not (actual < expected * cfg.time_flag_ratio and actual < cfg.time_max_actual_minutes):
            return None

        severity = Severity.HIGH if actual < expected * cfg.time_high_severity_ratio else Severity.MEDIUM

        return AnomalyFlag(
            subject_id=job.subject_id,
            job_id=job.id,
            flag_type=self.flag_type,
            severity=severity,
            confidence=cfg.time_confidence,
            evidence={
                'actualMinutes': round_half_up(actual),
                'expectedMinutes': round_half_up(expected),
                'percentOfExpected': round_half_up(actual / expected * 100),
                'location': job.location,
            }
        )
