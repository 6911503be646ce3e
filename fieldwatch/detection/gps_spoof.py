"""
GPS spoof detector.

Flags completed jobs whose check-in was recorded far from the expected site.
The check-in distance is computed upstream by geofence validation; this
detector only judges it.
"""

import logging
from typing import List, Optional

from fieldwatch.detection.base import BaseDetector
from fieldwatch.detection.models import (
    AnomalyFlag, EvidenceSnapshot, FlagType, JobRecord, Severity
)

logger = logging.getLogger(__name__)


class GpsSpoofDetector(BaseDetector):
    """Detects check-ins far from the job site."""

    flag_type = FlagType.GPS_SPOOF

    def detect(self, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        logger.info("Detecting GPS spoofing")

        # No check-in position means no evidence either way
        candidates = [
            job for job in snapshot.completed_jobs()
            if job.checkin is not None and job.subject_id
        ]

        flags = self._evaluate_each(candidates, self._evaluate, lambda job: f"job {job.id}")
        logger.info(f"Found {len(flags)} GPS spoof anomalies")
        return flags

    def _evaluate(self, job: JobRecord) -> Optional[AnomalyFlag]:
        if job.checkin_distance_meters is None:
            return None

        distance = float(job.checkin_distance_meters)
        cfg = self.config
        if distance <= cfg.gps_spoof_threshold_meters:
            return None

        severity = Severity.HIGH if distance > cfg.gps_spoof_high_severity_meters else Severity.MEDIUM
        confidence = min(
            cfg.gps_spoof_confidence_cap,
            cfg.gps_spoof_confidence_base + distance / cfg.gps_spoof_confidence_divisor_meters
        )

        return AnomalyFlag(
            subject_id=job.subject_id,
            job_id=job.id,
            flag_type=self.flag_type,
            severity=severity,
            confidence=confidence,
            evidence={
                'checkinDistance': distance,
                'checkinLat': job.checkin.latitude,
                'checkinLng': job.checkin.longitude,
                'location': job.location,
                'threshold': cfg.gps_spoof_threshold_meters,
            }
        )
