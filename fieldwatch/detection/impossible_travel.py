"""
Impossible travel detector.

Compares consecutive same-day jobs of each worker and flags transitions that
would require travelling faster than a realistic urban speed.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from fieldwatch.detection.base import BaseDetector
from fieldwatch.detection.models import (
    AnomalyFlag, EvidenceSnapshot, FlagType, JobRecord, Severity
)
from fieldwatch.geo import haversine_distance
from fieldwatch.utils.common import minutes_between, parse_timestamp, round_half_up

logger = logging.getLogger(__name__)


class ImpossibleTravelDetector(BaseDetector):
    """Detects site-to-site transitions faster than physically plausible."""

    flag_type = FlagType.IMPOSSIBLE_TRAVEL

    def detect(self, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        logger.info("Detecting impossible travel between jobs")

        pairs = []
        for subject_id, jobs in self._group_by_subject(snapshot).items():
            for previous, following in zip(jobs, jobs[1:]):
                # Never compare across calendar days
                if previous.scheduled_date != following.scheduled_date:
                    continue
                pairs.append((subject_id, previous, following))

        flags = self._evaluate_each(
            pairs,
            self._evaluate,
            lambda pair: f"jobs {pair[1].id} -> {pair[2].id}"
        )
        logger.info(f"Found {len(flags)} impossible travel anomalies")
        return flags

    def required_minutes(self, distance_meters: float) -> float:
        """Minutes needed to cover a distance at the maximum travel speed."""
        return (distance_meters / 1000.0) / self.config.max_travel_speed_kmh * 60.0

    def _group_by_subject(self, snapshot: EvidenceSnapshot) -> Dict[str, List[JobRecord]]:
        grouped = defaultdict(list)
        for job in snapshot.completed_jobs():
            if not job.subject_id or job.start_time is None:
                continue
            try:
                parse_timestamp(job.start_time)
            except (TypeError, ValueError) as e:
                logger.warning(f"{self.name}: skipping job {job.id}: {e}")
                continue
            grouped[job.subject_id].append(job)

        for jobs in grouped.values():
            jobs.sort(key=lambda job: parse_timestamp(job.start_time))
        return grouped

    def _evaluate(self, pair: Tuple[str, JobRecord, JobRecord]) -> Optional[AnomalyFlag]:
        subject_id, previous, following = pair

        if previous.checkout is None or following.checkin is None:
            return None
        if previous.end_time is None:
            return None

        elapsed = minutes_between(previous.end_time, following.start_time)
        distance = haversine_distance(previous.checkout, following.checkin)
        required = self.required_minutes(distance)

        cfg = self.config
        if not (elapsed < required * cfg.travel_flag_ratio
                and distance > cfg.travel_min_distance_meters):
            return None

        severity = Severity.HIGH if elapsed < required * cfg.travel_high_severity_ratio else Severity.MEDIUM

        return AnomalyFlag(
            subject_id=subject_id,
            job_id=following.id,
            flag_type=self.flag_type,
            severity=severity,
            confidence=cfg.travel_confidence,
            evidence={
                'fromJob': previous.id,
                'toJob': following.id,
                'fromLocation': previous.location,
                'toLocation': following.location,
                'distanceMeters': round_half_up(distance),
                'timeBetweenMinutes': round_half_up(elapsed),
                'requiredMinutes': round_half_up(required),
            }
        )
