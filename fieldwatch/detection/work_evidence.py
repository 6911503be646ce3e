"""
Work evidence detector.

Flags completed jobs that carry no photographic evidence and little checklist
progress: the worker checked in but there is no sign the work was done.
"""

import logging
from typing import List, Optional, Sequence

from fieldwatch.detection.base import BaseDetector
from fieldwatch.detection.models import (
    AnomalyFlag, ChecklistItemRecord, ChecklistStatus, EvidenceSnapshot,
    FlagType, JobRecord, Severity
)
from fieldwatch.utils.common import calculate_percentage, round_half_up

logger = logging.getLogger(__name__)


class WorkEvidenceDetector(BaseDetector):
    """Detects completed jobs without evidence of work."""

    flag_type = FlagType.CHECKIN_WITHOUT_WORK

    def detect(self, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        logger.info("Detecting check-ins without work")

        candidates = [job for job in snapshot.completed_jobs() if job.subject_id]

        flags = self._evaluate_each(
            candidates,
            lambda job: self._evaluate(
                job,
                snapshot.photo_counts.get(job.id, 0),
                snapshot.checklists.get(job.id, ())
            ),
            lambda job: f"job {job.id}"
        )
        logger.info(f"Found {len(flags)} check-in without work anomalies")
        return flags

    def _evaluate(self, job: JobRecord, photo_count: int,
                  items: Sequence[ChecklistItemRecord]) -> Optional[AnomalyFlag]:
        photo_count = int(photo_count or 0)
        total = len(items)

        # Without a checklist there is nothing to measure progress against
        if total == 0 or photo_count > 0:
            return None

        # Only items marked done count; issue and not_applicable do not
        completed = sum(1 for item in items if item.status == ChecklistStatus.DONE)
        if completed >= total * self.config.work_completion_ratio:
            return None

        return AnomalyFlag(
            subject_id=job.subject_id,
            job_id=job.id,
            flag_type=self.flag_type,
            severity=Severity.HIGH if completed == 0 else Severity.MEDIUM,
            confidence=self.config.work_confidence,
            evidence={
                'photoCount': photo_count,
                'checklistTotal': total,
                'checklistCompleted': completed,
                'completionRate': round_half_up(calculate_percentage(completed, total)),
                'location': job.location,
            }
        )
