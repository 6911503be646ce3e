"""
Main engine for anomaly detection in FieldWatch.

This module provides the orchestrator that loads one evidence window, runs
the detectors over it, deduplicates the candidates against flags already on
record, and persists the net-new flags.
"""

import concurrent.futures
import logging
import threading
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple

from fieldwatch.detection.base import BaseDetector, DetectionConfig
from fieldwatch.detection.evidence import EvidenceLoader, FlagWriter, load_evidence
from fieldwatch.detection.gps_spoof import GpsSpoofDetector
from fieldwatch.detection.impossible_travel import ImpossibleTravelDetector
from fieldwatch.detection.models import (
    AnomalyFlag, EvidenceSnapshot, ExistingFlag, FlagType, PersistenceFailure, RunSummary
)
from fieldwatch.detection.time_anomaly import TimeAnomalyDetector
from fieldwatch.detection.work_evidence import WorkEvidenceDetector
from fieldwatch.exceptions import DuplicateFlagError
from fieldwatch.utils.common import parse_date

logger = logging.getLogger(__name__)

DedupKey = Tuple[str, Optional[str], FlagType]

# Serializes runs within one process
_RUN_LOCK = threading.Lock()


def default_detectors(config: DetectionConfig) -> List[BaseDetector]:
    """The standard detector set, in reporting order."""
    return [
        GpsSpoofDetector(config),
        ImpossibleTravelDetector(config),
        TimeAnomalyDetector(config),
        WorkEvidenceDetector(config),
    ]


def default_window_start(window_days: int, today: Optional[date] = None) -> date:
    """First day of the trailing window ending today."""
    today = today or datetime.now(timezone.utc).date()
    return today - timedelta(days=window_days)


class AnomalyDetectionEngine:
    """Coordinates evidence loading, detection, deduplication and persistence."""

    def __init__(self, loader: EvidenceLoader, writer: FlagWriter,
                 config: Optional[DetectionConfig] = None,
                 detectors: Optional[Sequence[BaseDetector]] = None,
                 run_lock: Optional[threading.Lock] = None):
        """Initialize the engine.

        Args:
            loader: Evidence store (read-only)
            writer: Flag persistence
            config: Detection configuration (defaults are used if None)
            detectors: Detectors to run (defaults to the standard set)
            run_lock: Lock serializing runs (defaults to a process-wide lock)
        """
        self.loader = loader
        self.writer = writer
        self.config = config or DetectionConfig()
        self.detectors = list(detectors) if detectors is not None else default_detectors(self.config)
        self._run_lock = run_lock or _RUN_LOCK

    def run(self, window_start: Optional[date] = None,
            cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """Execute one analysis run.

        Args:
            window_start: First day of the window (defaults to the trailing window)
            cancel_event: Optional event; honoured until evidence is loaded

        Returns:
            RunSummary

        Raises:
            EvidenceLoadError: If the evidence window cannot be loaded
            RunCancelledError: If cancelled before evidence loading completed
        """
        if window_start is None:
            window_start = default_window_start(self.config.window_days)

        if not self.config.enabled:
            logger.info("Anomaly detection is disabled; skipping run")
            now = datetime.now(timezone.utc)
            return RunSummary(window_start=window_start, started_at=now, finished_at=now)

        with self._run_lock:
            started_at = datetime.now(timezone.utc)
            logger.info(f"Starting anomaly detection for window from {window_start.isoformat()}")

            snapshot = load_evidence(self.loader, window_start, cancel_event)
            candidates = self.detect(snapshot)

            summary = RunSummary(window_start=window_start, flags=candidates, started_at=started_at)
            new_flags = self.deduplicate(candidates, snapshot.existing_flags, window_start)
            summary.skipped_duplicates = len(candidates) - len(new_flags)
            self._persist(new_flags, window_start, summary)

            summary.finished_at = datetime.now(timezone.utc)

        logger.info(
            f"Detected {summary.anomalies_detected} anomalies, stored "
            f"{summary.new_flags_stored} new flags ({summary.skipped_duplicates} duplicates, "
            f"{len(summary.failures)} failures)"
        )
        return summary

    def detect(self, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        """Run every detector over the snapshot and merge their candidates.

        Output order follows the detector order regardless of execution mode.
        """
        if self.config.parallel and len(self.detectors) > 1:
            results = self._detect_parallel(snapshot)
        else:
            results = {index: self._run_detector(detector, snapshot)
                       for index, detector in enumerate(self.detectors)}

        candidates = []
        for index in range(len(self.detectors)):
            candidates.extend(results.get(index, []))
        return candidates

    def _detect_parallel(self, snapshot: EvidenceSnapshot) -> Dict[int, List[AnomalyFlag]]:
        results = {}
        max_workers = max(1, min(self.config.max_workers, len(self.detectors)))

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(self._run_detector, detector, snapshot): index
                for index, detector in enumerate(self.detectors)
            }
            for future in concurrent.futures.as_completed(future_to_index):
                results[future_to_index[future]] = future.result()

        return results

    def _run_detector(self, detector: BaseDetector, snapshot: EvidenceSnapshot) -> List[AnomalyFlag]:
        try:
            return detector.detect(snapshot)
        except Exception as e:
            # A broken detector must not suppress the others
            logger.exception(f"Detector '{detector.name}' failed: {e}")
            return []

    @staticmethod
    def deduplicate(candidates: Sequence[AnomalyFlag], existing: Sequence[ExistingFlag],
                    window_start: date) -> List[AnomalyFlag]:
        """Drop candidates already on record, or repeated within this run.

        Only unresolved flags created on or after ``window_start`` block a
        candidate.
        """
        seen: Set[DedupKey] = set()
        for flag in existing:
            if not flag.is_unresolved:
                continue
            created = parse_date(flag.created_at)
            if created is not None and created < window_start:
                continue
            seen.add(flag.dedup_key)

        new_flags = []
        for candidate in candidates:
            if candidate.dedup_key in seen:
                continue
            seen.add(candidate.dedup_key)
            new_flags.append(candidate)
        return new_flags

    def _persist(self, flags: Sequence[AnomalyFlag], window_start: date, summary: RunSummary) -> None:
        # One flag at a time; a failure only affects that flag
        for flag in flags:
            try:
                self.writer.save_flag(flag, window_start)
            except DuplicateFlagError:
                logger.info(f"Flag {flag.flag_type.value} for job {flag.job_id} already stored")
                summary.skipped_duplicates += 1
            except Exception as e:
                logger.error(f"Failed to store {flag.flag_type.value} flag for job {flag.job_id}: {e}")
                summary.failures.append(PersistenceFailure(flag=flag, error=str(e)))
            else:
                summary.stored_flags.append(flag)
