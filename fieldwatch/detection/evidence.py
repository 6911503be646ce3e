"""
Evidence loading for the anomaly detection engine.

This module defines the read-only interface to the evidence store and the
function that assembles one immutable snapshot per analysis window. Any
failure while loading is fatal to the run.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List, Optional

from fieldwatch.detection.models import (
    AnomalyFlag, ChecklistItemRecord, EvidenceSnapshot, ExistingFlag,
    JobRecord, PropertyProfile
)
from fieldwatch.exceptions import EvidenceLoadError, RunCancelledError

logger = logging.getLogger(__name__)


class EvidenceLoader(ABC):
    """Read boundary to the store holding job, property and flag records."""

    @abstractmethod
    def load_jobs(self, window_start: date) -> List[JobRecord]:
        """Completed and pending jobs scheduled on or after ``window_start``."""
        pass

    @abstractmethod
    def load_property_profiles(self, property_ids: Iterable[str]) -> List[PropertyProfile]:
        pass

    @abstractmethod
    def load_checklist_statuses(self, job_id: str) -> List[ChecklistItemRecord]:
        pass

    @abstractmethod
    def load_photo_count(self, job_id: str) -> int:
        pass

    @abstractmethod
    def load_existing_flags(self, window_start: date) -> List[ExistingFlag]:
        """Flags created on or after ``window_start``."""
        pass


class FlagWriter(ABC):
    """Write boundary used only by the engine to persist new flags."""

    @abstractmethod
    def save_flag(self, flag: AnomalyFlag, window_start: date) -> None:
        """Persist one flag.

        Raises:
            DuplicateFlagError: If the store already holds this flag for the window
            PersistenceError: If the flag could not be stored
        """
        pass


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise RunCancelledError("Run cancelled while loading evidence")


def load_evidence(loader: EvidenceLoader, window_start: date,
                  cancel_event: Optional[threading.Event] = None) -> EvidenceSnapshot:
    """Load everything the detectors need for one window.

    Checklist and photo evidence is only fetched for completed jobs.

    Args:
        loader: Evidence store
        window_start: First day of the analysis window
        cancel_event: Optional event; when set, loading stops

    Returns:
        EvidenceSnapshot

    Raises:
        EvidenceLoadError: If the store fails
        RunCancelledError: If ``cancel_event`` is set before loading completes
    """
    logger.info(f"Loading evidence from {window_start.isoformat()}")

    try:
        _check_cancelled(cancel_event)
        jobs = list(loader.load_jobs(window_start))

        property_ids = sorted({job.property_id for job in jobs if job.property_id})
        profiles = list(loader.load_property_profiles(property_ids)) if property_ids else []

        checklists = {}
        photo_counts = {}
        for job in jobs:
            if not job.is_completed:
                continue
            _check_cancelled(cancel_event)
            checklists[job.id] = tuple(loader.load_checklist_statuses(job.id))
            photo_counts[job.id] = int(loader.load_photo_count(job.id) or 0)

        _check_cancelled(cancel_event)
        existing = list(loader.load_existing_flags(window_start))
    except (RunCancelledError, EvidenceLoadError):
        raise
    except Exception as e:
        logger.exception(f"Evidence loading failed: {e}")
        raise EvidenceLoadError(f"Could not load evidence: {e}") from e

    logger.info(
        f"Loaded {len(jobs)} jobs, {len(profiles)} property profiles and "
        f"{len(existing)} existing flags"
    )

    return EvidenceSnapshot(
        window_start=window_start,
        jobs=tuple(jobs),
        properties={profile.id: profile for profile in profiles},
        checklists=checklists,
        photo_counts=photo_counts,
        existing_flags=tuple(existing)
    )
