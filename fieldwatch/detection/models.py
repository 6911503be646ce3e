"""
Domain records for anomaly detection.

Evidence records are read-only snapshots of the store; ``AnomalyFlag`` is the
detectors' output and the unit of persistence.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from fieldwatch.geo import Coordinate


class JobStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ChecklistStatus(str, Enum):
    DONE = "done"
    PENDING = "pending"
    ISSUE = "issue"
    NOT_APPLICABLE = "not_applicable"


class FlagType(str, Enum):
    GPS_SPOOF = "gps_spoof"
    IMPOSSIBLE_TRAVEL = "impossible_travel"
    TIME_ANOMALY = "time_anomaly"
    CHECKIN_WITHOUT_WORK = "checkin_without_work"
    # Reserved; no detector produces these yet
    PHOTO_REUSE = "photo_reuse"
    PATTERN_SUSPICIOUS = "pattern_suspicious"


class Severity(str, Enum):
    # low and critical are reserved; detectors currently emit medium or high
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Flag statuses that still block re-creation of the same flag
UNRESOLVED_STATUSES = frozenset({"active", "reviewing"})

MAX_CONFIDENCE = 0.95


@dataclass(frozen=True)
class JobRecord:
    """A unit of field work as recorded by the store."""

    id: str
    subject_id: Optional[str]
    scheduled_date: date
    status: JobStatus
    location: Optional[str] = None
    property_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    checkin: Optional[Coordinate] = None
    checkout: Optional[Coordinate] = None
    checkin_distance_meters: Optional[float] = None
    checkout_distance_meters: Optional[float] = None

    @property
    def is_completed(self) -> bool:
        return self.status == JobStatus.COMPLETED


@dataclass(frozen=True)
class PropertyProfile:
    """Sizing metadata for a job site."""

    id: str
    estimated_hours: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None


@dataclass(frozen=True)
class ChecklistItemRecord:
    job_id: str
    status: ChecklistStatus


@dataclass(frozen=True)
class ExistingFlag:
    """A flag already held by the store, used for deduplication."""

    subject_id: str
    job_id: Optional[str]
    flag_type: FlagType
    status: str = "active"
    created_at: Optional[datetime] = None

    @property
    def dedup_key(self) -> Tuple[str, Optional[str], FlagType]:
        return (self.subject_id, self.job_id, self.flag_type)

    @property
    def is_unresolved(self) -> bool:
        return self.status in UNRESOLVED_STATUSES


@dataclass
class AnomalyFlag:
    """A detected signal of anomalous behaviour for a subject or job.

    ``evidence`` holds the numbers that justified the flag. ``confidence``
    is clamped to [0, 0.95] on construction.
    """

    subject_id: str
    flag_type: FlagType
    severity: Severity
    evidence: Dict[str, Any]
    confidence: float
    job_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.confidence = min(MAX_CONFIDENCE, max(0.0, float(self.confidence)))

    @property
    def dedup_key(self) -> Tuple[str, Optional[str], FlagType]:
        return (self.subject_id, self.job_id, self.flag_type)

    def to_dict(self) -> Dict[str, Any]:
        """Render the flag in the trigger response shape."""
        return {
            'subjectId': self.subject_id,
            'jobId': self.job_id,
            'flagType': self.flag_type.value,
            'severity': self.severity.value,
            'evidence': dict(self.evidence),
            'confidence': self.confidence,
            'createdAt': self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class EvidenceSnapshot:
    """Everything the detectors see for one analysis window."""

    window_start: date
    jobs: Sequence[JobRecord]
    properties: Mapping[str, PropertyProfile] = field(default_factory=dict)
    checklists: Mapping[str, Sequence[ChecklistItemRecord]] = field(default_factory=dict)
    photo_counts: Mapping[str, int] = field(default_factory=dict)
    existing_flags: Sequence[ExistingFlag] = field(default_factory=tuple)

    def completed_jobs(self) -> List[JobRecord]:
        return [job for job in self.jobs if job.is_completed]

    def property_for(self, job: JobRecord) -> Optional[PropertyProfile]:
        if job.property_id is None:
            return None
        return self.properties.get(job.property_id)


@dataclass
class PersistenceFailure:
    flag: AnomalyFlag
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'flag': self.flag.to_dict(), 'error': self.error}


@dataclass
class RunSummary:
    """Outcome of one analysis run."""

    window_start: date
    flags: List[AnomalyFlag] = field(default_factory=list)
    stored_flags: List[AnomalyFlag] = field(default_factory=list)
    skipped_duplicates: int = 0
    failures: List[PersistenceFailure] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def anomalies_detected(self) -> int:
        return len(self.flags)

    @property
    def new_flags_stored(self) -> int:
        return len(self.stored_flags)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'anomaliesDetected': self.anomalies_detected,
            'newFlagsStored': self.new_flags_stored,
            'flags': [flag.to_dict() for flag in self.flags],
            'skippedDuplicates': self.skipped_duplicates,
            'failures': [failure.to_dict() for failure in self.failures],
            'windowStart': self.window_start.isoformat(),
        }
