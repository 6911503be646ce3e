"""
Database operations for FieldWatch.

This module provides functions for registering evidence records, storing and
querying anomaly flags, and the SQLAlchemy-backed evidence store used by the
detection engine.
"""

import logging
from datetime import date, datetime, UTC
from typing import Any, Iterable, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from fieldwatch.db.models import AnomalyFlagRecord, ChecklistItem, Job, JobPhoto, Property
from fieldwatch.detection.evidence import EvidenceLoader, FlagWriter
from fieldwatch.detection.models import (
    AnomalyFlag, ChecklistItemRecord, ChecklistStatus, ExistingFlag, FlagType,
    JobRecord, JobStatus, PropertyProfile, UNRESOLVED_STATUSES
)
from fieldwatch.exceptions import DuplicateFlagError, PersistenceError
from fieldwatch.geo import Coordinate, check_geofence

logger = logging.getLogger(__name__)

# Jobs the loader hands to the detectors
LOADED_JOB_STATUSES = (JobStatus.COMPLETED.value, JobStatus.PENDING.value)

FLAG_RESOLUTION_STATUSES = ('resolved', 'dismissed')


def register_property(
    session: Session,
    property_id: str,
    name: Optional[str] = None,
    address: Optional[str] = None,
    location_lat: Optional[float] = None,
    location_lng: Optional[float] = None,
    geofence_radius_meters: float = 100.0,
    estimated_hours: Optional[float] = None,
    bedrooms: Optional[int] = None,
    bathrooms: Optional[int] = None
) -> Property:
    """Register a property in the database.

    Args:
        session: SQLAlchemy session
        property_id: Property ID
        name: Display name
        address: Street address
        location_lat: Site latitude
        location_lng: Site longitude
        geofence_radius_meters: Accepted check-in radius
        estimated_hours: Estimated job duration in hours
        bedrooms: Number of bedrooms
        bathrooms: Number of bathrooms

    Returns:
        Property object
    """
    prop = Property(
        property_id=property_id,
        name=name,
        address=address,
        location_lat=location_lat,
        location_lng=location_lng,
        geofence_radius_meters=geofence_radius_meters,
        estimated_hours=estimated_hours,
        bedrooms=bedrooms,
        bathrooms=bathrooms
    )
    session.add(prop)
    session.flush()
    return prop


def register_job(session: Session, job_id: str, scheduled_date: date, **fields: Any) -> Job:
    """Register a job in the database.

    Args:
        session: SQLAlchemy session
        job_id: Job ID
        scheduled_date: Scheduled calendar day
        **fields: Any other ``Job`` column

    Returns:
        Job object
    """
    job = Job(job_id=job_id, scheduled_date=scheduled_date, **fields)
    session.add(job)
    session.flush()
    return job


def add_checklist_items(session: Session, job_id: str, statuses: Iterable[str]) -> List[ChecklistItem]:
    """Add checklist items with the given statuses to a job."""
    items = [ChecklistItem(job_id=job_id, status=status) for status in statuses]
    session.add_all(items)
    session.flush()
    return items


def add_job_photo(session: Session, job_id: str, file_path: Optional[str] = None) -> JobPhoto:
    """Attach a photo record to a job."""
    photo = JobPhoto(job_id=job_id, file_path=file_path)
    session.add(photo)
    session.flush()
    return photo


def _coordinate(lat: Optional[float], lng: Optional[float]) -> Optional[Coordinate]:
    if lat is None or lng is None:
        return None
    return Coordinate(latitude=float(lat), longitude=float(lng))


def job_to_record(job: Job) -> JobRecord:
    """Convert a ``Job`` row into a detector record.

    When geofence validation left no check-in distance but both the check-in
    position and the site location are known, the distance is computed here.
    """
    checkin = _coordinate(job.checkin_lat, job.checkin_lng)
    checkout = _coordinate(job.checkout_lat, job.checkout_lng)
    checkin_distance = job.checkin_distance_meters
    checkout_distance = job.checkout_distance_meters

    prop = job.property
    site = _coordinate(prop.location_lat, prop.location_lng) if prop is not None else None
    if site is not None:
        radius = prop.geofence_radius_meters or 0.0
        if checkin_distance is None and checkin is not None:
            checkin_distance = check_geofence(checkin, site, radius).distance_meters
        if checkout_distance is None and checkout is not None:
            checkout_distance = check_geofence(checkout, site, radius).distance_meters

    return JobRecord(
        id=job.job_id,
        subject_id=job.assigned_staff_id,
        scheduled_date=job.scheduled_date,
        status=JobStatus(job.status),
        location=job.location,
        property_id=job.property_id,
        start_time=job.start_time,
        end_time=job.end_time,
        checkin=checkin,
        checkout=checkout,
        checkin_distance_meters=checkin_distance,
        checkout_distance_meters=checkout_distance
    )


def _checklist_status(value: Optional[str]) -> ChecklistStatus:
    """Normalize a stored checklist status.

    Values outside the known set count as not done.
    """
    normalized = str(value or '').strip().lower().replace('-', '_')
    try:
        return ChecklistStatus(normalized)
    except ValueError:
        logger.warning(f"Unknown checklist status {value!r}, treating as pending")
        return ChecklistStatus.PENDING


def create_anomaly_flag(session: Session, flag: AnomalyFlag, window_start: date) -> AnomalyFlagRecord:
    """Store a flag and commit it.

    Each flag is committed on its own so that a later failure cannot roll
    back flags already written.

    Args:
        session: SQLAlchemy session
        flag: Flag to store
        window_start: Analysis window the flag belongs to

    Returns:
        AnomalyFlagRecord object

    Raises:
        DuplicateFlagError: If the same flag is already stored for this window
        PersistenceError: On any other database error
    """
    record = AnomalyFlagRecord(
        staff_id=flag.subject_id,
        job_id=flag.job_id,
        flag_type=flag.flag_type.value,
        severity=flag.severity.value,
        confidence=flag.confidence,
        evidence=flag.evidence,
        window_start=window_start,
        status='active',
        created_at=flag.created_at
    )

    try:
        session.add(record)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise DuplicateFlagError(f"Flag already stored: {flag.dedup_key}") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(str(e)) from e

    return record


def get_anomaly_flags(
    session: Session,
    flag_type: Optional[str] = None,
    staff_id: Optional[str] = None,
    status: Optional[str] = None,
    since: Optional[datetime] = None
) -> List[AnomalyFlagRecord]:
    """Get anomaly flags matching the given filters.

    Args:
        session: SQLAlchemy session
        flag_type: Flag type filter
        staff_id: Worker filter
        status: Status filter
        since: Only flags created at or after this time

    Returns:
        List of AnomalyFlagRecord objects, newest first
    """
    query = session.query(AnomalyFlagRecord)

    if flag_type:
        query = query.filter(AnomalyFlagRecord.flag_type == flag_type)
    if staff_id:
        query = query.filter(AnomalyFlagRecord.staff_id == staff_id)
    if status:
        query = query.filter(AnomalyFlagRecord.status == status)
    if since is not None:
        query = query.filter(AnomalyFlagRecord.created_at >= since)

    return query.order_by(AnomalyFlagRecord.created_at.desc()).all()


def resolve_anomaly_flag(
    session: Session,
    flag_id: int,
    status: str = 'resolved',
    resolved_by: Optional[str] = None
) -> Optional[AnomalyFlagRecord]:
    """Close a flag so that later runs may raise it again.

    Args:
        session: SQLAlchemy session
        flag_id: Flag ID
        status: Closing status ('resolved' or 'dismissed')
        resolved_by: Operator closing the flag

    Returns:
        Updated AnomalyFlagRecord, or None if not found
    """
    if status not in FLAG_RESOLUTION_STATUSES:
        raise ValueError(f"Invalid resolution status: {status}")

    record = session.get(AnomalyFlagRecord, flag_id)
    if record is None:
        return None

    record.status = status
    record.resolved_at = datetime.now(UTC)
    record.resolved_by = resolved_by
    session.flush()
    return record


class SqlAlchemyEvidenceStore(EvidenceLoader, FlagWriter):
    """Evidence store and flag writer backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def load_jobs(self, window_start: date) -> List[JobRecord]:
        jobs = (
            self.session.query(Job)
            .options(joinedload(Job.property))
            .filter(and_(
                Job.scheduled_date >= window_start,
                Job.status.in_(LOADED_JOB_STATUSES)
            ))
            .order_by(Job.start_time)
            .all()
        )
        return [job_to_record(job) for job in jobs]

    def load_property_profiles(self, property_ids: Iterable[str]) -> List[PropertyProfile]:
        ids = list(property_ids)
        if not ids:
            return []
        rows = self.session.query(Property).filter(Property.property_id.in_(ids)).all()
        return [
            PropertyProfile(
                id=row.property_id,
                estimated_hours=row.estimated_hours,
                bedrooms=row.bedrooms,
                bathrooms=row.bathrooms
            )
            for row in rows
        ]

    def load_checklist_statuses(self, job_id: str) -> List[ChecklistItemRecord]:
        rows = self.session.query(ChecklistItem.status).filter(ChecklistItem.job_id == job_id).all()
        return [ChecklistItemRecord(job_id=job_id, status=_checklist_status(status)) for (status,) in rows]

    def load_photo_count(self, job_id: str) -> int:
        return self.session.query(func.count(JobPhoto.photo_id)).filter(JobPhoto.job_id == job_id).scalar() or 0

    def load_existing_flags(self, window_start: date) -> List[ExistingFlag]:
        since = datetime.combine(window_start, datetime.min.time())
        rows = (
            self.session.query(AnomalyFlagRecord)
            .filter(and_(
                AnomalyFlagRecord.created_at >= since,
                AnomalyFlagRecord.status.in_(tuple(UNRESOLVED_STATUSES))
            ))
            .all()
        )
        return [
            ExistingFlag(
                subject_id=row.staff_id,
                job_id=row.job_id,
                flag_type=FlagType(row.flag_type),
                status=row.status,
                created_at=row.created_at
            )
            for row in rows
        ]

    def save_flag(self, flag: AnomalyFlag, window_start: date) -> None:
        create_anomaly_flag(self.session, flag, window_start)
