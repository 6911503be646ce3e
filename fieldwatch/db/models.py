"""
Database models for FieldWatch.

This module defines the SQLAlchemy models for the evidence records read by
the detectors (properties, jobs, checklist items, photos) and for the
anomaly flags they produce.
"""

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, ForeignKey,
    Text, JSON, Date, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, UTC

Base = declarative_base()


class Property(Base):
    """Job site with optional location and sizing metadata."""

    __tablename__ = 'properties'

    property_id = Column(String(40), primary_key=True)
    name = Column(String(255))
    address = Column(String(255))
    location_lat = Column(Float)
    location_lng = Column(Float)
    geofence_radius_meters = Column(Float, default=100.0)
    estimated_hours = Column(Float)
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)

    # Relationships
    jobs = relationship("Job", back_populates="property")

    def __repr__(self):
        return f"<Property(property_id='{self.property_id}', name='{self.name}')>"


class Job(Base):
    """Unit of field work with attendance and GPS data."""

    __tablename__ = 'jobs'

    job_id = Column(String(40), primary_key=True)
    assigned_staff_id = Column(String(40))
    property_id = Column(String(40), ForeignKey('properties.property_id', ondelete='SET NULL'))
    location = Column(String(255))
    scheduled_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default='pending')
    start_time = Column(DateTime)
    end_time = Column(DateTime)
    checkin_lat = Column(Float)
    checkin_lng = Column(Float)
    checkin_distance_meters = Column(Float)
    checkout_lat = Column(Float)
    checkout_lng = Column(Float)
    checkout_distance_meters = Column(Float)

    # Relationships
    property = relationship("Property", back_populates="jobs")
    checklist_items = relationship("ChecklistItem", back_populates="job", cascade="all, delete-orphan")
    photos = relationship("JobPhoto", back_populates="job", cascade="all, delete-orphan")

    # Indexes
    __table_args__ = (
        Index('idx_jobs_scheduled_date', 'scheduled_date'),
        Index('idx_jobs_status', 'status'),
        Index('idx_jobs_staff', 'assigned_staff_id'),
    )

    def __repr__(self):
        return f"<Job(job_id='{self.job_id}', status='{self.status}', scheduled_date={self.scheduled_date})>"


class ChecklistItem(Base):
    """Task entry on a job's checklist."""

    __tablename__ = 'checklist_items'

    item_id = Column(Integer, primary_key=True)
    job_id = Column(String(40), ForeignKey('jobs.job_id', ondelete='CASCADE'), nullable=False)
    description = Column(Text)
    status = Column(String(20), nullable=False, default='pending')

    # Relationships
    job = relationship("Job", back_populates="checklist_items")

    __table_args__ = (
        Index('idx_checklist_items_job', 'job_id'),
    )


class JobPhoto(Base):
    """Photographic evidence attached to a job."""

    __tablename__ = 'job_photos'

    photo_id = Column(Integer, primary_key=True)
    job_id = Column(String(40), ForeignKey('jobs.job_id', ondelete='CASCADE'), nullable=False)
    file_path = Column(String(255))
    taken_at = Column(DateTime, default=lambda: datetime.now(UTC))

    # Relationships
    job = relationship("Job", back_populates="photos")

    __table_args__ = (
        Index('idx_job_photos_job', 'job_id'),
    )


class AnomalyFlagRecord(Base):
    """Persisted anomaly flag.

    The unique constraint makes a racing insert of the same flag for the
    same window fail instead of producing a duplicate.
    """

    __tablename__ = 'anomaly_flags'

    flag_id = Column(Integer, primary_key=True)
    staff_id = Column(String(40), nullable=False)
    job_id = Column(String(40), ForeignKey('jobs.job_id', ondelete='SET NULL'))
    flag_type = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)
    confidence = Column(Float)
    evidence = Column(JSON)
    window_start = Column(Date, nullable=False)
    status = Column(String(20), default='active')
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    resolved_at = Column(DateTime)
    resolved_by = Column(String(100))

    __table_args__ = (
        UniqueConstraint('staff_id', 'job_id', 'flag_type', 'window_start', name='uq_anomaly_flag_window'),
        Index('idx_anomaly_flags_type', 'flag_type'),
        Index('idx_anomaly_flags_status', 'status'),
        Index('idx_anomaly_flags_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<AnomalyFlagRecord(flag_id={self.flag_id}, flag_type='{self.flag_type}', job_id='{self.job_id}')>"
