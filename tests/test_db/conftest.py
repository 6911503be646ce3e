"""
Pytest fixtures for database tests.
"""

from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fieldwatch.config import reset_config, set_config
from fieldwatch.db.models import Base
from fieldwatch.db.operations import register_job, register_property

WINDOW_START = date(2024, 5, 1)
JOB_DAY = date(2024, 5, 6)


@pytest.fixture(scope="function")
def test_db_path(tmp_path):
    """Database file for one test; flags are committed as they are stored."""
    return str(tmp_path / "fieldwatch.db")


@pytest.fixture(scope="function")
def test_config(test_db_path):
    """Create a test configuration."""
    config = {
        "database": {
            "db_type": "sqlite",
            "db_path": test_db_path,
            "echo": False
        }
    }
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(scope="function")
def test_engine(test_config):
    """Create a test database engine."""
    engine = create_engine(f"sqlite:///{test_config['database']['db_path']}")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session(test_engine):
    """Create a test database session."""
    Session = sessionmaker(bind=test_engine)
    session = Session()

    yield session

    session.rollback()
    session.close()


@pytest.fixture(scope="function")
def sample_site(test_session):
    """A property with a known location and sizing."""
    prop = register_property(
        test_session,
        "prop-1",
        name="Harbour View",
        location_lat=-33.8688,
        location_lng=151.2093,
        geofence_radius_meters=100.0,
        bedrooms=3,
        bathrooms=2
    )
    test_session.commit()
    return prop


@pytest.fixture(scope="function")
def sample_spoofed_job(test_session, sample_site):
    """A completed job whose check-in was 1.2 km from the site."""
    job = register_job(
        test_session,
        "job-1",
        JOB_DAY,
        assigned_staff_id="staff-1",
        property_id=sample_site.property_id,
        location="Harbour View",
        status="completed",
        start_time=datetime(2024, 5, 6, 9, 0),
        end_time=datetime(2024, 5, 6, 10, 30),
        checkin_lat=-33.8580,
        checkin_lng=151.2093,
        checkin_distance_meters=1200.0
    )
    test_session.commit()
    return job
