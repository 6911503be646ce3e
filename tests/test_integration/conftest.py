"""
Pytest fixtures for integration tests.

These fixtures point the global configuration and session factory at a
temporary SQLite database.
"""

import pytest

from fieldwatch.config import reset_config, set_config
from fieldwatch.db import session as db_session
from fieldwatch.db.init import initialize


@pytest.fixture(scope="function")
def test_db_path(tmp_path):
    """Path of a database file that does not exist yet."""
    return str(tmp_path / "data" / "fieldwatch.db")


@pytest.fixture(scope="function")
def test_config(test_db_path):
    """Create a test configuration."""
    config = {
        "database": {
            "db_type": "sqlite",
            "db_path": test_db_path,
            "echo": False
        },
        "auth": {
            "cron_secret": "s3cret",
            "admin_user_ids": ["admin-1"]
        },
        "logging": {
            "level": "ERROR",
            "file": None
        }
    }
    set_config(config)
    db_session.init_db(config["database"])
    yield config
    db_session.dispose_db()
    reset_config()


@pytest.fixture(scope="function")
def initialized_db(test_config):
    """Create the tables in the temporary database."""
    assert initialize(test_config["database"])
    return test_config
