"""
Database initialization for FieldWatch.

This module provides functions for initializing the database schema and
creating the necessary tables.
"""

import os
import logging
from typing import Any, Dict

from fieldwatch.db.models import Base
from fieldwatch.db.session import get_engine, init_db

logger = logging.getLogger(__name__)


def init_database(engine=None):
    """Initialize the database schema.

    Args:
        engine: SQLAlchemy engine (defaults to the global engine if None)
    """
    if engine is None:
        engine = get_engine()

    logger.info("Creating database tables")
    Base.metadata.create_all(engine)
    logger.info("Database tables created successfully")


def ensure_directory_exists(path):
    """Ensure that the directory for the database file exists.

    Args:
        path: Path to the database file
    """
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)
        logger.info(f"Created directory: {directory}")


def initialize(db_config: Dict[str, Any], force: bool = False) -> bool:
    """Create the database described by a ``database`` config section.

    Args:
        db_config: Database configuration
        force: Recreate tables even if the SQLite file already exists

    Returns:
        True if tables were created, False if skipped
    """
    if db_config.get('db_type', 'sqlite') == 'sqlite':
        db_path = db_config.get('db_path', 'fieldwatch.db')
        if os.path.exists(db_path) and not force:
            logger.warning(f"Database file already exists: {db_path}")
            logger.warning("Use --force to reinitialize")
            return False
        ensure_directory_exists(db_path)

    logger.info(f"Initializing {db_config.get('db_type', 'sqlite')} database")
    init_db(db_config)
    init_database()
    logger.info("Database initialization complete")
    return True
