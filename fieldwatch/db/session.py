"""
Database session management for FieldWatch.

This module provides functions for creating and managing database sessions,
including creating the database engine and session factory.
"""

import os
from typing import Optional, Dict, Any, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine

from fieldwatch.config import get_section


def get_connection_string(config: Optional[Dict[str, Any]] = None) -> str:
    """Build a database URL from a ``database`` config section.

    Args:
        config: Database configuration (defaults to the global config if None)

    Returns:
        SQLAlchemy URL string
    """
    if config is None:
        config = get_section('database')

    db_type = config.get('db_type', 'sqlite')

    if db_type == 'sqlite':
        db_path = config.get('db_path', 'fieldwatch.db')
        return f"sqlite:///{db_path}"
    elif db_type == 'postgresql':
        host = config.get('db_host', 'localhost')
        port = config.get('db_port', 5432)
        database = config.get('db_name', 'fieldwatch')
        user = config.get('db_user', 'postgres')
        password = config.get('db_password', '')
        return f"postgresql://{user}:{password}@{host}:{port}/{database}"
    else:
        raise ValueError(f"Unsupported database type: {db_type}")


def get_database_engine(config: Optional[Dict[str, Any]] = None) -> Engine:
    """Get SQLAlchemy engine based on configuration.

    Args:
        config: Database configuration (defaults to the global config if None)

    Returns:
        SQLAlchemy engine
    """
    if config is None:
        config = get_section('database')

    db_type = config.get('db_type', 'sqlite')
    connect_args = {}

    if db_type == 'sqlite':
        db_path = config.get('db_path', 'fieldwatch.db')
        # Make sure the directory exists
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        connect_args['check_same_thread'] = False

    return create_engine(
        get_connection_string(config),
        echo=config.get('echo', False),
        connect_args=connect_args
    )


# Session factory bound to the configured database
_SessionFactory: Optional[sessionmaker] = None


def init_db(config: Optional[Dict[str, Any]] = None) -> Engine:
    """Bind the session factory to a database, replacing any previous binding.

    Args:
        config: Database configuration (defaults to the global config if None)

    Returns:
        The new SQLAlchemy engine
    """
    global _SessionFactory
    dispose_db()
    engine = get_database_engine(config)
    _SessionFactory = sessionmaker(bind=engine)
    return engine


def dispose_db() -> None:
    """Close the pooled connections and forget the current binding."""
    global _SessionFactory
    if _SessionFactory is not None:
        _SessionFactory.kw['bind'].dispose()
        _SessionFactory = None


def get_engine() -> Engine:
    """Engine behind the session factory, binding the configured database if needed."""
    if _SessionFactory is None:
        return init_db()
    return _SessionFactory.kw['bind']


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations.

    Yields:
        SQLAlchemy session
    """
    if _SessionFactory is None:
        init_db()
    session = _SessionFactory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
