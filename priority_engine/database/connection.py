"""
Database connection management for the priority engine
"""
import logging
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = 'sqlite:///priority_engine.db'


def database_url() -> str:
    return os.getenv('DATABASE_URL', DEFAULT_DATABASE_URL)


def create_db_engine(url: Optional[str] = None) -> Engine:
    url = url or database_url()
    if url in ('sqlite://', 'sqlite:///:memory:'):
        # one shared connection so every session sees the same in-memory database
        return create_engine(url, connect_args={'check_same_thread': False}, poolclass=StaticPool)
    return create_engine(url)


def create_session_factory(url: Optional[str] = None, create_tables: bool = True) -> sessionmaker:
    """Session factory bound to a fresh engine, creating tables on request"""
    engine = create_db_engine(url)
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(url: Optional[str] = None) -> sessionmaker:
    """Initialize the database from ``DATABASE_URL``, creating all tables"""
    session_factory = create_session_factory(url)
    logger.debug('Database initialized')
    return session_factory
