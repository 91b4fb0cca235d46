"""
Database package for the priority engine
"""
from .connection import create_session_factory, init_db
from .models import Base, WorkspacePreference

__all__ = [
    'Base',
    'WorkspacePreference',
    'create_session_factory',
    'init_db',
]
