"""
Database models for the priority engine
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkspacePreference(Base):
    """Per-workspace preferences, including the stored priority config"""
    __tablename__ = 'workspace_preferences'

    id = Column(Integer, primary_key=True)
    workspace_id = Column(String(255), unique=True, nullable=False)
    priority_config = Column(Text)  # JSON; NULL means the defaults apply
    priority_config_updated_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
