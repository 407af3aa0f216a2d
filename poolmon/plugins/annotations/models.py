"""
SQLAlchemy model for annotations: point events (state changes) and ranges (weather alerts).
"""
from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from poolmon.core.db import Base


class AnnotationRecord(Base):
    """One annotation. end_time is null for point events; external_id deduplicates ingested events."""
    __tablename__ = "annotations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=False), nullable=False, index=True)
    end_time = Column(DateTime(timezone=False), nullable=True)
    category = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    external_id = Column(String(255), nullable=True, unique=True)
