"""
SQLAlchemy model for the durable copy of time-series points: one row per written point.
"""
from sqlalchemy import Column, DateTime, Index, Integer, JSON, String

from poolmon.core.db import Base


class TimeSeriesRecord(Base):
    """One point of one measurement. timestamp is naive UTC; fields/tags are JSON objects."""
    __tablename__ = "timeseries_points"
    __table_args__ = (Index("ix_timeseries_measurement_time", "measurement", "timestamp"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    measurement = Column(String(128), nullable=False)
    timestamp = Column(DateTime(timezone=False), nullable=False)
    fields = Column(JSON, nullable=False)
    tags = Column(JSON, nullable=True)
