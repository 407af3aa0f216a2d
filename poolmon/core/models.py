"""
Core DB models: persisted schedule for background tasks (poll, alert check).
"""
from datetime import datetime, timezone
from typing import List

from sqlalchemy import Column, String, DateTime, Integer, Text, select

from poolmon.core.db import Base, session_scope


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_db_datetime(dt: datetime) -> datetime:
    """Aware (or naive UTC) datetime -> naive UTC for storage."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def from_db_datetime(dt: datetime) -> datetime:
    """Naive UTC datetime from the DB -> aware UTC."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc)


class TaskSchedule(Base):
    """Per-task schedule so the last/next run survives restarts."""
    __tablename__ = "task_schedules"

    task_name = Column(String(255), primary_key=True)
    interval_seconds = Column(Integer, nullable=False)
    next_run_at = Column(DateTime(timezone=False), nullable=True)  # null = run immediately
    last_run_at = Column(DateTime(timezone=False), nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


def get_all_task_schedule_records() -> List[TaskSchedule]:
    """Return all TaskSchedule ORM rows (for API serialization via Pydantic from_attributes)."""
    with session_scope() as session:
        return list(session.execute(select(TaskSchedule)).scalars().all())
