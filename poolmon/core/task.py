"""
Base task type: an interval job whose last/next run is persisted in the DB.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select

from poolmon.core.db import is_initialized, session_scope
from poolmon.core.models import TaskSchedule, _utc_now

logger = logging.getLogger(__name__)


def get_next_run_from_db(task_name: str) -> Optional[datetime]:
    """Read next_run_at for a task. None if no row, null column or no DB (task runs immediately)."""
    if not is_initialized():
        return None
    try:
        with session_scope() as session:
            row = session.execute(
                select(TaskSchedule).where(TaskSchedule.task_name == task_name)
            ).scalars().first()
            if row and row.next_run_at is not None:
                return row.next_run_at
    except Exception as e:
        logger.debug(f"get_next_run_from_db {task_name}: {e}")
    return None


def record_run(task_name: str, interval_seconds: int, error: Optional[str] = None) -> None:
    """Create or update the TaskSchedule row after a run."""
    if not is_initialized():
        return
    now = _utc_now()
    next_run = now + timedelta(seconds=interval_seconds)
    with session_scope() as session:
        row = session.execute(
            select(TaskSchedule).where(TaskSchedule.task_name == task_name)
        ).scalars().first()
        if row:
            row.interval_seconds = interval_seconds
            row.last_run_at = now
            row.next_run_at = next_run
            row.last_error = error
            row.updated_at = now
        else:
            session.add(TaskSchedule(
                task_name=task_name,
                interval_seconds=interval_seconds,
                last_run_at=now,
                next_run_at=next_run,
                last_error=error,
                created_at=now,
                updated_at=now,
            ))


class BaseTask(ABC):
    """
    Abstract base for background jobs. Subclasses implement run();
    execute() wraps it and persists the outcome so the schedule survives restarts.
    """

    def __init__(self, task_name: str, interval_seconds: int):
        self.task_name = task_name
        self.interval_seconds = max(1, int(interval_seconds))
        self.logger = logging.getLogger(self.__class__.__name__)

    def initial_delay(self) -> int:
        """Seconds until the first run: time left until next_run_at, 0 if unknown or past due."""
        next_run = get_next_run_from_db(self.task_name)
        if next_run is None:
            return 0
        return max(0, int((next_run - _utc_now()).total_seconds()))

    def execute(self) -> None:
        error = None
        try:
            self.run()
        except Exception as e:
            error = str(e)
            self.logger.exception(f"Task {self.task_name} failed: {e}")
        try:
            record_run(self.task_name, self.interval_seconds, error)
        except Exception as e:
            self.logger.warning(f"Could not persist schedule for {self.task_name}: {e}")

    @abstractmethod
    def run(self) -> None:
        """Do one unit of work. Exceptions are logged and recorded by execute()."""
        pass
