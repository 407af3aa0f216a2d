"""
Durable time-series backends. All backends take one point per write and return
range-query rows as (timestamp, fields) pairs, one per timestamp, ascending. A
later write for a timestamp replaces the earlier one, as in the in-memory buffer.
"""
import logging
from abc import ABC, abstractmethod
from collections import namedtuple
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select

from poolmon.core.db import session_scope
from poolmon.core.models import to_db_datetime
from poolmon.plugins.timeseries.models import TimeSeriesRecord
from poolmon.plugins.timeseries.point import as_utc

# One row per timestamp: timestamp (aware UTC) and a field-name -> value dict
SeriesRow = namedtuple("SeriesRow", ["timestamp", "fields"])


class TimeSeriesBackend(ABC):
    """Abstract durable backend."""

    @abstractmethod
    def write_point(
        self,
        measurement: str,
        fields: Dict[str, Any],
        timestamp: datetime,
        tags: Optional[Dict[str, str]] = None,
    ) -> None:
        """Persist one point. Raises on failure."""
        pass

    @abstractmethod
    def query_range(
        self,
        measurement: str,
        start: datetime,
        end: Optional[datetime] = None,
        fields: Optional[Iterable[str]] = None,
        tags: Optional[Dict[str, str]] = None,
    ) -> List[SeriesRow]:
        """Rows with start <= timestamp <= end, ascending; last write per timestamp wins."""
        pass


class SqlTimeSeriesBackend(TimeSeriesBackend):
    """Points stored as JSON rows through the shared SQLAlchemy session."""

    def __init__(self, config: Optional[dict] = None, logger=None):
        self.config = config or {}
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def write_point(self, measurement, fields, timestamp, tags=None) -> None:
        with session_scope() as session:
            session.add(TimeSeriesRecord(
                measurement=measurement,
                timestamp=to_db_datetime(timestamp),
                fields=dict(fields),
                tags=dict(tags) if tags else None,
            ))

    def query_range(self, measurement, start, end=None, fields=None, tags=None) -> List[SeriesRow]:
        stmt = select(TimeSeriesRecord).where(
            TimeSeriesRecord.measurement == measurement,
            TimeSeriesRecord.timestamp >= to_db_datetime(start),
        )
        if end is not None:
            stmt = stmt.where(TimeSeriesRecord.timestamp <= to_db_datetime(end))
        stmt = stmt.order_by(TimeSeriesRecord.timestamp.asc(), TimeSeriesRecord.id.asc())

        with session_scope() as session:
            records = session.execute(stmt).scalars().all()

        wanted = set(fields) if fields else None
        latest: Dict[datetime, Dict[str, Any]] = {}
        for record in records:
            if tags and any((record.tags or {}).get(k) != v for k, v in tags.items()):
                continue
            latest[record.timestamp] = {
                name: value for name, value in (record.fields or {}).items()
                if wanted is None or name in wanted
            }
        return [SeriesRow(as_utc(ts), row) for ts, row in sorted(latest.items())]


_BACKENDS = {
    "sql": SqlTimeSeriesBackend,
}


def get_backend(backend_type: str, config: dict, logger=None) -> Optional[TimeSeriesBackend]:
    """Factory: return backend instance for given type, None for unknown or "none"."""
    cls = _BACKENDS.get((backend_type or "").lower())
    if not cls:
        return None
    return cls(config, logger=logger)
