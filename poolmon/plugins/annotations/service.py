"""
Service layer: save and load annotations from DB.
"""
import logging
from collections import namedtuple
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError

from poolmon.core.db import session_scope
from poolmon.core.models import from_db_datetime, to_db_datetime
from poolmon.plugins.annotations.models import AnnotationRecord

logger = logging.getLogger(__name__)

Annotation = namedtuple(
    "Annotation",
    [
        "timestamp",    # aware UTC datetime (start for ranges)
        "category",     # e.g. "pump_state_change", "weather_alert"
        "title",
        "description",
        "metadata",     # dict
        "end_time",     # aware UTC datetime or None
        "external_id",  # stable id from the source, or None
        "id",           # DB id once stored
    ],
    defaults=(None, None, None, None, None),
)


def _from_record(row: AnnotationRecord) -> Annotation:
    return Annotation(
        timestamp=from_db_datetime(row.timestamp),
        category=row.category,
        title=row.title,
        description=row.description,
        metadata=row.meta or {},
        end_time=from_db_datetime(row.end_time),
        external_id=row.external_id,
        id=row.id,
    )


def store_annotation(annotation: Annotation) -> Annotation:
    """Insert one annotation and return it with its DB id.

    If it carries an external_id that is already stored, the stored one is
    returned and nothing is written.
    """
    if annotation.external_id:
        existing = get_by_external_id(annotation.external_id)
        if existing is not None:
            logger.debug(f"Annotation {annotation.external_id} already stored")
            return existing
    try:
        return _insert(annotation)
    except IntegrityError:
        # lost a race with a concurrent writer of the same external_id
        existing = get_by_external_id(annotation.external_id) if annotation.external_id else None
        if existing is None:
            raise
        return existing


def get_by_external_id(external_id: str) -> Optional[Annotation]:
    with session_scope() as session:
        row = session.execute(
            select(AnnotationRecord).where(AnnotationRecord.external_id == external_id)
        ).scalars().first()
        return _from_record(row) if row is not None else None


def _insert(annotation: Annotation) -> Annotation:
    with session_scope() as session:
        row = AnnotationRecord(
            timestamp=to_db_datetime(annotation.timestamp),
            end_time=to_db_datetime(annotation.end_time) if annotation.end_time else None,
            category=annotation.category,
            title=annotation.title,
            description=annotation.description,
            meta=dict(annotation.metadata or {}),
            external_id=annotation.external_id,
        )
        session.add(row)
        session.flush()
        return _from_record(row)


def store_range_annotation(
    start: datetime,
    end: datetime,
    category: str,
    title: str,
    description: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    external_id: Optional[str] = None,
) -> Annotation:
    """Store an event spanning start..end, deduplicated by external_id."""
    if end < start:
        raise ValueError("Annotation end precedes its start")
    return store_annotation(Annotation(
        timestamp=start,
        category=category,
        title=title,
        description=description,
        metadata=metadata or {},
        end_time=end,
        external_id=external_id,
    ))


def annotation_exists(external_id: str) -> bool:
    return get_by_external_id(external_id) is not None


def query_annotations(
    start: datetime,
    end: Optional[datetime] = None,
    category: Optional[str] = None,
) -> List[Annotation]:
    """Annotations overlapping [start, end], ordered by start time.

    A point annotation overlaps when its timestamp falls in the window; a range
    annotation when any part of its range does.
    """
    db_start = to_db_datetime(start)
    stmt = select(AnnotationRecord).where(
        or_(
            and_(AnnotationRecord.end_time.is_(None), AnnotationRecord.timestamp >= db_start),
            AnnotationRecord.end_time >= db_start,
        )
    )
    if end is not None:
        stmt = stmt.where(AnnotationRecord.timestamp <= to_db_datetime(end))
    if category:
        stmt = stmt.where(AnnotationRecord.category == category)
    stmt = stmt.order_by(AnnotationRecord.timestamp.asc(), AnnotationRecord.id.asc())
    with session_scope() as session:
        return [_from_record(row) for row in session.execute(stmt).scalars().all()]
