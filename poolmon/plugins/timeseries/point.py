"""
TimeSeriesPoint: one timestamped set of pool telemetry fields. Every field is optional.
"""
from collections import namedtuple
from datetime import datetime, timezone
from typing import Any, Dict, Optional

FIELD_NAMES = (
    "salt_instant",      # ppm, chlorinator
    "cell_temp",         # °F, chlorinator cell
    "cell_voltage",      # V, chlorinator cell
    "water_temp",        # °F, dashboard
    "air_temp",          # °F, dashboard
    "pump_on",           # bool, filter panel
    "ambient_temp",      # °F, weather feed
    "ambient_humidity",  # %, weather feed
)
BOOLEAN_FIELDS = frozenset({"pump_on"})

TimeSeriesPoint = namedtuple(
    "TimeSeriesPoint",
    ("timestamp",) + FIELD_NAMES,
    defaults=(None,) * len(FIELD_NAMES),
)


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def point_fields(point: TimeSeriesPoint) -> Dict[str, Any]:
    """Non-null fields of a point, without the timestamp."""
    return {name: getattr(point, name) for name in FIELD_NAMES if getattr(point, name) is not None}


def point_from_fields(timestamp: datetime, fields: Dict[str, Any]) -> TimeSeriesPoint:
    """Build a point from a field mapping; unknown keys are ignored."""
    values = {name: fields.get(name) for name in FIELD_NAMES}
    if values["pump_on"] is not None:
        values["pump_on"] = bool(values["pump_on"])
    return TimeSeriesPoint(timestamp=as_utc(timestamp), **values)


def point_to_dict(point: TimeSeriesPoint) -> Dict[str, Any]:
    data = point._asdict()
    data["timestamp"] = point.timestamp.isoformat() if point.timestamp else None
    return data
