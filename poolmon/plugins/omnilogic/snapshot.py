"""
TelemetrySnapshot: the merged result of one poll cycle.
"""
from collections import namedtuple
from typing import Any, Dict, Mapping, Optional

from poolmon.plugins.omnilogic.const import CHLORINATOR, DASHBOARD, FILTER, WEATHER
from poolmon.plugins.timeseries.point import TimeSeriesPoint, point_to_dict

TelemetrySnapshot = namedtuple(
    "TelemetrySnapshot",
    [
        "timestamp",    # aware UTC datetime of collection
        "session_key",
        "point",        # TimeSeriesPoint reduced from the subsystem results
        "subsystems",   # subsystem name -> parsed panel data (None if its fetch failed)
        "errors",       # subsystem name -> error message, only for failed fetches
    ],
)

# which subsystem feeds each point field
FIELD_SOURCES = {
    "salt_instant": CHLORINATOR,
    "cell_temp": CHLORINATOR,
    "cell_voltage": CHLORINATOR,
    "water_temp": DASHBOARD,
    "air_temp": DASHBOARD,
    "pump_on": FILTER,
    "ambient_temp": WEATHER,
    "ambient_humidity": WEATHER,
}


def build_point(timestamp, results: Mapping[str, Any]) -> TimeSeriesPoint:
    dashboard = results.get(DASHBOARD)
    pump = results.get(FILTER)
    chlorinator = results.get(CHLORINATOR)
    weather = results.get(WEATHER)
    return TimeSeriesPoint(
        timestamp=timestamp,
        salt_instant=chlorinator.salt_instant if chlorinator else None,
        cell_temp=chlorinator.cell_temp if chlorinator else None,
        cell_voltage=chlorinator.cell_voltage if chlorinator else None,
        water_temp=dashboard.water_temp if dashboard else None,
        air_temp=dashboard.air_temp if dashboard else None,
        pump_on=pump.pump_on if pump else None,
        ambient_temp=weather.temperature if weather else None,
        ambient_humidity=weather.humidity if weather else None,
    )


def field_errors(snapshot: TelemetrySnapshot) -> Dict[str, str]:
    """Point field -> error of the subsystem that should have supplied it."""
    return {
        field: snapshot.errors[source]
        for field, source in FIELD_SOURCES.items()
        if source in snapshot.errors
    }


def _plain(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if hasattr(value, "_asdict"):
        return {k: _plain(v) for k, v in value._asdict().items()}
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def snapshot_to_dict(snapshot: Optional[TelemetrySnapshot]) -> Optional[Dict[str, Any]]:
    if snapshot is None:
        return None
    return {
        "timestamp": snapshot.timestamp.isoformat(),
        "session_key": snapshot.session_key,
        "point": point_to_dict(snapshot.point),
        "subsystems": {name: _plain(data) for name, data in snapshot.subsystems.items()},
        "errors": dict(snapshot.errors),
        "field_errors": field_errors(snapshot),
    }
