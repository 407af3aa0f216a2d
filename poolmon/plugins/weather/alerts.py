"""
NWS active alerts for a state, stored as range annotations deduplicated by alert id.
"""
import logging
from collections import namedtuple
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from dateutil import parser as dateutil_parser

from poolmon.plugins.annotations.service import (
    get_by_external_id,
    query_annotations,
    store_range_annotation,
)
from poolmon.plugins.weather.weather_backend import NWS_API

WEATHER_ALERT_CATEGORY = "weather_alert"
SEVERITY_ORDER = ("Extreme", "Severe", "Moderate", "Minor", "Unknown")
DEFAULT_ALERT_DURATION = timedelta(hours=1)

WeatherAlert = namedtuple(
    "WeatherAlert",
    ["id", "event", "severity", "urgency", "certainty", "description", "instruction", "start_time", "end_time"],
)

AlertCheckResult = namedtuple("AlertCheckResult", ["checked", "total_alerts", "new_alerts_stored", "timestamp", "error"])


def _parse_time(value: Optional[str], default: datetime) -> datetime:
    if not value:
        return default
    try:
        parsed = dateutil_parser.isoparse(value)
    except (TypeError, ValueError):
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_alert(feature: Dict[str, Any], now: Optional[datetime] = None) -> WeatherAlert:
    """Convert one GeoJSON feature from /alerts/active into a WeatherAlert."""
    now = now or datetime.now(timezone.utc)
    props = feature.get("properties") or {}
    start = _parse_time(props.get("effective"), now)
    return WeatherAlert(
        id=feature.get("id") or props.get("id"),
        event=props.get("event") or "Unknown Event",
        severity=props.get("severity") or "Unknown",
        urgency=props.get("urgency") or "Unknown",
        certainty=props.get("certainty") or "Unknown",
        description=props.get("description") or "",
        instruction=props.get("instruction") or "",
        start_time=start,
        end_time=_parse_time(props.get("expires"), now + DEFAULT_ALERT_DURATION),
    )


def severity_rank(severity: Optional[str]) -> int:
    try:
        return SEVERITY_ORDER.index(severity)
    except ValueError:
        return len(SEVERITY_ORDER) - 1


class WeatherAlertService:
    def __init__(self, config: Dict[str, Any], http=None):
        self.config = config
        self.area = (config.get("alerts_area") or "").upper()
        self.timeout = float(config.get("timeout_seconds", 10))
        self.user_agent = config.get("user_agent") or "(poolmon, admin@example.com)"
        self.http = http or requests.Session()
        self.logger = logging.getLogger(self.__class__.__name__)

    def fetch_alerts(self) -> List[WeatherAlert]:
        """Active alerts for the configured area. Raises on network errors."""
        response = self.http.get(
            f"{NWS_API}/alerts/active",
            params={"area": self.area},
            headers={"User-Agent": self.user_agent, "Accept": "application/geo+json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        features = response.json().get("features") or []
        alerts = [parse_alert(f) for f in features]
        alerts = [a for a in alerts if a.id]
        self.logger.info(f"Found {len(alerts)} active weather alerts for {self.area}")
        return alerts

    def store_alerts(self, alerts: List[WeatherAlert]) -> int:
        """Store alerts not seen before; returns how many were new."""
        stored = 0
        for alert in alerts:
            if get_by_external_id(alert.id) is not None:
                self.logger.debug(f"Alert already stored: {alert.event}")
                continue
            store_range_annotation(
                start=alert.start_time,
                end=max(alert.end_time, alert.start_time),
                category=WEATHER_ALERT_CATEGORY,
                title=alert.event,
                description=alert.description,
                metadata={
                    "severity": alert.severity,
                    "urgency": alert.urgency,
                    "certainty": alert.certainty,
                    "instruction": alert.instruction,
                    "area": self.area,
                },
                external_id=alert.id,
            )
            stored += 1
            self.logger.info(f"Stored weather alert: {alert.event} ({alert.severity})")
        return stored

    def check_and_store_alerts(self) -> AlertCheckResult:
        now = datetime.now(timezone.utc)
        try:
            alerts = self.fetch_alerts()
        except (requests.exceptions.RequestException, ValueError) as e:
            self.logger.error(f"Error fetching weather alerts: {e}")
            return AlertCheckResult(False, 0, 0, now, str(e))
        stored = self.store_alerts(alerts)
        self.logger.info(f"Weather alert check complete: {stored} new alerts stored")
        return AlertCheckResult(True, len(alerts), stored, now, None)

    def get_active_alerts(self, now: Optional[datetime] = None):
        """Stored alert annotations whose range covers now."""
        now = now or datetime.now(timezone.utc)
        return [
            a for a in query_annotations(now, now, category=WEATHER_ALERT_CATEGORY)
            if a.end_time is not None and a.timestamp <= now <= a.end_time
        ]

    @staticmethod
    def most_severe(alerts):
        """Alert (WeatherAlert or annotation) with the highest severity, None for an empty list."""
        def severity_of(alert):
            if isinstance(alert, WeatherAlert):
                return alert.severity
            return (alert.metadata or {}).get("severity")

        if not alerts:
            return None
        return min(alerts, key=lambda a: severity_rank(severity_of(a)))
