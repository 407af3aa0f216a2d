"""
DataCollector: one poll cycle against the panel.

Cache check, concurrent subsystem fetches (each failure captured on its own),
merge into a TelemetrySnapshot, then cache write-through, time-series write,
pump state tracking and the last-known-good holder.
"""
import logging
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Optional

from poolmon.core.cache_helper import LatestValue, ResponseCache
from poolmon.core.errors import AuthenticationError, NotAuthenticatedError
from poolmon.plugins.annotations.tracker import StateChangeTracker
from poolmon.plugins.omnilogic import parsers
from poolmon.plugins.omnilogic.const import (
    CHLORINATOR,
    DASHBOARD,
    FILTER,
    HEATER,
    LIGHTS,
    SCHEDULES,
    WEATHER,
    PanelIds,
    subsystem_requests,
)
from poolmon.plugins.omnilogic.session import AuthenticatedSession
from poolmon.plugins.omnilogic.snapshot import TelemetrySnapshot, build_point
from poolmon.plugins.timeseries.store import TimeSeriesStore

Credentials = namedtuple("Credentials", ["username", "password"])

PANEL_PARSERS = {
    DASHBOARD: parsers.parse_dashboard,
    FILTER: parsers.parse_filter,
    HEATER: parsers.parse_heater,
    CHLORINATOR: parsers.parse_chlorinator,
    LIGHTS: parsers.parse_lights,
    SCHEDULES: parsers.parse_schedules,
}

# upper bound on waiting for one fetch; each fetch also carries its own request timeout
DEFAULT_FETCH_TIMEOUT = 30


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DataCollector:
    def __init__(
        self,
        store: TimeSeriesStore,
        tracker: Optional[StateChangeTracker] = None,
        weather=None,
        panel_ids: PanelIds = PanelIds(),
        cache: Optional[ResponseCache] = None,
        latest: Optional[LatestValue] = None,
        max_workers: int = 8,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.tracker = tracker
        self.weather = weather
        self.panel_ids = panel_ids
        self.cache = cache if cache is not None else ResponseCache()
        self.latest = latest if latest is not None else LatestValue()
        self.fetch_timeout = fetch_timeout
        self._clock = clock or _utc_now
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="collector")
        self.logger = logging.getLogger(self.__class__.__name__)

    def _fetch_panel(self, session: AuthenticatedSession, subsystem: str, path: str, params: Dict[str, str]) -> Any:
        response = session.request(path, params=params)
        return PANEL_PARSERS[subsystem](response.text)

    def _fetchers(self, session: AuthenticatedSession) -> Dict[str, Callable[[], Any]]:
        fetchers = {
            name: partial(self._fetch_panel, session, name, path, params)
            for name, (path, params) in subsystem_requests(self.panel_ids).items()
        }
        if self.weather is not None:
            fetchers[WEATHER] = self.weather.get_current_conditions
        return fetchers

    def _ensure_authenticated(self, session: AuthenticatedSession, credentials: Optional[Credentials]) -> None:
        if session.authenticated:
            return
        if credentials is None or not credentials.username:
            raise NotAuthenticatedError(f"Session {session.session_key} is not authenticated")
        result = session.authenticate(credentials.username, credentials.password)
        if not result.success:
            raise AuthenticationError(result.message)

    def collect_once(self, session: AuthenticatedSession, credentials: Optional[Credentials] = None) -> TelemetrySnapshot:
        """Run one poll cycle for session, or return the cached snapshot if still fresh.

        Raises NotAuthenticatedError / AuthenticationError when the session cannot
        be used; per-subsystem failures end up in snapshot.errors instead.
        """
        cached = self.cache.get(session.session_key)
        if cached is not None:
            self.logger.debug(f"Cache hit for session {session.session_key}")
            return cached

        self._ensure_authenticated(session, credentials)

        futures = {name: self._executor.submit(fetch) for name, fetch in self._fetchers(session).items()}
        results: Dict[str, Any] = {}
        errors: Dict[str, str] = {}
        for name, future in futures.items():
            try:
                results[name] = future.result(timeout=self.fetch_timeout)
            except FutureTimeout:
                errors[name] = f"Timed out after {self.fetch_timeout}s"
                self.logger.warning(f"Subsystem {name} did not finish within {self.fetch_timeout}s")
            except Exception as e:
                errors[name] = f"{e.__class__.__name__}: {e}"
                self.logger.warning(f"Subsystem {name} failed: {e}")

        timestamp = self._clock()
        point = build_point(timestamp, results)
        snapshot = TelemetrySnapshot(
            timestamp=timestamp,
            session_key=session.session_key,
            point=point,
            subsystems={name: results.get(name) for name in futures},
            errors=errors,
        )
        if errors:
            self.logger.info(f"Partial collection: {len(results)}/{len(futures)} subsystems ok, failed: {sorted(errors)}")

        self.cache.put(session.session_key, snapshot, timestamp)
        self.store.write(point)
        if point.pump_on is not None and self.tracker is not None:
            self.tracker.check_state_change(point.pump_on, timestamp)
        self.latest.set(snapshot, timestamp)
        return snapshot

    def get_latest(self) -> Optional[TelemetrySnapshot]:
        return self.latest.get()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
