from typing import Any, Dict, Optional
import logging
import sys
import threading
from pathlib import Path

from .config import Config
from .db import init_db
from .task_manager import TaskManager
from .cache_helper import ResponseCache
from poolmon.plugins.annotations.service import store_annotation
from poolmon.plugins.annotations.tracker import StateChangeTracker
from poolmon.plugins.omnilogic.collector import Credentials, DataCollector
from poolmon.plugins.omnilogic.const import panel_ids_from_config
from poolmon.plugins.omnilogic.registry import SessionRegistry
from poolmon.plugins.omnilogic.task import POLL_SESSION_KEY, PollTask
from poolmon.plugins.timeseries.backend import get_backend
from poolmon.plugins.timeseries.store import TimeSeriesStore
from poolmon.plugins.weather.alerts import WeatherAlertService
from poolmon.plugins.weather.task import WeatherAlertTask
from poolmon.plugins.weather.weather_backend import FallbackWeatherProvider

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class PoolMonitorApp:
    def __init__(self, config_path: Optional[str] = None, watch_config: bool = True, db_url: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)
        self._setup_logging()

        # Initialize database before any service touches it
        init_db(self.config.data, db_url=db_url)

        self.task_manager = TaskManager()
        self._stop_event = threading.Event()
        self._build_services()

    def _setup_logging(self) -> None:
        """Configure logging to write to both file and stdout"""
        log_config = self.config.section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = log_config.get("file")
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Pool monitor starting...")

    def _build_services(self) -> None:
        omnilogic = self.config.section("omnilogic")
        timeseries = self.config.section("timeseries")
        collector = self.config.section("collector")
        weather = self.config.section("weather")

        self.registry = SessionRegistry.from_config(omnilogic)
        self.store = TimeSeriesStore(
            backend=get_backend(timeseries.get("backend", "sql"), timeseries, logger=logging.getLogger("TimeSeriesBackend")),
            capacity=int(timeseries.get("capacity", 1440)),
            measurement=timeseries.get("measurement", "pool_metrics"),
            recent_window_hours=float(timeseries.get("recent_window_hours", 1)),
        )
        self.tracker = StateChangeTracker(sink=store_annotation)
        self.weather = FallbackWeatherProvider.from_config(weather)
        self.alerts = WeatherAlertService(weather)
        self.collector = DataCollector(
            store=self.store,
            tracker=self.tracker,
            weather=self.weather,
            panel_ids=panel_ids_from_config(omnilogic),
            cache=ResponseCache(float(collector.get("cache_ttl_seconds", 15))),
            max_workers=int(collector.get("max_workers", 8)),
            fetch_timeout=float(collector.get("fetch_timeout_seconds", 30)),
        )

    def configured_credentials(self) -> Optional[Credentials]:
        omnilogic = self.config.section("omnilogic")
        if not omnilogic.get("username"):
            return None
        return Credentials(omnilogic.get("username"), omnilogic.get("password") or "")

    def credentials_for(self, session_key: str) -> Optional[Credentials]:
        """Configured account for the poller's session; other sessions log in through the API."""
        if session_key == POLL_SESSION_KEY:
            return self.configured_credentials()
        return None

    def start(self) -> None:
        omnilogic = self.config.section("omnilogic")
        weather = self.config.section("weather")

        self.registry.start_sweeper(self.task_manager, int(omnilogic.get("session_sweep_interval_seconds", 3600)))

        credentials = self.configured_credentials()
        if omnilogic.get("poll_enabled") and credentials:
            self.task_manager.register_task(PollTask(
                self.collector,
                self.registry,
                credentials,
                interval_seconds=int(omnilogic.get("poll_interval_seconds", 300)),
            ))
        elif omnilogic.get("poll_enabled"):
            self.logger.warning("Polling enabled but omnilogic.username is not set; not polling")

        if weather.get("alerts_enabled"):
            self.task_manager.register_task(WeatherAlertTask(
                self.alerts,
                interval_seconds=int(weather.get("alerts_interval_seconds", 900)),
            ))

        from poolmon.api.server import run_api_server
        run_api_server(self)

    def run(self) -> None:
        self.start()
        try:
            while not self._stop_event.wait(1.0):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")
        finally:
            self.stop()

    def stop(self) -> None:
        self._stop_event.set()
        self.task_manager.stop()
        self.collector.shutdown()
        self.store.close()
        self.config.cleanup()
        self.logger.info("Pool monitor stopped")

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Apply settings that can change at runtime; the rest take effect on restart."""
        level = str((new_config.get("logging") or {}).get("level", "INFO")).upper()
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))
        ttl = (new_config.get("collector") or {}).get("cache_ttl_seconds")
        if ttl is not None:
            self.collector.cache.ttl_seconds = float(ttl)
        self.logger.info("Applied config change (logging level, cache TTL)")
