from abc import ABC, abstractmethod
from collections import namedtuple
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import requests
from dateutil import parser as dateutil_parser

from poolmon.core.errors import WeatherUnavailableError

NWS_API = "https://api.weather.gov"
OPEN_METEO_API = "https://api.open-meteo.com/v1/forecast"

# temperature / apparent_temperature in °F, humidity in %
WeatherReading = namedtuple(
    "WeatherReading",
    ["temperature", "humidity", "apparent_temperature", "source", "timestamp"],
    defaults=(None, None, None, None, None),
)


def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class WeatherBackend(ABC):
    """Base class for current-conditions providers"""

    name = "base"

    def __init__(self, config: Dict[str, Any], http=None):
        self.config = config
        self.http = http or requests.Session()
        self.timeout = float(config.get("timeout_seconds", 10))
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def lat(self) -> float:
        return float(self.config.get("lat"))

    @property
    def lon(self) -> float:
        return float(self.config.get("lon"))

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Dict:
        response = self.http.get(url, params=params, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    @abstractmethod
    def get_current_conditions(self) -> WeatherReading:
        """Return the current reading. Raises on network or format errors."""
        pass


class OpenMeteoBackend(WeatherBackend):
    """Open-Meteo forecast API, current block; no key needed"""

    name = "open_meteo"

    def get_current_conditions(self) -> WeatherReading:
        params = {
            "latitude": self.lat,
            "longitude": self.lon,
            "current": "temperature_2m,relative_humidity_2m,apparent_temperature",
            "temperature_unit": "fahrenheit",
            "timezone": "auto",
        }
        self.logger.debug(f"Fetching current conditions from {OPEN_METEO_API}")
        data = self._get_json(OPEN_METEO_API, params=params)
        current = data.get("current")
        if not current or current.get("temperature_2m") is None:
            raise ValueError("Open-Meteo response has no current temperature")
        return WeatherReading(
            temperature=_float_or_none(current.get("temperature_2m")),
            humidity=_float_or_none(current.get("relative_humidity_2m")),
            apparent_temperature=_float_or_none(current.get("apparent_temperature")),
            source=self.name,
            timestamp=datetime.now(timezone.utc),
        )


class NWSWeatherBackend(WeatherBackend):
    """Weather backend using weather.gov (National Weather Service): first hourly forecast period"""

    name = "nws"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.get("user_agent") or "(poolmon, admin@example.com)",
            "Accept": "application/geo+json",
        }

    def get_current_conditions(self) -> WeatherReading:
        points_url = f"{NWS_API}/points/{self.lat},{self.lon}"
        self.logger.debug(f"Fetching points data from: {points_url}")
        points = self._get_json(points_url, headers=self.headers)
        hourly_url = (points.get("properties") or {}).get("forecastHourly")
        if not hourly_url:
            raise ValueError("No forecastHourly in NWS points response")

        forecast = self._get_json(hourly_url, headers=self.headers)
        periods = (forecast.get("properties") or {}).get("periods") or []
        if not periods:
            raise ValueError("NWS hourly forecast has no periods")
        period = periods[0]

        temperature = _float_or_none(period.get("temperature"))
        if temperature is not None and period.get("temperatureUnit") == "C":
            temperature = temperature * 9 / 5 + 32
        humidity = _float_or_none((period.get("relativeHumidity") or {}).get("value"))
        start = period.get("startTime")
        return WeatherReading(
            temperature=temperature,
            humidity=humidity,
            apparent_temperature=None,
            source=self.name,
            timestamp=dateutil_parser.isoparse(start) if start else datetime.now(timezone.utc),
        )


_BACKENDS = {
    "open_meteo": OpenMeteoBackend,
    "nws": NWSWeatherBackend,
}


def get_weather_backend(backend_type: str, config: Dict[str, Any], http=None) -> Optional[WeatherBackend]:
    """Factory: return backend instance for given type."""
    cls = _BACKENDS.get((backend_type or "").lower())
    if not cls:
        return None
    return cls(config, http=http)


class FallbackWeatherProvider:
    """Tries each backend in order and returns the first reading that succeeds."""

    def __init__(self, backends: List[WeatherBackend]):
        self.backends = backends
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: Dict[str, Any], http=None) -> "FallbackWeatherProvider":
        backends = []
        for backend_type in config.get("backends") or ["open_meteo", "nws"]:
            backend = get_weather_backend(backend_type, config, http=http)
            if backend is None:
                logging.getLogger(cls.__name__).warning(f"Unknown weather backend: {backend_type}")
                continue
            backends.append(backend)
        return cls(backends)

    def get_current_conditions(self) -> WeatherReading:
        errors = []
        for backend in self.backends:
            try:
                reading = backend.get_current_conditions()
                self.logger.debug(f"Weather from {backend.name}: {reading.temperature}°F, {reading.humidity}%")
                return reading
            except (requests.exceptions.RequestException, ValueError, KeyError) as e:
                self.logger.warning(f"Weather backend {backend.name} failed: {e}")
                errors.append(f"{backend.name}: {e}")
        raise WeatherUnavailableError("; ".join(errors) or "No weather backends configured")
