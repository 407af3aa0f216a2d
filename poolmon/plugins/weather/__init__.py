from .alerts import WeatherAlertService
from .weather_backend import FallbackWeatherProvider, WeatherReading

__all__ = ["FallbackWeatherProvider", "WeatherAlertService", "WeatherReading"]
