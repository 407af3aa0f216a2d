"""
Background task: check NWS for active alerts and store new ones as annotations.
"""
from poolmon.core.task import BaseTask
from poolmon.plugins.weather.alerts import WeatherAlertService


class WeatherAlertTask(BaseTask):
    def __init__(self, alert_service: WeatherAlertService, interval_seconds: int = 900):
        super().__init__("weather_alerts", max(60, int(interval_seconds)))
        self.alert_service = alert_service

    def run(self) -> None:
        result = self.alert_service.check_and_store_alerts()
        if not result.checked:
            raise RuntimeError(f"Weather alert check failed: {result.error}")
