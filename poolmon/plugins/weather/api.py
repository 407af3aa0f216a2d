"""
Per-plugin API for weather. Mounted at /api/weather/.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from poolmon.core.errors import WeatherUnavailableError
from poolmon.plugins.annotations.api import AnnotationResponse


class WeatherResponse(BaseModel):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    apparent_temperature: Optional[float] = None
    source: Optional[str] = None
    timestamp: Optional[datetime] = None


class ActiveAlertsResponse(BaseModel):
    count: int
    most_severe: Optional[AnnotationResponse] = None
    alerts: List[AnnotationResponse]


def get_router(pool_app) -> Optional[APIRouter]:
    router = APIRouter(tags=["Weather"])

    @router.get("/current", response_model=WeatherResponse)
    def get_current() -> WeatherResponse:
        try:
            reading = pool_app.weather.get_current_conditions()
        except WeatherUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return WeatherResponse(**reading._asdict())

    @router.get("/alerts/active", response_model=ActiveAlertsResponse)
    def get_active_alerts() -> ActiveAlertsResponse:
        alerts = pool_app.alerts.get_active_alerts()
        worst = pool_app.alerts.most_severe(alerts)
        return ActiveAlertsResponse(
            count=len(alerts),
            most_severe=AnnotationResponse.model_validate(worst) if worst else None,
            alerts=[AnnotationResponse.model_validate(a) for a in alerts],
        )

    @router.post("/alerts/check")
    def check_alerts() -> Dict[str, Any]:
        result = pool_app.alerts.check_and_store_alerts()
        return result._asdict()

    return router
