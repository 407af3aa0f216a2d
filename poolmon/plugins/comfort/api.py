"""
Per-plugin API for comfort analysis of the ambient readings. Mounted at /api/comfort/.
"""
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from .analyzer import analyze_points, classify_comfort, classify_humidity


class ComfortCurrentResponse(BaseModel):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    comfort_level: str
    humidity_level: str
    timestamp: Optional[datetime] = None


class ComfortAnalysisResponse(BaseModel):
    hours: float
    data_points: int
    overall_comfort: str
    distribution: Dict[str, Dict[str, int]]
    recommendations: List[str]


def get_router(pool_app) -> Optional[APIRouter]:
    router = APIRouter(tags=["Comfort"])

    @router.get("/current", response_model=ComfortCurrentResponse)
    def get_current() -> ComfortCurrentResponse:
        point = pool_app.store.get_latest()
        temperature = point.ambient_temp if point else None
        humidity = point.ambient_humidity if point else None
        return ComfortCurrentResponse(
            temperature=temperature,
            humidity=humidity,
            comfort_level=classify_comfort(temperature, humidity),
            humidity_level=classify_humidity(humidity),
            timestamp=point.timestamp if point else None,
        )

    @router.get("/analysis", response_model=ComfortAnalysisResponse)
    def get_analysis(hours: float = Query(24, gt=0)) -> ComfortAnalysisResponse:
        analysis = analyze_points(pool_app.store.query_range(hours, limit=None))
        return ComfortAnalysisResponse(
            hours=hours,
            data_points=analysis.data_points,
            overall_comfort=analysis.overall_comfort,
            distribution=analysis.distribution,
            recommendations=analysis.recommendations,
        )

    return router
