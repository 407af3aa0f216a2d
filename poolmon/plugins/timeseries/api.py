"""
Per-plugin API for the time-series store. Mounted at /api/timeseries/.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from .point import TimeSeriesPoint


class PointResponse(BaseModel):
    timestamp: datetime
    salt_instant: Optional[float] = None
    cell_temp: Optional[float] = None
    cell_voltage: Optional[float] = None
    water_temp: Optional[float] = None
    air_temp: Optional[float] = None
    pump_on: Optional[bool] = None
    ambient_temp: Optional[float] = None
    ambient_humidity: Optional[float] = None

    @classmethod
    def from_point(cls, point: TimeSeriesPoint) -> "PointResponse":
        return cls(**point._asdict())


class PointListResponse(BaseModel):
    hours: float
    limit: int
    count: int
    points: List[PointResponse]


class StatsResponse(BaseModel):
    field: str
    hours: float
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None


def get_router(pool_app) -> Optional[APIRouter]:
    router = APIRouter(tags=["Time series"])
    default_limit = int(pool_app.config.section("timeseries").get("query_limit", 1000))

    @router.get("/points", response_model=PointListResponse)
    def get_points(hours: float = Query(24, gt=0), limit: int = Query(default_limit, gt=0)) -> PointListResponse:
        points = pool_app.store.query_range(hours, limit)
        return PointListResponse(
            hours=hours,
            limit=limit,
            count=len(points),
            points=[PointResponse.from_point(p) for p in points],
        )

    @router.get("/stats/{field}", response_model=StatsResponse)
    def get_stats(field: str, hours: float = Query(24, gt=0)) -> StatsResponse:
        try:
            stats = pool_app.store.stats(field, hours)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return StatsResponse(field=field, hours=hours, **stats._asdict())

    @router.get("/latest", response_model=PointResponse)
    def get_latest() -> PointResponse:
        point = pool_app.store.get_latest()
        if point is None:
            raise HTTPException(status_code=404, detail="No points written yet")
        return PointResponse.from_point(point)

    return router
