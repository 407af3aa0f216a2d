"""
Per-plugin API for annotations. Mounted at /api/annotations/.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from .service import Annotation, query_annotations, store_annotation


class AnnotationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    timestamp: datetime
    end_time: Optional[datetime] = None
    category: str
    title: str
    description: Optional[str] = None
    metadata: Dict[str, Any] = {}
    external_id: Optional[str] = None


class AnnotationCreate(BaseModel):
    timestamp: datetime
    end_time: Optional[datetime] = None
    category: str
    title: str
    description: Optional[str] = None
    metadata: Dict[str, Any] = {}
    external_id: Optional[str] = None


def get_router(pool_app) -> Optional[APIRouter]:
    router = APIRouter(tags=["Annotations"])

    @router.get("/", response_model=List[AnnotationResponse])
    def list_annotations(hours: float = Query(24, gt=0), category: Optional[str] = None) -> List[AnnotationResponse]:
        start = datetime.now(timezone.utc) - timedelta(hours=hours)
        return [AnnotationResponse.model_validate(a) for a in query_annotations(start, category=category)]

    @router.post("/", response_model=AnnotationResponse)
    def create_annotation(body: AnnotationCreate) -> AnnotationResponse:
        if body.end_time is not None and body.end_time < body.timestamp:
            raise HTTPException(status_code=400, detail="end_time precedes timestamp")
        stored = store_annotation(Annotation(**body.model_dump()))
        return AnnotationResponse.model_validate(stored)

    return router
