"""
Exploration API Endpoints
Paths, track imports, saved progress and block filling for the explored area
"""
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
import logging

from services.exploration_singleton import get_exploration_pipeline

logger = logging.getLogger(__name__)
router = APIRouter()


class PathRequest(BaseModel):
    """A path as [lon, lat] positions or a LineString/MultiLineString geometry"""
    path: Any
    fill: bool = True
    skip_street_check: bool = False


class TrackImportRequest(BaseModel):
    geojson: Dict[str, Any]
    skip_street_check: bool = False


class ProgressImportRequest(BaseModel):
    payload: Dict[str, Any]


class StrokeRequest(BaseModel):
    points: List[List[float]] = Field(default_factory=list)
    final: bool = False
    skip_street_check: bool = False
    begin: bool = False


class StatusCollector:
    """Collects (message, percent) status updates for the response body"""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []

    def __call__(self, message: str, percent: float = 0) -> None:
        self.messages.append({"message": message, "percent": percent})


def _respond(result: dict, collector: StatusCollector) -> Dict[str, Any]:
    result["status_messages"] = collector.messages
    return result


@router.post("/path")
async def add_path(request: PathRequest) -> Dict[str, Any]:
    """
    Buffer a path into the explored area and fill enclosed blocks
    """
    collector = StatusCollector()
    try:
        pipeline = get_exploration_pipeline()
        result = await pipeline.add_path(
            request.path,
            fill=request.fill,
            skip_street_check=request.skip_street_check,
            on_status=collector,
        )
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return _respond(result, collector)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Adding path failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Adding path failed: {str(e)}"
        )


@router.post("/import-track")
async def import_track(request: TrackImportRequest) -> Dict[str, Any]:
    """
    Import a recorded track converted to GeoJSON (lines or waypoints)
    """
    collector = StatusCollector()
    try:
        result = await get_exploration_pipeline().import_track(
            request.geojson,
            skip_street_check=request.skip_street_check,
            on_status=collector,
        )
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return _respond(result, collector)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Track import failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Track import failed: {str(e)}"
        )


@router.post("/import-progress")
async def import_progress(request: ProgressImportRequest) -> Dict[str, Any]:
    """
    Merge previously exported progress and re-scan its blocks
    """
    collector = StatusCollector()
    try:
        result = await get_exploration_pipeline().import_progress(request.payload, on_status=collector)
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return _respond(result, collector)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Progress import failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Progress import failed: {str(e)}"
        )


@router.post("/stroke")
async def update_stroke(request: StrokeRequest) -> Dict[str, Any]:
    """
    Live drawing: redraw the stroke over its base area, fill on the final update
    """
    collector = StatusCollector()
    try:
        pipeline = get_exploration_pipeline()
        if request.begin:
            pipeline.begin_stroke()
        result = await pipeline.update_stroke(
            request.points,
            final=request.final,
            skip_street_check=request.skip_street_check,
            on_status=collector,
        )
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return _respond(result, collector)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Stroke update failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Stroke update failed: {str(e)}"
        )


@router.post("/rescan")
async def rescan() -> Dict[str, Any]:
    """
    Re-run block filling on the current explored area
    """
    collector = StatusCollector()
    result = await get_exploration_pipeline().rescan(on_status=collector)
    if not result["success"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result["error"])
    return _respond(result, collector)


@router.get("/area")
async def get_area() -> Dict[str, Any]:
    pipeline = get_exploration_pipeline()
    area = pipeline.area
    return {
        "status": "success",
        "geometry": area.model_dump() if area is not None else None,
    }


@router.get("/export")
async def export_area() -> Dict[str, Any]:
    """
    Saved-progress Feature for the current explored area
    """
    result = get_exploration_pipeline().export_feature()
    if not result["success"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result["error"])
    return result["feature"]


@router.post("/clear")
async def clear_area() -> Dict[str, Any]:
    return get_exploration_pipeline().clear()


@router.get("/cache/stats")
async def cache_stats() -> Dict[str, Any]:
    pipeline = get_exploration_pipeline()
    return {
        "status": "success",
        "cache": pipeline.engine.cache.stats(),
    }
