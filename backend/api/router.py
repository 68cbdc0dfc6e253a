"""
Central API Router
Combines all API endpoints into a single router for main.py
"""
from fastapi import APIRouter
from api.endpoints import exploration
from api import logs

# Create the main API router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(exploration.router, prefix="/api/exploration", tags=["exploration"])
api_router.include_router(logs.router, prefix="/api", tags=["logs"])

# Add a root endpoint for API discovery
@api_router.get("/api")
async def api_root():
    """API root endpoint for discovery"""
    return {
        "message": "TrailBlazer Explorer API v1.1",
        "documentation": "/docs",
        "endpoints": {
            "path": "/api/exploration/path - Buffer a path into the explored area and fill blocks",
            "import_track": "/api/exploration/import-track - Import a GeoJSON track (lines or waypoints)",
            "import_progress": "/api/exploration/import-progress - Load saved progress and re-scan blocks",
            "stroke": "/api/exploration/stroke - Live drawing updates",
            "rescan": "/api/exploration/rescan - Re-run block filling",
            "area": "/api/exploration/area - Current explored area",
            "export": "/api/exploration/export - Saved-progress Feature",
            "clear": "/api/exploration/clear - Forget the explored area",
            "cache_stats": "/api/exploration/cache/stats - Street answer cache counters",
            "logs": "/api/logs/recent - Recent log records (min_level, source filters)",
            "log_summary": "/api/logs/summary - Buffered record counts per level and source"
        }
    }
