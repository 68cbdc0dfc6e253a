"""
Saved progress format
A single GeoJSON Feature wrapping the explored area plus export metadata
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from config import settings

from .errors import InvalidGeometry
from .geometry_models import (
    ExportFeature,
    ExportProperties,
    MultiPolygonGeometry,
    PolygonGeometry,
    normalize_geometry,
)

logger = logging.getLogger(__name__)


def build_export_feature(
    geometry: Any,
    app_version: Optional[str] = None,
    description: Optional[str] = None,
) -> ExportFeature:
    """
    Wrap an explored area for saving

    Raises:
        InvalidGeometry: there is no area to export
    """
    area = normalize_geometry(geometry)
    if area is None:
        raise InvalidGeometry("No explored area to export.")
    return ExportFeature(
        properties=ExportProperties(
            exportDate=datetime.now(timezone.utc).isoformat(),
            appVersion=app_version or settings.APP_VERSION,
            description=description or settings.EXPORT_DESCRIPTION,
        ),
        geometry=area,
    )


def load_export_feature(payload: Any) -> Union[PolygonGeometry, MultiPolygonGeometry]:
    """
    Pull the explored area back out of saved progress

    Accepts the exported Feature, a FeatureCollection whose first feature
    holds the area, or a bare Polygon/MultiPolygon.

    Raises:
        InvalidGeometry: payload does not carry a Polygon or MultiPolygon
    """
    if isinstance(payload, dict) and payload.get("type") == "FeatureCollection":
        features = payload.get("features") or []
        if not features:
            raise InvalidGeometry("Invalid GeoJSON format. Expected Polygon or MultiPolygon.")
        payload = features[0]

    try:
        area = normalize_geometry(payload)
    except InvalidGeometry as e:
        logger.warning(f"⚠️ Rejected saved progress: {e}")
        raise InvalidGeometry("Invalid GeoJSON format. Expected Polygon or MultiPolygon.") from e
    if area is None:
        raise InvalidGeometry("Invalid GeoJSON format. Expected Polygon or MultiPolygon.")
    return area
