"""
Explored Area Union
Merges a new corridor into the cumulative explored area
"""
import logging
from typing import Any, Optional, Union

from pydantic import ValidationError
from shapely.errors import GEOSException
from shapely.ops import unary_union

from .errors import MergeFailure
from .geometry_models import MultiPolygonGeometry, PolygonGeometry, from_shape, normalize_geometry, to_shape

logger = logging.getLogger(__name__)

AreaGeometry = Union[PolygonGeometry, MultiPolygonGeometry]


def _union(existing: AreaGeometry, new: AreaGeometry) -> Optional[AreaGeometry]:
    try:
        return from_shape(unary_union([to_shape(existing), to_shape(new)]))
    except (GEOSException, ValueError, ValidationError) as e:
        raise MergeFailure(str(e)) from e


def merge_areas(existing_area: Any, new_polygon: Any) -> Optional[AreaGeometry]:
    """
    Merge a new polygon into the existing explored area

    Either argument may be a bare geometry or a Feature wrapping one.

    Args:
        existing_area: Current explored area (None on first import)
        new_polygon: Polygon/MultiPolygon to add

    Returns:
        Merged geometry. On a topology failure the existing area is returned
        unchanged so no exploration progress is lost.
    """
    new_geom = normalize_geometry(new_polygon)
    if existing_area is None:
        return new_geom

    existing_geom = normalize_geometry(existing_area)
    if new_geom is None:
        return existing_geom

    try:
        merged = _union(existing_geom, new_geom)
    except MergeFailure as e:
        logger.error(f"❌ Merge failed, keeping existing area: {e}")
        return existing_geom

    if merged is None:
        return new_geom
    logger.debug(f"🧭 Merged {existing_geom.type} + {new_geom.type} → {merged.type}")
    return merged
