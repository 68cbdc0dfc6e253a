"""
Path Buffer
Turns a walked/drawn path into the corridor polygon it explores
"""
import logging
import math
from typing import Any, List, Optional, Union

from shapely.geometry import LineString, MultiLineString

from config import settings

from .errors import InvalidGeometry
from .geometry_models import MultiPolygonGeometry, PolygonGeometry, Position, from_shape, line_parts
from .projection import get_projector

logger = logging.getLogger(__name__)


def _check_position(position: Position) -> None:
    lon, lat = position[0], position[1]
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InvalidGeometry(f"Non-finite coordinate: {position}")
    if not (-180 <= lon <= 180):
        raise InvalidGeometry(f"Invalid longitude: {lon} (must be -180 to 180)")
    if not (-90 <= lat <= 90):
        raise InvalidGeometry(f"Invalid latitude: {lat} (must be -90 to 90)")


def _to_line(coords: List[Position]) -> LineString:
    for position in coords:
        _check_position(position)
    distinct = {(p[0], p[1]) for p in coords}
    if len(distinct) < 2:
        raise InvalidGeometry(f"Path needs at least 2 distinct points, got {len(distinct)}")
    return LineString([(p[0], p[1]) for p in coords])


def buffer_path(
    line: Any,
    radius_m: Optional[float] = None,
) -> Union[PolygonGeometry, MultiPolygonGeometry]:
    """
    Buffer a path by a fixed radius in meters

    Args:
        line: LineString/MultiLineString (bare, Feature-wrapped, model or shapely)
              or a plain list of [lon, lat] positions
        radius_m: Buffer radius in meters (defaults to BUFFER_RADIUS_M)

    Returns:
        Polygon, or MultiPolygon when the corridor falls apart into disjoint lobes

    Raises:
        InvalidGeometry: fewer than 2 distinct points, bad coordinates or radius
    """
    radius = settings.BUFFER_RADIUS_M if radius_m is None else float(radius_m)
    if not radius > 0:
        raise InvalidGeometry(f"Buffer radius must be positive, got {radius}")

    lines = [_to_line(coords) for coords in line_parts(line)]
    if not lines:
        raise InvalidGeometry("Path has no lines")
    path = lines[0] if len(lines) == 1 else MultiLineString(lines)

    projector = get_projector()
    local_path, epsg = projector.to_local(path)
    corridor = projector.to_wgs84(local_path.buffer(radius, quad_segs=8), epsg)

    result = from_shape(corridor)
    if result is None:
        raise InvalidGeometry("Buffer produced an empty geometry")

    logger.debug(f"🧭 Buffered {len(lines)} line(s) by {radius}m in EPSG:{epsg} → {result.type}")
    return result
