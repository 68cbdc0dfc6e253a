"""
Geodesic measurements on lon/lat geometries
"""
from typing import Optional, Tuple, Union

from pyproj import Geod
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from .geometry_models import MultiPolygonGeometry, PolygonGeometry, polygon_parts, to_shape

# WGS84 ellipsoid (same as GPS)
_GEOD = Geod(ellps="WGS84")

BBox = Tuple[float, float, float, float]


def geodesic_area_m2(geom: BaseGeometry) -> float:
    """Absolute ellipsoidal area in square meters (holes subtract)"""
    total = 0.0
    for part in polygon_parts(geom):
        # pyproj relies on ring winding to subtract holes
        area, _ = _GEOD.geometry_area_perimeter(orient(part, sign=1.0))
        total += area
    return abs(total)


def geometry_area_m2(geometry: Optional[Union[PolygonGeometry, MultiPolygonGeometry]]) -> float:
    if geometry is None:
        return 0.0
    return geodesic_area_m2(to_shape(geometry))


def bounding_box(geom: BaseGeometry) -> BBox:
    """(min_lon, min_lat, max_lon, max_lat)"""
    min_lon, min_lat, max_lon, max_lat = geom.bounds
    return (min_lon, min_lat, max_lon, max_lat)


def south_west_north_east(bbox: BBox) -> Tuple[float, float, float, float]:
    """Reorder a (min_lon, min_lat, max_lon, max_lat) box for Overpass"""
    min_lon, min_lat, max_lon, max_lat = bbox
    return (min_lat, min_lon, max_lat, max_lon)


def spatial_key(geom: BaseGeometry, area_m2: float) -> str:
    """
    Cache signature of a hole: centroid rounded to 5 decimals (~1 m) plus
    rounded area. Distinct holes may share a key.
    """
    centroid = geom.centroid
    return f"{centroid.y:.5f}_{centroid.x:.5f}_{round(area_m2)}"
