"""
Local Projection
Projects WGS84 geometries into the local UTM zone so distances are in meters
"""
import logging
from typing import Dict, Optional, Tuple

from pyproj import CRS, Transformer
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

logger = logging.getLogger(__name__)


class LocalProjector:
    """
    Projects shapely geometries between WGS84 (lon/lat) and UTM

    Transformers are created once per zone and cached for reuse.
    """

    def __init__(self):
        self.wgs84 = CRS.from_epsg(4326)
        self._forward: Dict[int, Transformer] = {}
        self._inverse: Dict[int, Transformer] = {}

    def get_utm_zone(self, lon: float, lat: float) -> Tuple[int, bool]:
        """
        Determine UTM zone number and hemisphere for a lon/lat point

        Returns:
            (zone_number, is_northern)
        """
        zone_number = int((lon + 180) / 6) + 1
        if lon >= 180:
            zone_number = 60
        elif lon < -180:
            zone_number = 1
        zone_number = self._apply_special_zones(lat, lon, zone_number)
        return zone_number, lat >= 0

    def _apply_special_zones(self, lat: float, lon: float, default_zone: int) -> int:
        """Norway and Svalbard exceptions to the regular 6 degree grid"""
        if 56 <= lat < 64 and 3 <= lon < 12:
            return 32

        if 72 <= lat < 84:
            if 0 <= lon < 9:
                return 31
            elif 9 <= lon < 21:
                return 33
            elif 21 <= lon < 33:
                return 35
            elif 33 <= lon < 42:
                return 37

        return default_zone

    def epsg_for(self, lon: float, lat: float) -> int:
        zone_number, is_northern = self.get_utm_zone(lon, lat)
        return (32600 if is_northern else 32700) + zone_number

    def _transformers(self, epsg: int) -> Tuple[Transformer, Transformer]:
        if epsg not in self._forward:
            utm_crs = CRS.from_epsg(epsg)
            self._forward[epsg] = Transformer.from_crs(self.wgs84, utm_crs, always_xy=True)
            self._inverse[epsg] = Transformer.from_crs(utm_crs, self.wgs84, always_xy=True)
            logger.debug(f"📍 Created WGS84↔UTM transformers for EPSG:{epsg}")
        return self._forward[epsg], self._inverse[epsg]

    def to_local(self, geom: BaseGeometry) -> Tuple[BaseGeometry, int]:
        """
        Project a lon/lat geometry into the UTM zone of its centroid

        Returns:
            (projected geometry, EPSG code used)
        """
        center = geom.centroid
        epsg = self.epsg_for(center.x, center.y)
        forward, _ = self._transformers(epsg)
        return transform(forward.transform, geom), epsg

    def to_wgs84(self, geom: BaseGeometry, epsg: int) -> BaseGeometry:
        """Project a UTM geometry back to lon/lat"""
        _, inverse = self._transformers(epsg)
        return transform(inverse.transform, geom)


_projector: Optional[LocalProjector] = None


def get_projector() -> LocalProjector:
    """Shared projector so transformer caches survive between calls"""
    global _projector
    if _projector is None:
        _projector = LocalProjector()
    return _projector
