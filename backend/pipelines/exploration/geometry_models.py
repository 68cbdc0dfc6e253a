"""
Exploration Geometry Models
GeoJSON shapes handled by the explored-area engine

The engine works on exactly one tagged geometry type (Polygon | MultiPolygon).
Feature wrappers are a separate type and are unwrapped once, at the boundary,
by normalize_geometry().
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator
from shapely.geometry import GeometryCollection, LineString, MultiLineString, MultiPolygon, Polygon
from shapely.geometry import shape as shapely_shape
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from .errors import InvalidGeometry


Position = List[float]
Ring = List[Position]


def _validate_position(position: Position) -> Position:
    if len(position) < 2:
        raise ValueError(f"position needs at least [lon, lat], got {position}")
    return position


def _validate_ring(ring: Ring) -> Ring:
    if len(ring) < 4:
        raise ValueError(f"ring needs at least 4 positions, got {len(ring)}")
    for position in ring:
        _validate_position(position)
    if list(ring[0][:2]) != list(ring[-1][:2]):
        raise ValueError("ring is not closed (first and last positions differ)")
    return ring


def _validate_polygon_rings(rings: List[Ring]) -> List[Ring]:
    if not rings:
        raise ValueError("polygon needs an outer ring")
    for ring in rings:
        _validate_ring(ring)
    return rings


class PolygonGeometry(BaseModel):
    """GeoJSON Polygon: ring 0 is the outer boundary, rings[1:] are holes"""
    type: Literal["Polygon"] = "Polygon"
    coordinates: List[Ring]

    @field_validator("coordinates")
    @classmethod
    def _check_rings(cls, value: List[Ring]) -> List[Ring]:
        return _validate_polygon_rings(value)


class MultiPolygonGeometry(BaseModel):
    """GeoJSON MultiPolygon: independent polygons, each with its own ring list"""
    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: List[List[Ring]]

    @field_validator("coordinates")
    @classmethod
    def _check_polygons(cls, value: List[List[Ring]]) -> List[List[Ring]]:
        if not value:
            raise ValueError("multipolygon needs at least one polygon")
        for rings in value:
            _validate_polygon_rings(rings)
        return value


Geometry = Annotated[Union[PolygonGeometry, MultiPolygonGeometry], Field(discriminator="type")]
_geometry_adapter: TypeAdapter = TypeAdapter(Geometry)


class LineStringGeometry(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: List[Position]


class MultiLineStringGeometry(BaseModel):
    type: Literal["MultiLineString"] = "MultiLineString"
    coordinates: List[List[Position]]


LineGeometry = Annotated[Union[LineStringGeometry, MultiLineStringGeometry], Field(discriminator="type")]
_line_adapter: TypeAdapter = TypeAdapter(LineGeometry)


class GeometryFeature(BaseModel):
    """A Feature wrapping an explored-area geometry"""
    type: Literal["Feature"] = "Feature"
    geometry: Geometry
    properties: Optional[Dict[str, Any]] = None


class ExportProperties(BaseModel):
    exportDate: str
    appVersion: str
    description: str


class ExportFeature(BaseModel):
    """Persisted progress file: one Feature wrapping the explored area"""
    type: Literal["Feature"] = "Feature"
    properties: ExportProperties
    geometry: Geometry


def normalize_geometry(obj: Any) -> Optional[Union[PolygonGeometry, MultiPolygonGeometry]]:
    """
    Normalize any supported input to a bare Polygon/MultiPolygon model

    Args:
        obj: None, a geometry/feature dict, a geometry/feature model or a shapely geometry

    Returns:
        PolygonGeometry | MultiPolygonGeometry, or None for absent input

    Raises:
        InvalidGeometry: input is not a polygonal geometry
    """
    if obj is None:
        return None
    if isinstance(obj, (PolygonGeometry, MultiPolygonGeometry)):
        return obj
    if isinstance(obj, (GeometryFeature, ExportFeature)):
        return obj.geometry
    if isinstance(obj, BaseGeometry):
        result = from_shape(obj)
        if result is None:
            raise InvalidGeometry(f"{obj.geom_type} has no polygonal area")
        return result
    if isinstance(obj, dict):
        if obj.get("type") == "Feature":
            if obj.get("geometry") is None:
                raise InvalidGeometry("Feature has no geometry")
            return normalize_geometry(obj["geometry"])
        try:
            return _geometry_adapter.validate_python(obj)
        except ValidationError as e:
            raise InvalidGeometry(f"Expected Polygon or MultiPolygon: {e}") from e
    raise InvalidGeometry(f"Unsupported geometry input: {type(obj).__name__}")


def to_shape(geometry: Union[PolygonGeometry, MultiPolygonGeometry]) -> BaseGeometry:
    """Convert a geometry model into a shapely geometry"""
    return shapely_shape(geometry.model_dump())


def polygon_parts(geom: Optional[BaseGeometry]) -> List[Polygon]:
    """Flatten the polygonal parts of any shapely geometry"""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        parts: List[Polygon] = []
        for part in geom.geoms:
            parts.extend(polygon_parts(part))
        return parts
    return []


def _ring_coords(ring) -> Ring:
    return [list(coord) for coord in ring.coords]


def _polygon_coords(polygon: Polygon) -> List[Ring]:
    # RFC 7946 winding: exterior counter-clockwise, holes clockwise
    polygon = orient(polygon, sign=1.0)
    return [_ring_coords(polygon.exterior)] + [_ring_coords(hole) for hole in polygon.interiors]


def from_shape(geom: Optional[BaseGeometry]) -> Optional[Union[PolygonGeometry, MultiPolygonGeometry]]:
    """
    Convert a shapely geometry into a geometry model

    The kind of the result follows the number of polygonal parts, not the
    kind of the input: one part is a Polygon, several are a MultiPolygon.
    """
    parts = [part for part in polygon_parts(geom) if not part.is_empty]
    if not parts:
        return None
    if len(parts) == 1:
        return PolygonGeometry(coordinates=_polygon_coords(parts[0]))
    return MultiPolygonGeometry(coordinates=[_polygon_coords(part) for part in parts])


def _is_position(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and all(isinstance(v, (int, float)) for v in value)
    )


def line_parts(obj: Any) -> List[List[Position]]:
    """
    Normalize path input to a list of coordinate sequences

    Accepts a LineString/MultiLineString dict or model, a Feature wrapping one,
    a shapely line, or a plain sequence of [lon, lat] positions.

    Raises:
        InvalidGeometry: input is not a line geometry
    """
    if obj is None:
        raise InvalidGeometry("No path geometry given")
    if isinstance(obj, LineStringGeometry):
        return [obj.coordinates]
    if isinstance(obj, MultiLineStringGeometry):
        return list(obj.coordinates)
    if isinstance(obj, LineString):
        return [[list(c) for c in obj.coords]]
    if isinstance(obj, MultiLineString):
        return [[list(c) for c in line.coords] for line in obj.geoms]
    if isinstance(obj, dict):
        if obj.get("type") == "Feature":
            return line_parts(obj.get("geometry"))
        try:
            return line_parts(_line_adapter.validate_python(obj))
        except ValidationError as e:
            raise InvalidGeometry(f"Expected LineString or MultiLineString: {e}") from e
    if isinstance(obj, Sequence) and not isinstance(obj, str):
        positions = list(obj)
        if all(_is_position(p) for p in positions):
            return [[list(p) for p in positions]]
    raise InvalidGeometry(f"Unsupported path input: {type(obj).__name__}")
