"""
Exploration Pipeline
Owns the cumulative explored area and runs paths, track imports, saved
progress and live strokes through buffer → union → block fill
"""
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from config import settings

from .buffer import buffer_path
from .errors import InvalidGeometry
from .fill_engine import BlockFillEngine, FillOptions, FillReport
from .geometry_models import MultiPolygonGeometry, PolygonGeometry
from .measure import geometry_area_m2
from .persistence import build_export_feature, load_export_feature
from .progress import StatusCallback, emit_status
from .relevance import RelevanceToken
from .union import merge_areas

logger = logging.getLogger(__name__)

AreaGeometry = Union[PolygonGeometry, MultiPolygonGeometry]


def _collect_track_parts(geojson: Any) -> Tuple[List[dict], List[list], List[str], int]:
    """
    Split a track document into line geometries and waypoint positions

    Returns:
        (line geometries, waypoint positions, geometry types seen, feature count)
    """
    if not isinstance(geojson, dict):
        return [], [], [], 0

    if geojson.get("type") == "FeatureCollection":
        features = geojson.get("features") or []
    elif geojson.get("type") == "Feature":
        features = [geojson]
    else:
        features = [{"type": "Feature", "geometry": geojson}]

    lines: List[dict] = []
    waypoints: List[list] = []
    types_found: List[str] = []
    for feature in features:
        geometry = feature.get("geometry") if isinstance(feature, dict) else None
        if not isinstance(geometry, dict):
            continue
        geom_type = geometry.get("type")
        if geom_type not in types_found:
            types_found.append(geom_type)
        if geom_type in ("LineString", "MultiLineString"):
            lines.append(geometry)
        elif geom_type == "Point":
            waypoints.append(geometry.get("coordinates"))

    return lines, waypoints, types_found, len(features)


class ExplorationPipeline:
    """
    Explored-area session

    The area is replaced, never mutated. Each block-fill run gets a
    RelevanceToken; replacing the area invalidates the pending run so its
    result is discarded instead of overwriting newer progress.
    """

    def __init__(self, engine: Optional[BlockFillEngine] = None, buffer_radius_m: Optional[float] = None):
        self.engine = engine or BlockFillEngine()
        self.buffer_radius_m = settings.BUFFER_RADIUS_M if buffer_radius_m is None else buffer_radius_m
        self._area: Optional[AreaGeometry] = None
        self._fill_token: Optional[RelevanceToken] = None
        self._stroke_base: Optional[AreaGeometry] = None
        self._stroke_active = False

    @property
    def area(self) -> Optional[AreaGeometry]:
        return self._area

    def _set_area(self, geometry: Optional[AreaGeometry]) -> None:
        if self._fill_token is not None:
            self._fill_token.invalidate()
            self._fill_token = None
        self._area = geometry

    def clear(self) -> dict:
        self._set_area(None)
        self._stroke_base = None
        self._stroke_active = False
        logger.info("🧹 Explored area cleared")
        return {"success": True, "message": "Map cleared."}

    def _result(self, **extra: Any) -> dict:
        result = {
            "success": True,
            "geometry": self._area.model_dump() if self._area is not None else None,
            "area_m2": geometry_area_m2(self._area),
        }
        result.update(extra)
        return result

    async def _fill_and_apply(
        self,
        on_status: Optional[StatusCallback],
        skip_street_check: bool,
    ) -> Dict[str, Any]:
        """Run the block fill on the current area and apply it if still relevant"""
        base = self._area
        if base is None:
            return {"applied": False, **FillReport().to_dict()}

        if self._fill_token is not None:
            self._fill_token.invalidate()
        token = RelevanceToken()
        self._fill_token = token

        try:
            filled, report = await self.engine.fill_blocks_with_report(
                base,
                on_status,
                FillOptions(skip_street_check=skip_street_check),
                relevance=token,
            )
        except Exception as e:
            logger.error(f"❌ Block fill failed, keeping unfilled area: {e}")
            if token.is_relevant:
                emit_status(on_status, "Error checking blocks. Area kept unfilled.")
            return {"applied": False, "error": str(e), **FillReport().to_dict()}

        if not token.is_relevant:
            logger.info("🧱 Discarding stale block fill result (area changed while checking)")
            return {"applied": False, "stale": True, **report.to_dict()}

        self._fill_token = None
        self._area = filled
        return {"applied": True, **report.to_dict()}

    async def add_path(
        self,
        path: Any,
        *,
        fill: bool = True,
        skip_street_check: bool = False,
        on_status: Optional[StatusCallback] = None,
    ) -> dict:
        """
        Buffer a path, merge it into the explored area and fill blocks

        Args:
            path: line geometry or list of [lon, lat] positions
            fill: run block filling after merging
            skip_street_check: fill every eligible hole without street lookups
        """
        try:
            corridor = buffer_path(path, self.buffer_radius_m)
        except InvalidGeometry as e:
            logger.warning(f"⚠️ Rejected path: {e}")
            return {"success": False, "error": f"Invalid path: {e}"}

        self._set_area(merge_areas(self._area, corridor))
        fill_result = await self._fill_and_apply(on_status, skip_street_check) if fill else None
        return self._result(fill=fill_result)

    async def import_track(
        self,
        geojson: Any,
        *,
        skip_street_check: bool = False,
        on_status: Optional[StatusCallback] = None,
    ) -> dict:
        """
        Import a recorded track (already converted to GeoJSON)

        Every LineString/MultiLineString is buffered; when there are none,
        Point waypoints are joined into a single track.
        """
        emit_status(on_status, "Processing track geometry...")
        lines, waypoints, types_found, feature_count = _collect_track_parts(geojson)

        corridor: Optional[AreaGeometry] = None
        for line in lines:
            try:
                corridor = merge_areas(corridor, buffer_path(line, self.buffer_radius_m))
            except InvalidGeometry as e:
                logger.warning(f"⚠️ Skipping unusable track line: {e}")

        if corridor is None and waypoints:
            emit_status(on_status, f"Converting {len(waypoints)} waypoints to track...")
            try:
                corridor = buffer_path(waypoints, self.buffer_radius_m)
            except InvalidGeometry as e:
                logger.warning(f"⚠️ Waypoints do not form a track: {e}")

        if corridor is None:
            if feature_count == 0:
                tail = "File may be empty or have parsing errors."
            else:
                tail = f"Found {feature_count} feature(s) of type: {', '.join(types_found) or 'NONE'}"
            message = f"No valid tracks found. {tail}"
            logger.error(f"❌ Import failed: {tail}")
            emit_status(on_status, message)
            return {"success": False, "error": message}

        self._set_area(merge_areas(self._area, corridor))
        emit_status(on_status, "Track visible. Checking for closed loops...")
        fill_result = await self._fill_and_apply(on_status, skip_street_check)
        if fill_result.get("applied"):
            emit_status(on_status, "Processing complete. Blocks filled if streets not found.", 100)
        return self._result(fill=fill_result)

    async def import_progress(
        self,
        payload: Any,
        *,
        on_status: Optional[StatusCallback] = None,
    ) -> dict:
        """Merge previously exported progress into the area and re-scan its blocks"""
        try:
            imported = load_export_feature(payload)
        except InvalidGeometry as e:
            emit_status(on_status, str(e))
            return {"success": False, "error": str(e)}

        self._set_area(merge_areas(self._area, imported))
        emit_status(on_status, "Progress loaded successfully! Upload more tracks to continue exploring.")
        fill_result = await self._fill_and_apply(on_status, False)
        if fill_result.get("applied"):
            emit_status(on_status, "Loaded area re-scanned and updated.", 100)
        return self._result(fill=fill_result)

    async def rescan(self, *, on_status: Optional[StatusCallback] = None) -> dict:
        """Re-run block filling on the current area"""
        if self._area is None:
            emit_status(on_status, "No cleared area to scan.")
            return {"success": False, "error": "No cleared area to scan."}

        emit_status(on_status, "Re-scanning for closed loops...")
        fill_result = await self._fill_and_apply(on_status, False)
        if fill_result.get("applied"):
            emit_status(on_status, "Scan complete.", 100)
        return self._result(fill=fill_result)

    def begin_stroke(self) -> None:
        """Snapshot the current area as the base of a live stroke"""
        self._stroke_base = self._area
        self._stroke_active = True

    async def update_stroke(
        self,
        points: List[list],
        *,
        final: bool = False,
        skip_street_check: bool = False,
        on_status: Optional[StatusCallback] = None,
    ) -> dict:
        """
        Redraw the live stroke on top of its base area

        Intermediate updates only buffer and merge. The final update also fills
        blocks (strict unless skip_street_check) and ends the stroke.
        """
        if not self._stroke_active:
            self.begin_stroke()
        if len(points) < 2:
            return {"success": False, "error": "Stroke needs at least 2 points"}

        try:
            corridor = buffer_path(points, self.buffer_radius_m)
        except InvalidGeometry as e:
            logger.warning(f"⚠️ Rejected stroke: {e}")
            return {"success": False, "error": f"Invalid stroke: {e}"}

        self._set_area(merge_areas(self._stroke_base, corridor))
        fill_result = None
        if final:
            self._stroke_active = False
            self._stroke_base = None
            fill_result = await self._fill_and_apply(on_status, skip_street_check)
        return self._result(fill=fill_result)

    def export_feature(self) -> dict:
        """Saved-progress Feature for the current area"""
        if self._area is None:
            return {"success": False, "error": "No explored area to export."}
        feature = build_export_feature(self._area)
        logger.info(f"💾 Exported explored area ({feature.geometry.type})")
        return {"success": True, "feature": feature.model_dump()}
