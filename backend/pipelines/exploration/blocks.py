"""
Block extraction
Splits polygon rings into the outer boundary and hole candidates
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from shapely.geometry import Polygon

from config import settings

from .geometry_models import Ring
from .measure import BBox, bounding_box, geodesic_area_m2, spatial_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockCandidate:
    """
    A size-eligible hole, alive for one fill pass.
    """

    ring: Ring
    area_m2: float
    bbox: BBox  # (min_lon, min_lat, max_lon, max_lat)
    spatial_key: str


def extract_rings(rings: List[Ring]) -> Tuple[Ring, List[Ring]]:
    """Ring 0 is the outer boundary; everything after it is a hole"""
    return rings[0], list(rings[1:])


def describe_hole(ring: Ring) -> Optional[BlockCandidate]:
    """Measure a hole as a standalone polygon. None if it is not a usable polygon."""
    if len(ring) < 4:
        return None
    hole = Polygon([(p[0], p[1]) for p in ring])
    if hole.is_empty:
        return None
    area = geodesic_area_m2(hole)
    return BlockCandidate(
        ring=ring,
        area_m2=area,
        bbox=bounding_box(hole),
        spatial_key=spatial_key(hole, area),
    )


def split_candidates(
    holes: List[Ring],
    min_area_m2: Optional[float] = None,
    max_area_m2: Optional[float] = None,
) -> Tuple[List[BlockCandidate], List[Ring]]:
    """
    Split holes into size-eligible candidates and holes retained as-is

    A hole is eligible only when min_area < area < max_area. Smaller holes do
    not matter and larger ones are too big to infer as one empty block.

    Returns:
        (eligible candidates, retained rings), both in original order
    """
    min_area = settings.MIN_BLOCK_AREA_M2 if min_area_m2 is None else min_area_m2
    max_area = settings.MAX_BLOCK_AREA_M2 if max_area_m2 is None else max_area_m2

    eligible: List[BlockCandidate] = []
    retained: List[Ring] = []
    for ring in holes:
        candidate = describe_hole(ring)
        if candidate is not None and min_area < candidate.area_m2 < max_area:
            eligible.append(candidate)
        else:
            retained.append(ring)

    logger.debug(f"🧱 {len(eligible)} eligible block(s), {len(retained)} hole(s) retained by size")
    return eligible, retained
