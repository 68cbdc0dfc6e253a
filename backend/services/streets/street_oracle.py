"""
Street Oracle
Answers "does this bounding box contain a real street?" from OpenStreetMap

Only the Overpass query and response parsing live here; batching, caching and
deciding what to do with the answer belong to the block-fill pipeline.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import requests

from config import settings
from pipelines.exploration.errors import OracleUnavailable
from pipelines.exploration.measure import south_west_north_east

logger = logging.getLogger(__name__)

# (min_lon, min_lat, max_lon, max_lat)
BBox = Tuple[float, float, float, float]

# Way classes that do not functionally subdivide a block
EXCLUDED_HIGHWAY_CLASSES: Tuple[str, ...] = (
    "footway",
    "cycleway",
    "path",
    "service",
    "track",
    "steps",
    "pedestrian",
)


@dataclass(frozen=True)
class StreetCheck:
    """Outcome of one lookup. fail_safe marks answers that did not come from the service."""
    has_streets: bool
    fail_safe: bool = False
    error: Optional[str] = None


class StreetOracle:
    """
    Base street oracle

    Subclasses implement query_has_streets() and may raise on any failure;
    check() never raises and falls back to the configured fail-safe answer.
    """

    def __init__(self, fail_safe_has_streets: Optional[bool] = None):
        if fail_safe_has_streets is None:
            fail_safe_has_streets = settings.ORACLE_FAIL_SAFE_HAS_STREETS
        self.fail_safe_has_streets = bool(fail_safe_has_streets)

    def query_has_streets(self, bbox: BBox) -> bool:
        raise NotImplementedError

    def check(self, bbox: BBox) -> StreetCheck:
        try:
            return StreetCheck(has_streets=bool(self.query_has_streets(bbox)))
        except Exception as e:
            logger.warning(
                f"🌐 Street lookup failed for {bbox}, using fail-safe has_streets={self.fail_safe_has_streets}: {e}"
            )
            return StreetCheck(has_streets=self.fail_safe_has_streets, fail_safe=True, error=str(e))


def build_street_query(
    south: float,
    west: float,
    north: float,
    east: float,
    excluded: Sequence[str] = EXCLUDED_HIGHWAY_CLASSES,
) -> str:
    """Overpass QL for highway ways in a (south, west, north, east) box, minus excluded classes"""
    return (
        "[out:json];\n"
        'way["highway"]\n'
        f'   ["highway"!~"{"|".join(excluded)}"]\n'
        f"   ({south},{west},{north},{east});\n"
        "out ids;\n"
    )


class OverpassStreetOracle(StreetOracle):
    """
    Street oracle backed by the Overpass API

    One POST per bounding box. A non-empty `elements` array means streets.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        fail_safe_has_streets: Optional[bool] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(fail_safe_has_streets)
        self.url = url or settings.ORACLE_URL
        self.timeout = settings.ORACLE_TIMEOUT_S if timeout is None else timeout
        self.session = session
        self.headers = {
            "User-Agent": f"TrailBlazer/{settings.APP_VERSION} (Block Fill Engine)",
            "Accept": "application/json",
        }

    def query_has_streets(self, bbox: BBox) -> bool:
        query = build_street_query(*south_west_north_east(bbox))
        http = self.session if self.session is not None else requests

        try:
            response = http.post(self.url, data={"data": query}, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            raise OracleUnavailable(f"HTTP request failed: {e}") from e
        except ValueError as e:
            raise OracleUnavailable(f"Invalid JSON from Overpass: {e}") from e

        elements = payload.get("elements") if isinstance(payload, dict) else None
        if not isinstance(elements, list):
            raise OracleUnavailable("Overpass response has no elements array")

        logger.debug(f"🌐 Overpass returned {len(elements)} street way(s) for {bbox}")
        return len(elements) > 0
