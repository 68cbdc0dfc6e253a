"""
Block Fill Engine
Decides which enclosed holes of the explored area are empty city blocks

For every polygon: keep the outer ring, keep holes outside the size band,
look up the rest (cache first, then the street oracle in batches) and drop
("fill") each hole that has no real street inside it.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from config import settings
from services.cache.block_cache import BlockCache

from .batch_scheduler import BatchScheduler, BlockResolution
from .blocks import BlockCandidate, extract_rings, split_candidates
from .geometry_models import MultiPolygonGeometry, PolygonGeometry, Ring, normalize_geometry
from .progress import StatusCallback, emit_status, relevant_sink
from .relevance import RelevanceToken

logger = logging.getLogger(__name__)

AreaGeometry = Union[PolygonGeometry, MultiPolygonGeometry]


@dataclass
class FillOptions:
    """
    skip_street_check: optimistic fast path used during live interaction.
    Every size-eligible hole is filled with zero street lookups.
    """
    skip_street_check: bool = False

    @classmethod
    def coerce(cls, options: Any) -> "FillOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, dict):
            skip = options.get("skip_street_check", options.get("skipStreetCheck", False))
            return cls(skip_street_check=bool(skip))
        raise TypeError(f"Unsupported fill options: {type(options).__name__}")


@dataclass
class FillReport:
    """Counters for one fill pass"""
    filled: int = 0
    kept: int = 0
    retained: int = 0  # holes outside the size band
    cached: int = 0
    oracle_calls: int = 0
    fail_safe: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class BlockFillEngine:
    """
    Fill decision engine

    Args:
        oracle: street oracle (defaults to OverpassStreetOracle)
        cache: BlockCache shared by reference; answers persist across calls
        scheduler: BatchScheduler override (built from oracle/cache otherwise)
        min_area_m2, max_area_m2: size band for eligible holes
        batch_size: concurrent lookups per batch
        retry_failed_lookups: keep fail-safe answers out of the cache
    """

    def __init__(
        self,
        oracle: Any = None,
        cache: Optional[BlockCache] = None,
        scheduler: Optional[BatchScheduler] = None,
        min_area_m2: Optional[float] = None,
        max_area_m2: Optional[float] = None,
        batch_size: Optional[int] = None,
        retry_failed_lookups: Optional[bool] = None,
    ):
        if oracle is None:
            # Import here to avoid circular imports
            from services.streets.street_oracle import OverpassStreetOracle
            oracle = OverpassStreetOracle()

        self.oracle = oracle
        self.cache = cache if cache is not None else BlockCache()
        self.scheduler = scheduler or BatchScheduler(oracle, self.cache, batch_size, retry_failed_lookups)
        self.min_area_m2 = settings.MIN_BLOCK_AREA_M2 if min_area_m2 is None else min_area_m2
        self.max_area_m2 = settings.MAX_BLOCK_AREA_M2 if max_area_m2 is None else max_area_m2
        self.last_report = FillReport()

    async def fill_blocks(
        self,
        geometry: Any,
        on_status: Optional[StatusCallback] = None,
        options: Any = None,
        relevance: Optional[RelevanceToken] = None,
    ) -> Optional[AreaGeometry]:
        """
        Fill empty blocks of a Polygon/MultiPolygon

        Args:
            geometry: explored area (bare or Feature-wrapped); None passes through
            on_status: (message, percent) progress sink
            options: FillOptions or {"skipStreetCheck": bool}
            relevance: token of the orchestrating run; progress stops once it is stale

        Returns:
            New geometry with filled holes removed
        """
        result, report = await self.fill_blocks_with_report(geometry, on_status, options, relevance)
        self.last_report = report
        return result

    async def fill_blocks_with_report(
        self,
        geometry: Any,
        on_status: Optional[StatusCallback] = None,
        options: Any = None,
        relevance: Optional[RelevanceToken] = None,
    ) -> Tuple[Optional[AreaGeometry], FillReport]:
        opts = FillOptions.coerce(options)
        report = FillReport()
        geom = normalize_geometry(geometry)
        if geom is None:
            return None, report

        sink = relevant_sink(on_status, relevance)
        strict = not opts.skip_street_check

        if strict:
            emit_status(sink, "Analyzing cleared area geometry...")

        if isinstance(geom, PolygonGeometry):
            rings = await self._process_polygon(geom.coordinates, sink, opts, report)
            result: AreaGeometry = PolygonGeometry(coordinates=rings)
        else:
            polygons = geom.coordinates
            total = len(polygons)
            new_polygons = []
            for i, polygon_rings in enumerate(polygons, start=1):
                if strict and total > settings.MULTIPOLYGON_PROGRESS_THRESHOLD:
                    emit_status(sink, f"Analyzing polygon part {i}/{total}...", round(100 * (i - 1) / total))
                new_polygons.append(await self._process_polygon(polygon_rings, sink, opts, report))
            result = MultiPolygonGeometry(coordinates=new_polygons)

        logger.info(
            f"🧱 Block fill done: filled={report.filled} kept={report.kept} "
            f"retained={report.retained} cached={report.cached} oracle_calls={report.oracle_calls}"
        )
        return result, report

    def _resolve_from_cache(
        self,
        eligible: List[BlockCandidate],
    ) -> Tuple[List[BlockResolution], List[BlockCandidate]]:
        cached: List[BlockResolution] = []
        misses: List[BlockCandidate] = []
        for candidate in eligible:
            has_streets, found = self.cache.get(candidate.spatial_key)
            if found:
                cached.append(BlockResolution(candidate=candidate, has_streets=has_streets, cached=True))
            else:
                misses.append(candidate)
        return cached, misses

    async def _process_polygon(
        self,
        rings: List[Ring],
        sink: Optional[StatusCallback],
        opts: FillOptions,
        report: FillReport,
    ) -> List[Ring]:
        outer, holes = extract_rings(rings)
        strict = not opts.skip_street_check

        if not holes:
            if strict:
                emit_status(sink, "Block analysis complete. Filled: 0, Kept: 0", 100)
            return [outer]

        if strict:
            emit_status(sink, f"Found {len(holes)} potential blocks (holes). Checking sizes...")

        eligible, retained = split_candidates(holes, self.min_area_m2, self.max_area_m2)
        report.retained += len(retained)

        if opts.skip_street_check:
            report.filled += len(eligible)
            if eligible:
                logger.info(f"⚡ Fast fill: dropped {len(eligible)} block(s) without street checks")
            return [outer] + retained

        if not eligible:
            emit_status(sink, "No valid blocks to check.")
            emit_status(sink, "Block analysis complete. Filled: 0, Kept: 0", 100)
            return [outer] + retained

        cached, misses = self._resolve_from_cache(eligible)
        if cached:
            emit_status(sink, f"Using cached results for {len(cached)} blocks...")
        fresh = await self.scheduler.run(misses, sink)

        filled = 0
        kept: List[Ring] = []
        for resolution in cached + fresh:
            size_str = f"{resolution.candidate.area_m2:,.0f}"
            cache_tag = " [Cached]" if resolution.cached else ""
            if not resolution.has_streets:
                logger.info(f"[Block Fill] Filling block! Size: {size_str}sqm{cache_tag}")
                filled += 1
            else:
                logger.info(f"[Block Fill] Block NOT filled. Reason: Streets Detected{cache_tag}")
                kept.append(resolution.candidate.ring)

        report.filled += filled
        report.kept += len(kept)
        report.cached += len(cached)
        report.oracle_calls += sum(1 for r in fresh if r.queried)
        report.fail_safe += sum(1 for r in fresh if r.fail_safe)

        emit_status(sink, f"Block analysis complete. Filled: {filled}, Kept: {len(kept)}", 100)
        return [outer] + retained + kept
