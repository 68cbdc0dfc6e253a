"""
Batch Scheduler
Runs street lookups for cache-miss blocks in fixed-size concurrent groups

Groups run strictly one after another; members of a group run concurrently
in a thread pool sized to the group width, so at most batch_size lookups are
ever in flight.
"""
import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from config import settings

from .blocks import BlockCandidate
from .progress import StatusCallback, emit_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockResolution:
    """Street-presence answer for one candidate"""
    candidate: BlockCandidate
    has_streets: bool
    cached: bool = False
    queried: bool = False  # this candidate triggered the lookup
    fail_safe: bool = False


class BatchScheduler:
    """
    Concurrency-bounded street lookups

    Args:
        oracle: object with check(bbox) -> StreetCheck (see services.streets)
        cache: BlockCache receiving every resolved answer
        batch_size: group width (defaults to ORACLE_BATCH_SIZE)
        retry_failed_lookups: keep fail-safe answers out of the cache
            (defaults to ORACLE_RETRY_FAILED_LOOKUPS)
    """

    def __init__(
        self,
        oracle: Any,
        cache: Any,
        batch_size: Optional[int] = None,
        retry_failed_lookups: Optional[bool] = None,
    ):
        self.oracle = oracle
        self.cache = cache
        self.batch_size = settings.ORACLE_BATCH_SIZE if batch_size is None else int(batch_size)
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        if retry_failed_lookups is None:
            retry_failed_lookups = settings.ORACLE_RETRY_FAILED_LOOKUPS
        self.retry_failed_lookups = bool(retry_failed_lookups)
        self._thread_pool: Optional[ThreadPoolExecutor] = None

    def _get_thread_pool(self) -> ThreadPoolExecutor:
        if self._thread_pool is None:
            self._thread_pool = ThreadPoolExecutor(
                max_workers=self.batch_size,
                thread_name_prefix="street_oracle"
            )
        return self._thread_pool

    def shutdown(self) -> None:
        """Release the lookup thread pool"""
        if self._thread_pool is not None:
            self._thread_pool.shutdown(wait=True)
            self._thread_pool = None
            logger.info("🌐 Street lookup thread pool cleaned up")

    def _lookup(self, candidate: BlockCandidate) -> Tuple[bool, bool]:
        """Blocking lookup, run on the pool. Returns (has_streets, fail_safe)."""
        try:
            check = self.oracle.check(candidate.bbox)
            return bool(check.has_streets), bool(check.fail_safe)
        except Exception as e:
            fallback = bool(getattr(self.oracle, "fail_safe_has_streets", settings.ORACLE_FAIL_SAFE_HAS_STREETS))
            logger.error(f"❌ Street oracle raised for block {candidate.spatial_key}, using has_streets={fallback}: {e}")
            return fallback, True

    async def _check(
        self,
        candidate: BlockCandidate,
        batch_num: int,
        position: int,
        total: int,
    ) -> Tuple[bool, bool]:
        logger.info(f"[Batch {batch_num}] Checking block {position}/{total}: {candidate.area_m2:,.0f} sqm")
        loop = asyncio.get_running_loop()
        has_streets, fail_safe = await loop.run_in_executor(self._get_thread_pool(), self._lookup, candidate)
        if not (fail_safe and self.retry_failed_lookups):
            self.cache.set(candidate.spatial_key, has_streets)
        return has_streets, fail_safe

    async def run(
        self,
        candidates: List[BlockCandidate],
        on_status: Optional[StatusCallback] = None,
    ) -> List[BlockResolution]:
        """
        Resolve every candidate through the oracle

        Candidates sharing a spatial key are looked up once. Answers are cached
        as they arrive, fail-safe ones included unless retry_failed_lookups is set.

        Returns:
            One BlockResolution per candidate, in candidate order
        """
        if not candidates:
            return []

        unique: List[BlockCandidate] = []
        seen = set()
        for candidate in candidates:
            if candidate.spatial_key not in seen:
                seen.add(candidate.spatial_key)
                unique.append(candidate)

        total = len(unique)
        total_batches = math.ceil(total / self.batch_size)
        emit_status(on_status, f"Checking {total} new blocks (batch size: {self.batch_size})...")

        answers: Dict[str, Tuple[bool, bool]] = {}
        for start in range(0, total, self.batch_size):
            batch = unique[start:start + self.batch_size]
            batch_num = start // self.batch_size + 1

            emit_status(
                on_status,
                f"Processing batch {batch_num}/{total_batches} ({len(batch)} blocks)...",
                round(100 * (batch_num - 1) / total_batches),
            )

            # Join barrier: the next group starts only after every member resolved
            results = await asyncio.gather(*(
                self._check(candidate, batch_num, start + idx + 1, total)
                for idx, candidate in enumerate(batch)
            ))
            for candidate, answer in zip(batch, results):
                answers[candidate.spatial_key] = answer

            emit_status(
                on_status,
                f"Batch {batch_num}/{total_batches} complete ({len(batch)} blocks)",
                round(100 * batch_num / total_batches),
            )

        queried = {id(candidate) for candidate in unique}
        resolutions = []
        for candidate in candidates:
            has_streets, fail_safe = answers[candidate.spatial_key]
            resolutions.append(BlockResolution(
                candidate=candidate,
                has_streets=has_streets,
                queried=id(candidate) in queried,
                fail_safe=fail_safe,
            ))
        return resolutions
