"""
Block Cache Service
Remembers street-presence answers for holes by spatial signature
"""
import logging
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class BlockCache:
    """
    In-memory street-presence cache keyed by a hole's spatial signature

    No expiry and no size bound. A key is written once its lookup resolves and
    is reused for every later hole with the same signature.
    """

    def __init__(self):
        self._entries: Dict[str, bool] = {}
        self.cache_stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0
        }

    def get(self, key: str) -> Tuple[Optional[bool], bool]:
        """
        Look up a signature

        Returns:
            (has_streets, found)
        """
        if key in self._entries:
            self.cache_stats["hits"] += 1
            return self._entries[key], True
        self.cache_stats["misses"] += 1
        return None, False

    def set(self, key: str, has_streets: bool) -> None:
        self._entries[key] = bool(has_streets)
        self.cache_stats["writes"] += 1
        logger.debug(f"💾 Cached block {key} → has_streets={has_streets}")

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("💾 Block cache cleared")

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            **self.cache_stats
        }


_default_cache: Optional[BlockCache] = None


def get_default_block_cache() -> BlockCache:
    """Process-wide cache for callers that want answers shared across sessions"""
    global _default_cache
    if _default_cache is None:
        _default_cache = BlockCache()
    return _default_cache
