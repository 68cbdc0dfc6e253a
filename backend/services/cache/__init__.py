"""
Cache Services Module
Street-presence answers for city blocks, keyed by spatial signature
"""
from .block_cache import BlockCache, get_default_block_cache

__all__ = ["BlockCache", "get_default_block_cache"]
