"""
Exploration Module
Buffers paths into the explored area and fills empty city blocks
"""
from .errors import ExplorationError, InvalidGeometry, MergeFailure, OracleUnavailable
from .buffer import buffer_path
from .union import merge_areas
from .fill_engine import BlockFillEngine, FillOptions, FillReport
from .pipeline import ExplorationPipeline
from .relevance import RelevanceToken

__all__ = [
    "ExplorationError",
    "InvalidGeometry",
    "MergeFailure",
    "OracleUnavailable",
    "buffer_path",
    "merge_areas",
    "BlockFillEngine",
    "FillOptions",
    "FillReport",
    "ExplorationPipeline",
    "RelevanceToken",
]
