"""
Exploration Pipeline Singleton
==============================

One explored-area session per API process, created on first use. The block
cache is the process-wide default so street answers are shared with any other
pipeline built on get_default_block_cache().
"""

from __future__ import annotations

from typing import Optional

_pipeline_instance: Optional["ExplorationPipeline"] = None


def _make_pipeline():
    # Import inside function to avoid heavy imports during API startup
    from pipelines.exploration.fill_engine import BlockFillEngine
    from pipelines.exploration.pipeline import ExplorationPipeline
    from services.cache.block_cache import get_default_block_cache
    from services.streets.street_oracle import OverpassStreetOracle

    engine = BlockFillEngine(oracle=OverpassStreetOracle(), cache=get_default_block_cache())
    return ExplorationPipeline(engine=engine)


def get_exploration_pipeline():
    """Return the process-wide ExplorationPipeline, creating it if needed."""
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = _make_pipeline()
    return _pipeline_instance


def set_exploration_pipeline(pipeline) -> None:
    """Replace the process-wide pipeline (tests, alternative oracles)."""
    global _pipeline_instance
    _pipeline_instance = pipeline


def shutdown() -> None:
    """Release the street lookup thread pool of the current pipeline."""
    if _pipeline_instance is not None:
        _pipeline_instance.engine.scheduler.shutdown()
