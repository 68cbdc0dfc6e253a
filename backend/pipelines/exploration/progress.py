"""
Status channel helpers
"""
import logging
from typing import Callable, Optional

from .relevance import RelevanceToken

logger = logging.getLogger(__name__)

# (message, percent) -> None. Fire-and-forget; return values are ignored.
StatusCallback = Callable[[str, float], None]


def emit_status(on_status: Optional[StatusCallback], message: str, percent: float = 0) -> None:
    """Deliver a status message without letting a faulty sink break the pipeline"""
    if on_status is None:
        return
    try:
        on_status(message, percent)
    except Exception as e:
        logger.warning(f"⚠️ Status callback failed for {message!r}: {e}")


def relevant_sink(
    on_status: Optional[StatusCallback],
    relevance: Optional[RelevanceToken],
) -> Optional[StatusCallback]:
    """Wrap a sink so messages stop once the consumer no longer cares about the run"""
    if on_status is None or relevance is None:
        return on_status

    def _sink(message: str, percent: float = 0) -> None:
        if relevance.is_relevant:
            emit_status(on_status, message, percent)

    return _sink
