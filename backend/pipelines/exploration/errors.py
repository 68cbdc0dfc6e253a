"""
Exploration error taxonomy
"""


class ExplorationError(Exception):
    """Base class for explored-area engine errors."""
    pass


class InvalidGeometry(ExplorationError):
    """Malformed or degenerate geometry handed to the engine."""
    pass


class MergeFailure(ExplorationError):
    """Topology error while unioning two geometries."""
    pass


class OracleUnavailable(ExplorationError):
    """A street lookup could not be completed (network, HTTP or parse failure)."""
    pass
